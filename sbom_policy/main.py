import logging
from typing import Optional
from fastapi import FastAPI

from sbom_policy.api.policy import router as policy_router
from sbom_policy.core.config import (
    LICENSE_POLICY_FILE,
    LOG_LEVEL,
    MAX_EXPRESSION_DEPTH,
    POLICY_COMBINATION_MODE,
    STRICT_FAMILY_POLICIES,
)
from sbom_policy.services.policy import LicensePolicyConfig

logging.getLogger("sbom_policy").setLevel(LOG_LEVEL.upper())


def create_app(policy_config: Optional[LicensePolicyConfig] = None) -> FastAPI:
    if policy_config is None:
        policy_config = LicensePolicyConfig(
            policy_file=LICENSE_POLICY_FILE,
            strict_families=STRICT_FAMILY_POLICIES,
            combination_mode=POLICY_COMBINATION_MODE,
            max_depth=MAX_EXPRESSION_DEPTH,
        )
    # senza una configurazione valida non si possono verificare le policy: fallisce subito
    policy_config.get_index()

    application = FastAPI(
        title="SBOM License Policy Checker",
        version="1.0.0",
    )
    application.state.policy_config = policy_config

    # API principali
    application.include_router(policy_router, prefix="/api", tags=["Policy"])

    # per test rapido
    @application.get("/")
    def root():
        return {"message": "License Policy Backend is running"}

    return application


app = create_app()
