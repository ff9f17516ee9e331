from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse

from sbom_policy.core.config import REPORT_OUTPUT_DIR
from sbom_policy.models.schemas import (
    EvaluateRequest,
    EvaluateResponse,
    LicensePolicy,
    ValidateRequest,
    ValidateResponse,
)
from sbom_policy.services.evaluation_workflow import evaluate_licenses, summarize
from sbom_policy.services.policy import LicensePolicyConfig, ParseError
from sbom_policy.services.policy.parser_spdx import iter_leaves, parse_tokens, tokenize
from sbom_policy.services.policy.spdx_utils import extract_symbols
from sbom_policy.services.report_service import (
    SUPPORTED_LIST_FORMATS,
    filter_policies,
    generate_report,
    render_policy_list,
)

router = APIRouter()


def get_policy_config(request: Request) -> LicensePolicyConfig:
    return request.app.state.policy_config


@router.get("/policies")
def list_policies(
    usage_policy: Optional[str] = None,
    family: Optional[str] = None,
    format: str = "json",
    config: LicensePolicyConfig = Depends(get_policy_config),
):
    policies = filter_policies(config.get_index().policies(), usage_policy, family)
    if format == "json":
        return [p.model_dump(by_alias=True) for p in policies]
    if format not in SUPPORTED_LIST_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unsupported format: {format}")
    return PlainTextResponse(render_policy_list(policies, format))


@router.get("/policies/{spdx_id}")
def get_policy(spdx_id: str, config: LicensePolicyConfig = Depends(get_policy_config)):
    policy: Optional[LicensePolicy] = config.get_index().get_by_id(spdx_id)
    if policy is None:
        raise HTTPException(status_code=404, detail=f"No policy for SPDX id `{spdx_id}`")
    return policy.model_dump(by_alias=True)


@router.post("/licenses/evaluate", response_model=EvaluateResponse)
def evaluate(payload: EvaluateRequest, report: bool = False,
             config: LicensePolicyConfig = Depends(get_policy_config)):
    # 1) Risolve ogni licenza (una voce errata non blocca le altre)
    results = evaluate_licenses(config.get_resolver(), payload.licenses)

    # 2) Riepilogo per usage policy
    summary = summarize(results)

    # 3) Report testuale su disco (opzionale)
    report_path = generate_report(REPORT_OUTPUT_DIR, results, summary) if report else None

    return EvaluateResponse(results=results, summary=summary, report_path=report_path)


@router.post("/licenses/validate", response_model=ValidateResponse)
def validate_expression(payload: ValidateRequest,
                        config: LicensePolicyConfig = Depends(get_policy_config)):
    tokens = tokenize(payload.expression)
    try:
        root = parse_tokens(tokens, config.max_depth)
    except ParseError as e:
        return ValidateResponse(expression=payload.expression, valid=False, tokens=tokens, error=str(e))

    invalid_ids = [leaf.value for leaf in iter_leaves(root) if not leaf.valid]
    return ValidateResponse(
        expression=payload.expression,
        valid=not invalid_ids,
        tokens=tokens,
        normalized=str(root),
        invalid_ids=invalid_ids,
        license_keys=extract_symbols(payload.expression),
    )
