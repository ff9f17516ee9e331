"""
Package `sbom_policy.services.policy`

This package determines the usage policy (allow / deny / needs-review /
UNDEFINED / CONFLICT) of the license declarations found in a BOM.

Public API:
- LicensePolicyConfig: loads the policy list and builds the index once
- PolicyResolver.resolve(declaration) -> UsagePolicy
- declaration_from_choice / declaration_from_fields: build a LicenseDeclaration

Note: the logic is split across separate modules:
- spdx_utils: SPDX id / family key syntax checks, license key extraction
- parser_spdx: tokenizer and recursive-descent parser (AND/OR/WITH)
- evaluator: bottom-up evaluation of the expression tree
- index: by-id and by-family lookup tables
- resolver: dispatch on the declaration kind
- policy_config: loading of the policy file and initialize-once index
"""

from .declarations import (
    LicenseByExpression,
    LicenseById,
    LicenseByName,
    LicenseDeclaration,
    declaration_from_choice,
    declaration_from_fields,
)
from .errors import ConfigError, IndexBuildError, ParseError, PolicyError
from .evaluator import CombinationMode
from .index import PolicyIndex, build_policy_index
from .policy_config import LicensePolicyConfig
from .resolver import PolicyMatch, PolicyResolver

__all__ = [
    "CombinationMode",
    "ConfigError",
    "IndexBuildError",
    "LicenseByExpression",
    "LicenseById",
    "LicenseByName",
    "LicenseDeclaration",
    "LicensePolicyConfig",
    "ParseError",
    "PolicyError",
    "PolicyIndex",
    "PolicyMatch",
    "PolicyResolver",
    "build_policy_index",
    "declaration_from_choice",
    "declaration_from_fields",
]
