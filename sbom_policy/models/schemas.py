"""
Pydantic models shared by the policy engine and the HTTP API.

`LicensePolicy` mirrors one record of the license policy configuration file;
the remaining models describe the request/response payloads of the
`/api/licenses` endpoints.
"""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class UsagePolicy(str, Enum):
    """Compliance disposition assigned to a license declaration."""
    ALLOW = "allow"
    DENY = "deny"
    NEEDS_REVIEW = "needs-review"
    UNDEFINED = "UNDEFINED"
    CONFLICT = "CONFLICT"


# Only these values may appear in a policy configuration file
VALID_USAGE_POLICIES = (UsagePolicy.ALLOW.value, UsagePolicy.DENY.value, UsagePolicy.NEEDS_REVIEW.value)


class LicensePolicy(BaseModel):
    """
    A single entry of the policy configuration.

    An entry either describes one SPDX license (`id` set) or a whole family
    (`id` empty, member ids listed in `children`). `usage_policy` is kept as the
    raw string from the file: invalid values are skipped when the index is
    built instead of failing the whole load.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = ""
    reference: str = ""
    is_osi_approved: bool = Field(False, alias="osi")
    is_fsf_libre: bool = Field(False, alias="fsf")
    is_deprecated: bool = Field(False, alias="deprecated")
    family: str = ""
    name: str = ""
    usage_policy: str = Field("", alias="usagePolicy")
    aliases: List[str] = Field(default_factory=list)
    children: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    urls: List[str] = Field(default_factory=list)
    annotation_refs: List[str] = Field(default_factory=list, alias="annotationRefs")

    @field_validator("id", "reference", "family", "name", "usage_policy", mode="before")
    @classmethod
    def _null_string(cls, value):
        return "" if value is None else value

    @field_validator("aliases", "children", "notes", "urls", "annotation_refs", mode="before")
    @classmethod
    def _null_list(cls, value):
        return [] if value is None else value

    @field_validator("is_osi_approved", "is_fsf_libre", "is_deprecated", mode="before")
    @classmethod
    def _null_bool(cls, value):
        return False if value is None else value


class PolicyDocument(BaseModel):
    """Top-level layout of a policy configuration file."""
    policies: List[LicensePolicy] = Field(default_factory=list)
    annotations: Dict[str, str] = Field(default_factory=dict)

    @field_validator("policies", mode="before")
    @classmethod
    def _null_policies(cls, value):
        return [] if value is None else value

    @field_validator("annotations", mode="before")
    @classmethod
    def _null_annotations(cls, value):
        return {} if value is None else value


class LicenseEntry(BaseModel):
    """
    One license choice found in a BOM, as extracted by the caller.

    Exactly one of `id`, `name` or `expression` is expected to be populated;
    when several are, the first in that order wins.
    """
    id: Optional[str] = None
    name: Optional[str] = None
    expression: Optional[str] = None
    resource_name: Optional[str] = None
    bom_ref: Optional[str] = None


class LicenseEvaluation(BaseModel):
    usage_policy: UsagePolicy
    license_type: Optional[str] = None
    license: Optional[str] = None
    resource_name: Optional[str] = None
    bom_ref: Optional[str] = None
    family: Optional[str] = None
    policy_name: Optional[str] = None
    error: Optional[str] = None


class EvaluateRequest(BaseModel):
    licenses: List[LicenseEntry]


class EvaluateResponse(BaseModel):
    results: List[LicenseEvaluation]
    summary: Dict[str, int]
    report_path: Optional[str] = None


class ValidateRequest(BaseModel):
    expression: str


class ValidateResponse(BaseModel):
    expression: str
    valid: bool
    tokens: List[str]
    normalized: Optional[str] = None
    invalid_ids: List[str] = Field(default_factory=list)
    license_keys: List[str] = Field(default_factory=list)
    error: Optional[str] = None
