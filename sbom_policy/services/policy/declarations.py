"""
License declarations as found in a BOM.

A CycloneDX license choice describes a license in one of three ways: an SPDX
id, a free-text name or an SPDX expression. The kind is decided once, when the
declaration is built, and the resolver dispatches on the concrete type.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

LC_TYPE_ID = "id"
LC_TYPE_NAME = "name"
LC_TYPE_EXPRESSION = "expression"


@dataclass(frozen=True)
class LicenseById:
    spdx_id: str
    license_type = LC_TYPE_ID

    @property
    def value(self) -> str:
        return self.spdx_id


@dataclass(frozen=True)
class LicenseByName:
    name: str
    license_type = LC_TYPE_NAME

    @property
    def value(self) -> str:
        return self.name


@dataclass(frozen=True)
class LicenseByExpression:
    expression: str
    license_type = LC_TYPE_EXPRESSION

    @property
    def value(self) -> str:
        return self.expression


LicenseDeclaration = Union[LicenseById, LicenseByName, LicenseByExpression]


def declaration_from_fields(
    license_id: Optional[str] = None,
    name: Optional[str] = None,
    expression: Optional[str] = None,
) -> LicenseDeclaration:
    """
    Picks the declaration kind from whichever field is populated
    (id first, then name, then expression).

    Raises:
        ValueError: if none of the fields carries a value.
    """
    if license_id:
        return LicenseById(license_id)
    if name:
        return LicenseByName(name)
    if expression:
        return LicenseByExpression(expression)
    raise ValueError("License choice has no id, name or expression")


def declaration_from_choice(choice: Mapping[str, Any]) -> LicenseDeclaration:
    """
    Builds a declaration from a decoded CycloneDX license choice, e.g.
    `{"license": {"id": "MIT"}}` or `{"expression": "MIT OR Apache-2.0"}`.
    """
    if not isinstance(choice, Mapping):
        raise ValueError(f"License choice must be an object, not {type(choice).__name__}")
    lic = choice.get("license") or {}
    if not isinstance(lic, Mapping):
        raise ValueError("License choice `license` must be an object")
    return declaration_from_fields(lic.get("id"), lic.get("name"), choice.get("expression"))
