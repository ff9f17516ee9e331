"""
Module `spdx_utils` — syntax helpers for SPDX identifiers and expressions.

Main functions:
- is_valid_spdx_id(value: str) -> bool
    Checks the shape of an SPDX id (letters, digits, '-' and '.'). It does not
    check that the id exists in the SPDX license list.

- is_valid_family_key(key: str) -> bool
    Family keys follow the SPDX id syntax and must not contain the words
    reserved for internal results ("conflict", "unknown").

- extract_symbols(expr: str) -> List[str]
    Uses the `license_expression` library to list the license keys referenced
    by an expression. Only used for diagnostics and reports; policy decisions
    go through `parser_spdx`.
"""

import logging
import re
from typing import List
from license_expression import ExpressionError, Licensing

from sbom_policy.models.schemas import VALID_USAGE_POLICIES

logger = logging.getLogger(__name__)

licensing = Licensing()

AND = "AND"
OR = "OR"
WITH = "WITH"
PLUS_OPERATOR = "+"

# SPDX ABNF: idstring = 1*(ALPHA / DIGIT / "-" / "." )
_SPDX_ID_RE = re.compile(r"^[a-zA-Z0-9.-]+$")

_RESERVED_FAMILY_WORDS = ("conflict", "unknown")


def is_valid_spdx_id(value: str) -> bool:
    if not value:
        return False
    return _SPDX_ID_RE.match(value) is not None


def is_valid_family_key(key: str) -> bool:
    if not is_valid_spdx_id(key):
        return False
    lowered = key.lower()
    return not any(word in lowered for word in _RESERVED_FAMILY_WORDS)


def is_valid_usage_policy(value: str) -> bool:
    return value in VALID_USAGE_POLICIES


def has_logical_conjunction_or_preposition(value: str) -> bool:
    """
    True when `value` contains AND, OR or WITH anywhere (case-sensitive).

    Some BOM authors put whole expressions in the license "name" field; such
    names must not be matched against family keys.
    """
    if not value:
        return False
    return AND in value or OR in value or WITH in value


def has_unary_plus_operator(token: str) -> bool:
    return bool(token) and token.endswith(PLUS_OPERATOR)


def extract_symbols(expr: str) -> List[str]:
    """
    Returns the license keys (exceptions included) referenced by `expr`,
    in order of appearance and without duplicates. Unparseable input yields
    an empty list.
    """
    if not expr or not expr.strip():
        return []
    try:
        return licensing.license_keys(expr)
    except ExpressionError as e:
        logger.debug("Unable to extract license keys from `%s`: %s", expr, e)
        return []
