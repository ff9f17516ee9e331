"""
This module provides the policy resolver: given a license declaration found in
a BOM it returns the usage policy that applies to it.

Main Responsibility:
- By id: direct lookup in the id table.
- By name: searches the family keys contained in the free-text name.
- By expression: tokenizes, parses and evaluates the SPDX expression.

Every resolution is a pure function of the (immutable) `PolicyIndex` and the
declaration; a malformed expression only downgrades that declaration to
UNDEFINED.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sbom_policy.models.schemas import LicensePolicy, UsagePolicy
from .declarations import LicenseByExpression, LicenseById, LicenseByName, LicenseDeclaration
from .errors import ParseError
from .evaluator import CombinationMode, eval_node
from .index import PolicyIndex
from .parser_spdx import DEFAULT_MAX_DEPTH, parse_spdx
from .spdx_utils import has_logical_conjunction_or_preposition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyMatch:
    usage_policy: UsagePolicy
    policy: Optional[LicensePolicy] = None
    family: Optional[str] = None
    error: Optional[str] = None


class PolicyResolver:
    def __init__(
        self,
        index: PolicyIndex,
        combination_mode: CombinationMode = CombinationMode.RESTRICTIVE,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.index = index
        self.combination_mode = CombinationMode(combination_mode)
        self.max_depth = max_depth

    def resolve(self, declaration: LicenseDeclaration) -> UsagePolicy:
        return self.find_policy(declaration).usage_policy

    def find_policy(self, declaration: LicenseDeclaration) -> PolicyMatch:
        """
        Resolves a declaration and keeps the details useful for reporting
        (matched policy record, family key, parse error).
        """
        if isinstance(declaration, LicenseById):
            return self._match_by_id(declaration.spdx_id)
        if isinstance(declaration, LicenseByName):
            return self._match_by_name(declaration.name)
        if isinstance(declaration, LicenseByExpression):
            return self._match_expression(declaration.expression)
        raise TypeError(f"Unsupported license declaration: {type(declaration).__name__}")

    def resolve_by_id(self, spdx_id: str) -> UsagePolicy:
        return self._match_by_id(spdx_id).usage_policy

    def resolve_by_name(self, name: str) -> UsagePolicy:
        return self._match_by_name(name).usage_policy

    def resolve_expression(self, expression: str) -> UsagePolicy:
        return self._match_expression(expression).usage_policy

    def _match_by_id(self, spdx_id: str) -> PolicyMatch:
        policy = self.index.get_by_id(spdx_id)
        if policy is None:
            logger.debug("No policy match found for SPDX id `%s`", spdx_id)
            return PolicyMatch(UsagePolicy.UNDEFINED)
        return PolicyMatch(UsagePolicy(policy.usage_policy), policy, policy.family)

    def _match_by_name(self, name: str) -> PolicyMatch:
        if has_logical_conjunction_or_preposition(name):
            logger.warning("License name contains a logical conjunction or preposition: `%s`", name)
            return PolicyMatch(UsagePolicy.UNDEFINED)

        family = self.search_family(name)
        if family is None:
            logger.debug("No policy match found for license name `%s`", name)
            return PolicyMatch(UsagePolicy.UNDEFINED)

        members = self.index.get_by_family(family)
        usage = {p.usage_policy for p in members}
        if len(usage) > 1:
            logger.debug("Usage policy conflict for family `%s` (name `%s`): %s", family, name, sorted(usage))
            return PolicyMatch(UsagePolicy.CONFLICT, members[0], family)
        return PolicyMatch(UsagePolicy(members[0].usage_policy), members[0], family)

    def search_family(self, name: str) -> Optional[str]:
        """
        Returns the family key found inside `name`. When several keys occur,
        the longest wins; ties go to the one declared first in the configuration.
        """
        best = None
        for family in self.index.families():
            if family in name and (best is None or len(family) > len(best)):
                best = family
        if best is not None:
            logger.debug("Family `%s` found in license name `%s`", best, name)
        return best

    def _match_expression(self, expression: str) -> PolicyMatch:
        try:
            root = parse_spdx(expression, self.max_depth)
        except ParseError as e:
            logger.warning("Invalid license expression `%s`: %s", expression, e)
            return PolicyMatch(UsagePolicy.UNDEFINED, error=str(e))

        usage_policy = eval_node(root, self.resolve_by_id, self.combination_mode)
        if root.is_simple:
            match = self._match_by_id(root.value)
            return PolicyMatch(usage_policy, match.policy, match.family)
        return PolicyMatch(usage_policy)
