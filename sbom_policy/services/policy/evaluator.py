"""
This module evaluates an expression tree built by `parser_spdx` into a single
usage policy.

Leaves are looked up through a caller supplied function (normally
`PolicyResolver.resolve_by_id`), WITH nodes take the policy of their license
(the exception itself is not policy-checked) and AND/OR nodes combine their
operands according to the selected combination mode:

- "restrictive": the most restrictive operand wins, for AND and OR alike,
  using Deny > Conflict > NeedsReview > Undefined > Allow.
- "spdx": UNDEFINED on either side gives UNDEFINED, CONFLICT on either side
  gives CONFLICT; AND is pessimistic (deny > needs-review > allow) while OR is
  optimistic (allow > needs-review > deny).

The result of every node is memoized on `node.usage_policy`.
"""

import logging
from enum import Enum
from typing import Callable

from sbom_policy.models.schemas import UsagePolicy
from .parser_spdx import And, Leaf, Node, Or, With, walk_post_order

logger = logging.getLogger(__name__)


class CombinationMode(str, Enum):
    RESTRICTIVE = "restrictive"
    SPDX = "spdx"


_RESTRICTIVENESS = {
    UsagePolicy.ALLOW: 0,
    UsagePolicy.UNDEFINED: 1,
    UsagePolicy.NEEDS_REVIEW: 2,
    UsagePolicy.CONFLICT: 3,
    UsagePolicy.DENY: 4,
}


def _most_restrictive(a: UsagePolicy, b: UsagePolicy) -> UsagePolicy:
    return a if _RESTRICTIVENESS[a] >= _RESTRICTIVENESS[b] else b


def _first_present(a: UsagePolicy, b: UsagePolicy, order) -> UsagePolicy:
    for candidate in order:
        if candidate in (a, b):
            return candidate
    return UsagePolicy.UNDEFINED


def _combine_and(a: UsagePolicy, b: UsagePolicy, mode: CombinationMode) -> UsagePolicy:
    if mode == CombinationMode.RESTRICTIVE:
        return _most_restrictive(a, b)
    return _first_present(a, b, (
        UsagePolicy.UNDEFINED,
        UsagePolicy.CONFLICT,
        UsagePolicy.DENY,
        UsagePolicy.NEEDS_REVIEW,
        UsagePolicy.ALLOW,
    ))


def _combine_or(a: UsagePolicy, b: UsagePolicy, mode: CombinationMode) -> UsagePolicy:
    if mode == CombinationMode.RESTRICTIVE:
        return _most_restrictive(a, b)
    return _first_present(a, b, (
        UsagePolicy.UNDEFINED,
        UsagePolicy.CONFLICT,
        UsagePolicy.ALLOW,
        UsagePolicy.NEEDS_REVIEW,
        UsagePolicy.DENY,
    ))


def eval_node(
    root: Node,
    lookup: Callable[[str], UsagePolicy],
    mode: CombinationMode = CombinationMode.RESTRICTIVE,
) -> UsagePolicy:
    """
    Evaluates the tree rooted at `root` bottom-up.

    Args:
        root (Node): root of a parsed expression.
        lookup (Callable[[str], UsagePolicy]): resolves one SPDX id.
        mode (CombinationMode): how AND/OR operands are combined.

    Returns:
        UsagePolicy: the policy of the whole expression.
    """
    if root.usage_policy is not None:
        return root.usage_policy

    if root.is_simple:
        root.usage_policy = _eval_leaf(root, lookup)
        return root.usage_policy

    for node in walk_post_order(root):
        if node.usage_policy is not None:
            continue
        if isinstance(node, Leaf):
            node.usage_policy = _eval_leaf(node, lookup)
        elif isinstance(node, With):
            node.usage_policy = node.left.usage_policy
        elif isinstance(node, And):
            node.usage_policy = _combine_and(node.left.usage_policy, node.right.usage_policy, mode)
        elif isinstance(node, Or):
            node.usage_policy = _combine_or(node.left.usage_policy, node.right.usage_policy, mode)
        else:
            raise TypeError(f"Unrecognized expression node: {type(node).__name__}")

    logger.debug("Expression policy (%s): %s", mode.value, root.usage_policy.value)
    return root.usage_policy


def _eval_leaf(leaf: Leaf, lookup: Callable[[str], UsagePolicy]) -> UsagePolicy:
    if not leaf.valid:
        logger.debug("Invalid SPDX id `%s` resolves to %s", leaf.value, UsagePolicy.UNDEFINED.value)
        return UsagePolicy.UNDEFINED
    return lookup(leaf.value)
