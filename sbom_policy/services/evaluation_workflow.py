"""
This module orchestrates the evaluation of a batch of license entries taken
from a BOM: it builds each declaration, resolves its usage policy and
summarizes the results.

A bad entry never stops the batch: it is reported as UNDEFINED together with
the reason.
"""

import logging
from typing import Dict, Iterable, List

from sbom_policy.models.schemas import LicenseEntry, LicenseEvaluation, UsagePolicy
from sbom_policy.services.policy import PolicyResolver, declaration_from_fields

logger = logging.getLogger(__name__)


def evaluate_entry(resolver: PolicyResolver, entry: LicenseEntry) -> LicenseEvaluation:
    """
    Resolves the usage policy of a single license entry.

    Args:
        resolver (PolicyResolver): resolver bound to the loaded policy index.
        entry (LicenseEntry): the license choice and the BOM resource it belongs to.

    Returns:
        LicenseEvaluation: one report row.
    """
    try:
        declaration = declaration_from_fields(entry.id, entry.name, entry.expression)
    except ValueError as e:
        logger.warning("Invalid license entry for resource `%s` (%s): %s", entry.resource_name, entry.bom_ref, e)
        return LicenseEvaluation(
            usage_policy=UsagePolicy.UNDEFINED,
            resource_name=entry.resource_name,
            bom_ref=entry.bom_ref,
            error=str(e),
        )

    match = resolver.find_policy(declaration)
    return LicenseEvaluation(
        usage_policy=match.usage_policy,
        license_type=declaration.license_type,
        license=declaration.value,
        resource_name=entry.resource_name,
        bom_ref=entry.bom_ref,
        family=match.family,
        policy_name=match.policy.name if match.policy is not None else None,
        error=match.error,
    )


def evaluate_licenses(resolver: PolicyResolver, entries: Iterable[LicenseEntry]) -> List[LicenseEvaluation]:
    results = [evaluate_entry(resolver, entry) for entry in entries]
    logger.info("Evaluated %d license entries", len(results))
    return results


def summarize(evaluations: Iterable[LicenseEvaluation]) -> Dict[str, int]:
    """Counts rows per usage policy; every policy value is present, even with 0."""
    summary = {policy.value: 0 for policy in UsagePolicy}
    for evaluation in evaluations:
        summary[evaluation.usage_policy.value] += 1
    return summary
