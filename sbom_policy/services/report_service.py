"""
This module renders the human-readable outputs of the policy engine:
- the list of configured license policies (text, csv or markdown);
- the license evaluation report, which keeps the UNDEFINED / CONFLICT rows
  apart from the confidently resolved ones so they can be triaged.
"""

import csv
import io
import os
from typing import Iterable, List, Optional

from sbom_policy.models.schemas import LicenseEvaluation, LicensePolicy, UsagePolicy

FORMAT_TEXT = "text"
FORMAT_CSV = "csv"
FORMAT_MARKDOWN = "markdown"
SUPPORTED_LIST_FORMATS = (FORMAT_TEXT, FORMAT_CSV, FORMAT_MARKDOWN)

POLICY_LIST_TITLES = ["usage-policy", "family", "id", "name", "osi", "fsf", "deprecated", "reference", "aliases", "annotations", "notes"]

MSG_OUTPUT_NO_POLICIES_FOUND = "no license policies found"

_TRIAGE_POLICIES = {UsagePolicy.UNDEFINED, UsagePolicy.CONFLICT}


def filter_policies(
    policies: Iterable[LicensePolicy],
    usage_policy: Optional[str] = None,
    family: Optional[str] = None,
) -> List[LicensePolicy]:
    """Keeps the policies matching the given usage policy and family (exact match); sorted by family, id."""
    selected = [
        p for p in policies
        if (usage_policy is None or p.usage_policy == usage_policy)
        and (family is None or p.family == family)
    ]
    return sorted(selected, key=lambda p: (p.family, p.id))


def _policy_row(policy: LicensePolicy) -> List[str]:
    return [
        policy.usage_policy,
        policy.family,
        policy.id,
        policy.name,
        str(policy.is_osi_approved).lower(),
        str(policy.is_fsf_libre).lower(),
        str(policy.is_deprecated).lower(),
        policy.reference,
        ",".join(policy.aliases),
        ",".join(policy.annotation_refs),
        ",".join(policy.notes),
    ]


def render_policy_list(policies: List[LicensePolicy], fmt: str = FORMAT_TEXT) -> str:
    """
    Renders policies as a table.

    Args:
        policies (List[LicensePolicy]): policies to list, already filtered/sorted.
        fmt (str): one of "text", "csv", "markdown".

    Raises:
        ValueError: for unsupported formats.
    """
    rows = [_policy_row(p) for p in policies]

    if fmt == FORMAT_CSV:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(POLICY_LIST_TITLES)
        writer.writerows(rows)
        return buf.getvalue()

    if fmt == FORMAT_MARKDOWN:
        lines = [
            "| " + " | ".join(POLICY_LIST_TITLES) + " |",
            "| " + " | ".join(":--" for _ in POLICY_LIST_TITLES) + " |",
        ]
        lines += ["| " + " | ".join(cell.replace("|", "\\|") for cell in row) + " |" for row in rows]
        if not rows:
            lines.append(MSG_OUTPUT_NO_POLICIES_FOUND)
        return "\n".join(lines) + "\n"

    if fmt == FORMAT_TEXT:
        table = [POLICY_LIST_TITLES, ["-" * len(t) for t in POLICY_LIST_TITLES]] + rows
        widths = [max(len(r[i]) for r in table) for i in range(len(POLICY_LIST_TITLES))]
        lines = ["  ".join(cell.ljust(widths[i]) for i, cell in enumerate(r)).rstrip() for r in table]
        if not rows:
            lines.append(MSG_OUTPUT_NO_POLICIES_FOUND)
        return "\n".join(lines) + "\n"

    raise ValueError(f"Unsupported format `{fmt}`; expected one of: {', '.join(SUPPORTED_LIST_FORMATS)}")


def _evaluation_line(e: LicenseEvaluation) -> str:
    resource = e.resource_name or e.bom_ref or "-"
    line = f"- [{e.usage_policy.value}] {resource} → {e.license or '-'} ({e.license_type or 'invalid'})"
    if e.family:
        line += f" family: {e.family}"
    return line


def render_evaluation_report(evaluations: List[LicenseEvaluation], summary: dict) -> str:
    """Text report: resolved rows first, then rows needing triage, then the summary."""
    resolved = [e for e in evaluations if e.usage_policy not in _TRIAGE_POLICIES]
    triage = [e for e in evaluations if e.usage_policy in _TRIAGE_POLICIES]

    out = ["License Policy Report", "---------------------", ""]
    out.append(f"Resolved ({len(resolved)})")
    out += [_evaluation_line(e) for e in resolved]
    out.append("")
    out.append(f"Needs triage: UNDEFINED / CONFLICT ({len(triage)})")
    for e in triage:
        out.append(_evaluation_line(e))
        if e.error:
            out.append(f"  Reason: {e.error}")
    out.append("")
    out.append("Summary")
    out += [f"  {policy}: {count}" for policy, count in summary.items()]
    return "\n".join(out) + "\n"


def generate_report(output_dir: str, evaluations: List[LicenseEvaluation], summary: dict,
                    filename: str = "LICENSE_POLICY_REPORT.txt") -> str:
    """
    Writes the evaluation report to disk.

    Returns:
        str: The path to the generated report file.
    """
    os.makedirs(output_dir, exist_ok=True)
    report_path = os.path.join(output_dir, filename)
    with open(report_path, "w", encoding="utf-8") as f:
        f.write(render_evaluation_report(evaluations, summary))
    return report_path
