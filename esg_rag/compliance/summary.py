"""Deterministic narrative summary of an analysis run."""

from typing import Sequence

from .models import Severity, StandardFinding


STRONG_THRESHOLD = 80
MODERATE_THRESHOLD = 60


def compliance_band(overall: int) -> str:
    if overall >= STRONG_THRESHOLD:
        return "The report demonstrates strong ESG compliance with most requirements met. "
    if overall >= MODERATE_THRESHOLD:
        return "The report shows moderate ESG compliance but has areas requiring improvement. "
    return "The report has significant compliance gaps that need immediate attention. "


def build_summary(findings: Sequence[StandardFinding], overall: int) -> str:
    total_issues = sum(len(finding.issues) for finding in findings)
    critical_issues = sum(
        1
        for finding in findings
        for issue in finding.issues
        if Severity(issue.severity) is Severity.CRITICAL
    )

    lines = [
        "ESG Compliance Analysis Summary\n\n",
        f"Overall Compliance Score: {overall}%\n",
        f"Total Issues Identified: {total_issues}\n",
        f"Critical Issues: {critical_issues}\n\n",
        compliance_band(overall),
        "\n\nStandard-specific findings:\n",
    ]
    for finding in findings:
        lines.append(f"• {finding.standard}: {finding.compliance}% compliant ({len(finding.issues)} issues)\n")
    return "".join(lines)
