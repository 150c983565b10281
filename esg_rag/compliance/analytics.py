"""Aggregate views over the findings of one analysis run."""

from collections import Counter
from typing import List, Sequence

from ..common.utils import round_int
from .models import (
    CategoryCount,
    ComplianceAnalytics,
    ImprovementOpportunity,
    IssueArea,
    Severity,
    SeverityCount,
    StandardFinding,
)


TOP_AREAS = 5
MAX_OPPORTUNITIES = 5
LOW_COMPLIANCE_THRESHOLD = 70
POTENTIAL_PER_CRITICAL = 5
MAX_POTENTIAL = 30


def _percentage(count: int, total: int) -> int:
    return round_int(count / total * 100) if total else 0


def improvement_opportunities(findings: Sequence[StandardFinding]) -> List[ImprovementOpportunity]:
    """One opportunity per standard scoring below 70 that has critical issues."""
    opportunities = []
    for finding in findings:
        if finding.compliance >= LOW_COMPLIANCE_THRESHOLD:
            continue
        critical = sum(1 for issue in finding.issues if Severity(issue.severity) is Severity.CRITICAL)
        if not critical:
            continue
        potential = min(MAX_POTENTIAL, critical * POTENTIAL_PER_CRITICAL)
        opportunities.append(ImprovementOpportunity(
            area=finding.standard,
            description=f"Address {critical} critical compliance gaps in {finding.standard}",
            potential=f"Could improve compliance score by {potential}%",
        ))
    return opportunities[:MAX_OPPORTUNITIES]


def build_analytics(findings: Sequence[StandardFinding]) -> ComplianceAnalytics:
    """Category and severity breakdowns, top issue areas and improvement opportunities."""
    issues = [issue for finding in findings for issue in finding.issues]
    total = len(issues)

    by_category = Counter(issue.category for issue in issues)
    by_severity = Counter(Severity(issue.severity).value for issue in issues)

    return ComplianceAnalytics(
        issues_by_category=[
            CategoryCount(category, count, _percentage(count, total))
            for category, count in by_category.items()
        ],
        issues_by_severity=[
            SeverityCount(severity, count, _percentage(count, total))
            for severity, count in by_severity.items()
        ],
        # Counter.most_common keeps first-seen order among equal counts
        top_issue_areas=[
            IssueArea(area=category, category=category, count=count)
            for category, count in by_category.most_common(TOP_AREAS)
        ],
        improvement_opportunities=improvement_opportunities(findings),
    )
