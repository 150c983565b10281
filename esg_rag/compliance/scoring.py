"""Per-standard and overall compliance scores, plus issue deduplication."""

from typing import Iterable, List, Sequence, Tuple

from ..common.utils import round_int
from .models import AnalysisDepth, ComplianceIssue, Severity, StandardFinding


SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 3,
    Severity.WARNING: 2,
    Severity.INFO: 1,
}

MAX_WEIGHTS = {
    AnalysisDepth.BASIC: 15,
    AnalysisDepth.DETAILED: 30,
    AnalysisDepth.COMPREHENSIVE: 50,
}

DEDUP_PREFIX_CHARS = 50


def dedup_key(issue: ComplianceIssue) -> Tuple[str, str]:
    return issue.description[:DEDUP_PREFIX_CHARS], issue.category


def deduplicate_issues(issues: Iterable[ComplianceIssue]) -> List[ComplianceIssue]:
    """Drop later issues whose (description prefix, category) was already seen."""
    seen = set()
    unique = []
    for issue in issues:
        key = dedup_key(issue)
        if key in seen:
            continue
        seen.add(key)
        unique.append(issue)
    return unique


def compliance_score(issues: Sequence[ComplianceIssue], depth: AnalysisDepth) -> int:
    """
    Score 0-100 for one standard.

    100 - min(100, weight / max_weight * 100), rounded, floored at 0.
    No issues scores 100.
    """
    if not issues:
        return 100
    total_weight = sum(SEVERITY_WEIGHTS[Severity(issue.severity)] for issue in issues)
    max_weight = MAX_WEIGHTS.get(AnalysisDepth(depth), MAX_WEIGHTS[AnalysisDepth.DETAILED])
    penalty = min(100.0, total_weight / max_weight * 100)
    return max(0, round_int(100 - penalty))


def overall_score(findings: Sequence[StandardFinding]) -> int:
    """Rounded mean of per-standard scores; 0 without findings."""
    if not findings:
        return 0
    return round_int(sum(f.compliance for f in findings) / len(findings))
