"""
Issue extraction from free-text model answers.

``IssueExtractor`` is the seam: the analyzer only calls
``extract_issues(text, standard)``, so a structured-output parser can
replace the line heuristic without touching the orchestration.
"""

import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from .models import ComplianceIssue, Severity
from .rules import categorize_issue


DEFAULT_RECOMMENDATION = "Review and enhance disclosure"
MIN_ISSUE_LINE_CHARS = 20

ISSUE_INDICATORS = [
    re.compile(r"missing|absent|not\s+disclosed|lacks|inadequate|insufficient", re.IGNORECASE),
    re.compile(r"fails\s+to|does\s+not|cannot\s+find|no\s+evidence", re.IGNORECASE),
    re.compile(r"should\s+include|must\s+disclose|required\s+to", re.IGNORECASE),
]

# "- Severity: critical", "Recommendation: ..." and the like describe the current issue
_FIELD_LABEL_RE = re.compile(r"^[\s\-*•\d.)]*(severity|category|recommendation)\b", re.IGNORECASE)
_CRITICAL_RE = re.compile(r"critical", re.IGNORECASE)
_WARNING_RE = re.compile(r"warning", re.IGNORECASE)
_INFO_RE = re.compile(r"\binfo(?:rmational)?\b", re.IGNORECASE)
_RECOMMENDATION_RE = re.compile(r"recommendation", re.IGNORECASE)


class IssueExtractor(ABC):
    """Turns a model answer into compliance issues."""

    @abstractmethod
    def extract_issues(self, text: str, standard: str) -> List[ComplianceIssue]:
        ...


@dataclass
class _IssueDraft:
    description: str
    severity: Optional[Severity] = None
    recommendation: Optional[str] = None
    context: List[str] = field(default_factory=list)


def has_issue_indicator(line: str) -> bool:
    return any(pattern.search(line) for pattern in ISSUE_INDICATORS)


class HeuristicIssueExtractor(IssueExtractor):
    """
    Line-oriented gap detector.

    A line longer than 20 characters containing a gap indicator ("missing",
    "fails to", "should include", ...) starts a new issue. Following lines
    belong to that issue: a line mentioning critical/warning/info sets its
    severity, a recommendation line becomes its recommendation, anything
    else is kept as context.
    """

    def __init__(self, include_recommendations: bool = True):
        self.include_recommendations = include_recommendations

    def extract_issues(self, text: str, standard: str) -> List[ComplianceIssue]:
        drafts: List[_IssueDraft] = []
        current: Optional[_IssueDraft] = None

        for raw_line in text.split("\n"):
            line = raw_line.strip()
            if not line:
                continue

            is_field = _FIELD_LABEL_RE.match(line) is not None
            if not is_field and len(line) > MIN_ISSUE_LINE_CHARS and has_issue_indicator(line):
                current = _IssueDraft(description=line)
                drafts.append(current)
                continue

            if current is None:
                continue
            self._annotate(current, line)

        return [self._complete(draft, standard) for draft in drafts]

    @staticmethod
    def _annotate(draft: _IssueDraft, line: str) -> None:
        if _CRITICAL_RE.search(line):
            draft.severity = Severity.CRITICAL
        elif _WARNING_RE.search(line):
            draft.severity = Severity.WARNING
        elif _RECOMMENDATION_RE.search(line):
            draft.recommendation = line
        elif _INFO_RE.search(line) and _FIELD_LABEL_RE.match(line):
            draft.severity = Severity.INFO
        else:
            draft.context.append(line)

    def _complete(self, draft: _IssueDraft, standard: str) -> ComplianceIssue:
        recommendation = None
        if self.include_recommendations:
            recommendation = draft.recommendation or DEFAULT_RECOMMENDATION
        return ComplianceIssue(
            id=f"{standard.lower()}-{uuid.uuid4().hex[:12]}",
            description=draft.description,
            severity=draft.severity or Severity.WARNING,
            category=categorize_issue(draft.description),
            standard=standard,
            recommendation=recommendation,
            context="\n".join(draft.context) or None,
        )
