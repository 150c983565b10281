"""
Compliance analysis result shapes.

Everything here is produced once per analysis run and handed to the API
layer through ``to_dict()`` (camelCase wire keys).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..exceptions import ConfigurationError


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AnalysisDepth(str, Enum):
    BASIC = "basic"
    DETAILED = "detailed"
    COMPREHENSIVE = "comprehensive"


class AnalysisStage(str, Enum):
    """Stages of one analysis run, in order."""
    STARTED = "started"
    ANALYZING = "analyzing"
    SCORED = "scored"
    SUMMARIZED = "summarized"
    ANALYTICS = "analytics"
    COMPLETED = "completed"


@dataclass
class ComplianceIssue:
    id: str
    description: str
    severity: Severity
    category: str
    standard: str
    recommendation: Optional[str] = None
    context: Optional[str] = None
    page: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "severity": Severity(self.severity).value,
            "type": self.category,
            "category": self.category,
            "standard": self.standard,
        }
        if self.recommendation is not None:
            data["recommendation"] = self.recommendation
        if self.context is not None:
            data["context"] = self.context
        if self.page is not None:
            data["page"] = self.page
        return data


@dataclass
class StandardFinding:
    standard: str
    compliance: int
    issues: List[ComplianceIssue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "standard": self.standard,
            "compliance": self.compliance,
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class CategoryCount:
    category: str
    count: int
    percentage: int


@dataclass
class SeverityCount:
    severity: str
    count: int
    percentage: int


@dataclass
class IssueArea:
    area: str
    category: str
    count: int


@dataclass
class ImprovementOpportunity:
    area: str
    description: str
    potential: str


@dataclass
class ComplianceAnalytics:
    issues_by_category: List[CategoryCount] = field(default_factory=list)
    issues_by_severity: List[SeverityCount] = field(default_factory=list)
    top_issue_areas: List[IssueArea] = field(default_factory=list)
    improvement_opportunities: List[ImprovementOpportunity] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issuesByCategory": [vars(c).copy() for c in self.issues_by_category],
            "issuesBySeverity": [vars(s).copy() for s in self.issues_by_severity],
            "topIssueAreas": [vars(a).copy() for a in self.top_issue_areas],
            "improvementOpportunities": [vars(o).copy() for o in self.improvement_opportunities],
        }


@dataclass
class ComplianceAnalysisConfig:
    """What to analyze a report against, and how deeply."""
    standards: List[str]
    analysis_depth: AnalysisDepth = AnalysisDepth.DETAILED
    include_recommendations: bool = True
    generate_analytics: bool = True

    def __post_init__(self):
        try:
            self.analysis_depth = AnalysisDepth(self.analysis_depth)
        except ValueError:
            raise ConfigurationError(
                f"Unknown analysis depth: {self.analysis_depth}", field="analysis_depth"
            ) from None


@dataclass
class ComplianceAnalysisResult:
    overall_score: int
    summary: str
    findings: List[StandardFinding]
    analytics: ComplianceAnalytics
    report_name: str
    processed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    status: str = "COMPLETED"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallScore": self.overall_score,
            "summary": self.summary,
            "findings": [finding.to_dict() for finding in self.findings],
            "analytics": self.analytics.to_dict(),
            "processedAt": self.processed_at,
            "reportName": self.report_name,
            "status": self.status,
        }
