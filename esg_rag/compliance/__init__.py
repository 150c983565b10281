"""Compliance analysis over the RAG chain: questions, issue extraction, scoring, analytics."""

from .analyzer import ComplianceAnalyzer
from .extractor import HeuristicIssueExtractor, IssueExtractor
from .models import (
    AnalysisDepth,
    AnalysisStage,
    ComplianceAnalysisConfig,
    ComplianceAnalysisResult,
    ComplianceAnalytics,
    ComplianceIssue,
    Severity,
    StandardFinding,
)
from .questions import questions_for
from .report import extract_report_sections
from .rules import categorize_issue, standard_organization
from .scoring import compliance_score, deduplicate_issues, overall_score

__all__ = [
    "ComplianceAnalyzer",
    "IssueExtractor",
    "HeuristicIssueExtractor",
    "AnalysisDepth",
    "AnalysisStage",
    "ComplianceAnalysisConfig",
    "ComplianceAnalysisResult",
    "ComplianceAnalytics",
    "ComplianceIssue",
    "Severity",
    "StandardFinding",
    "questions_for",
    "extract_report_sections",
    "categorize_issue",
    "standard_organization",
    "compliance_score",
    "deduplicate_issues",
    "overall_score",
]
