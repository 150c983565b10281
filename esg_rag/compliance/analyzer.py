"""
Compliance Analyzer

STARTED → per standard: questions → RAG query → gap check → issues
        → SCORED → SUMMARIZED → (ANALYTICS) → COMPLETED

Questions run one at a time so issue discovery order (and therefore
deduplication) is deterministic.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from ..common.config import ComplianceConfig
from ..exceptions import AnalysisError
from ..rag.chain import RAGChain
from ..rag.prompts.formatter import RetrievedChunk
from ..rag.prompts.strategy import PromptContext, PromptStrategy
from .analytics import build_analytics
from .extractor import HeuristicIssueExtractor, IssueExtractor
from .models import (
    AnalysisStage,
    ComplianceAnalysisConfig,
    ComplianceAnalysisResult,
    ComplianceAnalytics,
    ComplianceIssue,
    StandardFinding,
)
from .questions import questions_for
from .report import build_compliance_prompt, extract_report_sections
from .rules import standard_organization
from .scoring import compliance_score, deduplicate_issues, overall_score
from .summary import build_summary


logger = logging.getLogger(__name__)


class ComplianceAnalyzer:
    """
    Scores a report against regulatory standards using the RAG chain.

    For every question of a standard the chain answers from the regulatory
    corpus; when sources were found, the answer is used as the requirement
    in a gap-analysis prompt over the report, and the model's reply is
    parsed into issues.
    """

    def __init__(
        self,
        chain: RAGChain,
        prompt_strategy: Optional[PromptStrategy] = None,
        issue_extractor: Optional[IssueExtractor] = None,
        settings: Optional[ComplianceConfig] = None,
    ):
        """
        Initialize analyzer.

        Args:
            chain: RAG chain used for requirement questions; its LLM runs the gap checks
            prompt_strategy: Template engine (the chain's when omitted)
            issue_extractor: Answer parser (line heuristic honoring include_recommendations when omitted)
            settings: Compliance settings

        Raises:
            TemplateNotFound: If the gap-check template is not registered
        """
        self.chain = chain
        self.prompt_strategy = prompt_strategy or chain.prompt_strategy
        self.issue_extractor = issue_extractor
        self.settings = settings or ComplianceConfig()
        self.prompt_strategy.registry.require(self.settings.prompt_template)

    async def analyze_report(
        self,
        content: str,
        report_name: str,
        config: ComplianceAnalysisConfig,
    ) -> ComplianceAnalysisResult:
        """
        Analyze report content against the configured standards.

        Args:
            content: Extracted report text
            report_name: Name used in logs and the result
            config: Standards, depth and output options

        Returns:
            ComplianceAnalysisResult

        Raises:
            AnalysisError: If the report is too short, no standard has usable questions,
                or every analysis question failed
        """
        self._stage(AnalysisStage.STARTED, report_name)
        plan = self._plan(content, report_name, config)
        extractor = self.issue_extractor or HeuristicIssueExtractor(config.include_recommendations)
        sections = extract_report_sections(content)
        logger.info(f"Report '{report_name}' split into {len(sections)} sections")

        findings = []
        checked = failed = 0
        for standard, questions in plan.items():
            self._stage(AnalysisStage.ANALYZING, report_name, f"{standard} ({len(questions)} questions)")
            finding, standard_checked, standard_failed = await self._analyze_standard(
                standard, questions, sections, config, extractor
            )
            findings.append(finding)
            checked += standard_checked
            failed += standard_failed

        if failed and not checked:
            raise AnalysisError(
                report_name,
                f"no analysis question completed a gap check ({failed} failed); "
                "refusing to score a report that was never checked",
            )

        overall = overall_score(findings)
        self._stage(AnalysisStage.SCORED, report_name, f"overall {overall}%")

        summary = build_summary(findings, overall)
        self._stage(AnalysisStage.SUMMARIZED, report_name)

        analytics = ComplianceAnalytics()
        if config.generate_analytics:
            analytics = build_analytics(findings)
            self._stage(AnalysisStage.ANALYTICS, report_name)

        result = ComplianceAnalysisResult(
            overall_score=overall,
            summary=summary,
            findings=findings,
            analytics=analytics,
            report_name=report_name,
        )
        self._stage(AnalysisStage.COMPLETED, report_name)
        return result

    def _plan(self, content: str, report_name: str, config: ComplianceAnalysisConfig) -> Dict[str, List[str]]:
        if len(content.strip()) < self.settings.min_report_chars:
            raise AnalysisError(
                report_name,
                f"report content too short ({len(content.strip())} chars, "
                f"need at least {self.settings.min_report_chars})",
            )

        plan: Dict[str, List[str]] = {}
        for standard in config.standards:
            name = (standard or "").strip()
            if not name or name in plan:
                continue
            questions = questions_for(name, config.analysis_depth)
            if questions:
                plan[name] = questions

        if not plan:
            raise AnalysisError(report_name, "no standard yielded any analysis questions")
        return plan

    async def _analyze_standard(
        self,
        standard: str,
        questions: List[str],
        sections: List[str],
        config: ComplianceAnalysisConfig,
        extractor: IssueExtractor,
    ) -> Tuple[StandardFinding, int, int]:
        """
        Run the questions of one standard.

        Returns the finding, the number of completed gap checks and the
        number of failed questions.
        """
        organization = standard_organization(standard)
        filters = {"organization": organization} if self.settings.filter_by_organization else None
        issues: List[ComplianceIssue] = []
        checked = failed = 0

        for question in questions:
            task = asyncio.ensure_future(
                self._analyze_question(question, standard, organization, filters, sections, extractor)
            )
            try:
                found = await asyncio.shield(task)
            except asyncio.CancelledError:
                logger.warning(f"Analysis cancelled during {standard}; waiting for the in-flight question")
                await self._settle(task, question, standard)
                raise
            except Exception as e:
                logger.warning(f"Failed to analyze question for {standard}: {question!r} ({e})")
                failed += 1
                continue
            if found is None:
                continue
            checked += 1
            issues.extend(found)

        unique = deduplicate_issues(issues)
        if len(unique) < len(issues):
            logger.debug(f"{standard}: dropped {len(issues) - len(unique)} duplicate issues")

        score = compliance_score(unique, config.analysis_depth)
        logger.info(f"{standard}: {score}% compliant ({len(unique)} issues)")
        return StandardFinding(standard=standard, compliance=score, issues=unique), checked, failed

    @staticmethod
    async def _settle(task: asyncio.Future, question: str, standard: str) -> None:
        """Let an in-flight question finish after cancellation; its outcome is discarded."""
        try:
            await task
        except Exception as e:
            logger.warning(f"In-flight question for {standard} failed after cancellation: {question!r} ({e})")

    async def _analyze_question(
        self,
        question: str,
        standard: str,
        organization: str,
        filters: Optional[Dict[str, str]],
        sections: List[str],
        extractor: IssueExtractor,
    ) -> Optional[List[ComplianceIssue]]:
        """Issues found for one question; None when the corpus had nothing to check against."""
        response = await self.chain.query(question, filters)
        if not response.sources:
            logger.debug(f"No sources for {standard} question: {question!r}")
            return None
        return await self._check_report(standard, organization, response.answer, sections, extractor)

    async def _check_report(
        self,
        standard: str,
        organization: str,
        requirements: str,
        sections: List[str],
        extractor: IssueExtractor,
    ) -> List[ComplianceIssue]:
        """Ask the model for gaps between one requirement and the report, then parse the reply."""
        context = PromptContext(
            question=build_compliance_prompt(standard, requirements, sections),
            retrieved_chunks=[
                RetrievedChunk(
                    content=requirements,
                    filename=f"{standard} Requirements",
                    organization=organization,
                )
            ],
        )
        prompt = self.prompt_strategy.generate_prompt(self.settings.prompt_template, context)
        response = await self.chain.llm.generate(prompt.user_prompt, prompt.system_prompt)
        return extractor.extract_issues(response.content, standard)

    @staticmethod
    def _stage(stage: AnalysisStage, report_name: str, detail: str = "") -> None:
        suffix = f": {detail}" if detail else ""
        logger.info(f"[{stage.value.upper()}] {report_name}{suffix}")
