"""
Standard-specific analysis questions.

Depth selects a prefix of each list: basic → 3, detailed → 6,
comprehensive → all. Standards without a curated list get three
generic questions.
"""

from typing import Dict, List, Tuple

from .models import AnalysisDepth


QUESTION_BANK: Dict[str, Tuple[str, ...]] = {
    "TCFD": (
        "What are the TCFD governance disclosure requirements?",
        "What climate strategy disclosures are required under TCFD?",
        "What climate risk management disclosures must be made?",
        "What climate metrics and targets must be disclosed under TCFD?",
        "How should companies assess climate-related financial risks?",
        "What scenario analysis requirements exist under TCFD?",
        "What Scope 1, Scope 2 and Scope 3 greenhouse gas emissions disclosures does TCFD recommend?",
        "How should the resilience of the organization's strategy be described under TCFD?",
    ),
    "ESRS": (
        "What are the ESRS governance arrangements disclosure requirements?",
        "What environmental disclosure requirements exist under ESRS E1?",
        "What social workforce disclosure requirements are mandated by ESRS S1?",
        "What double materiality assessment requirements apply under ESRS?",
        "What due diligence process disclosures are required under ESRS?",
        "What sustainability metrics must be disclosed under ESRS?",
        "What transition plan for climate change mitigation disclosures are required under ESRS E1?",
        "What value chain information must be included under ESRS?",
    ),
    "GRI": (
        "What organizational context disclosures are required under GRI?",
        "What stakeholder engagement disclosures must be made per GRI?",
        "What material topic identification requirements exist in GRI?",
        "What environmental impact disclosures are mandated by GRI?",
        "What social impact disclosures are required under GRI?",
        "What governance practice disclosures must be made per GRI?",
        "What GRI content index and statement of use requirements apply?",
        "What reporting period and restatement of information disclosures are required under GRI?",
    ),
    "SASB": (
        "What industry-specific sustainability disclosures are required under SASB?",
        "What material sustainability factors must be disclosed per SASB?",
        "What environmental performance metrics are mandated by SASB?",
        "What social capital disclosures are required under SASB?",
        "What governance disclosures must be made per SASB standards?",
        "What forward-looking sustainability information should be disclosed per SASB?",
        "What activity metrics must accompany SASB accounting metrics?",
        "What human capital disclosures are required under SASB?",
    ),
}

FALLBACK_QUESTION_TEMPLATES: Tuple[str, ...] = (
    "What are the key disclosure requirements under {standard}?",
    "What compliance obligations exist under {standard}?",
    "What reporting requirements are mandated by {standard}?",
)

DEPTH_PREFIX = {
    AnalysisDepth.BASIC: 3,
    AnalysisDepth.DETAILED: 6,
    AnalysisDepth.COMPREHENSIVE: None,
}


def base_questions(standard: str) -> List[str]:
    curated = QUESTION_BANK.get(standard.upper())
    if curated is not None:
        return list(curated)
    return [template.format(standard=standard) for template in FALLBACK_QUESTION_TEMPLATES]


def questions_for(standard: str, depth: AnalysisDepth) -> List[str]:
    """Analysis questions for a standard at the given depth."""
    questions = base_questions(standard)
    limit = DEPTH_PREFIX[AnalysisDepth(depth)]
    return questions if limit is None else questions[:limit]
