"""
Guardrail heuristics for generated answers.

Plain regex checks; they flag likely problems, they do not prove anything.
"""

import re
from typing import List, Pattern


HALLUCINATION_PATTERNS: List[Pattern] = [
    re.compile(r"generally\s+speaking", re.IGNORECASE),
    re.compile(r"typically\s+requires", re.IGNORECASE),
    re.compile(r"usually\s+involves", re.IGNORECASE),
    re.compile(r"common\s+practice", re.IGNORECASE),
    re.compile(r"in\s+most\s+cases", re.IGNORECASE),
    re.compile(r"standard\s+approach", re.IGNORECASE),
]

CITATION_PATTERNS: List[Pattern] = [
    re.compile(r"\[Source\s+\d+\]", re.IGNORECASE),
    re.compile(r"\(.*page\s+\d+.*\)", re.IGNORECASE),
    re.compile(r"section\s+[\d.]+", re.IGNORECASE),
    re.compile(r"article\s+\d+", re.IGNORECASE),
    re.compile(r"paragraph\s+[\d.]+", re.IGNORECASE),
]

UNCERTAINTY_PATTERNS: List[Pattern] = [
    re.compile(r"based\s+on\s+the\s+provided", re.IGNORECASE),
    re.compile(r"according\s+to\s+the\s+documents", re.IGNORECASE),
    re.compile(r"insufficient\s+information", re.IGNORECASE),
    re.compile(r"not\s+specified\s+in\s+the\s+context", re.IGNORECASE),
    re.compile(r"requires\s+additional\s+documentation", re.IGNORECASE),
]

LEGAL_LANGUAGE_PATTERNS: List[Pattern] = [
    re.compile(r"shall\s+", re.IGNORECASE),
    re.compile(r"must\s+", re.IGNORECASE),
    re.compile(r"required\s+to", re.IGNORECASE),
    re.compile(r"obligation", re.IGNORECASE),
    re.compile(r"compliance", re.IGNORECASE),
    re.compile(r"regulatory\s+requirement", re.IGNORECASE),
    re.compile(r"mandatory", re.IGNORECASE),
    re.compile(r"pursuant\s+to", re.IGNORECASE),
]


def _any_match(patterns: List[Pattern], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def has_hedge_phrases(text: str) -> bool:
    """Generic phrasing that often signals claims not taken from the context."""
    return _any_match(HALLUCINATION_PATTERNS, text)


def has_citations(text: str) -> bool:
    return _any_match(CITATION_PATTERNS, text)


def detect_potential_hallucination(text: str) -> bool:
    """Hedge phrases with no citation marker anywhere in the text."""
    return has_hedge_phrases(text) and not has_citations(text)


def has_appropriate_uncertainty(text: str) -> bool:
    return _any_match(UNCERTAINTY_PATTERNS, text)


def uses_legal_language(text: str) -> bool:
    return _any_match(LEGAL_LANGUAGE_PATTERNS, text)
