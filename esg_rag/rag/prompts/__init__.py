"""
RAG Prompts

Template registry, context formatting, guardrail heuristics and the
PromptStrategy that ties them together.
"""

from .templates import (
    PromptTemplate,
    ResponseFormat,
    ComplianceTone,
    TemplateRegistry,
    DEFAULT_TEMPLATES,
    INSUFFICIENT_INFORMATION_MESSAGE,
    default_registry,
)
from .formatter import (
    RetrievedChunk,
    NO_CONTEXT_MESSAGE,
    format_source_header,
    format_chunk,
    format_retrieved_context,
)
from .guardrails import (
    detect_potential_hallucination,
    has_citations,
    has_hedge_phrases,
    has_appropriate_uncertainty,
    uses_legal_language,
)
from .strategy import (
    PromptStrategy,
    PromptContext,
    UserContext,
    RequesterRole,
    Urgency,
    GeneratedPrompt,
    ResponseValidation,
    DISCLAIMER,
    CITATION_INSTRUCTION,
    substitute_placeholders,
)

__all__ = [
    "PromptTemplate",
    "ResponseFormat",
    "ComplianceTone",
    "TemplateRegistry",
    "DEFAULT_TEMPLATES",
    "INSUFFICIENT_INFORMATION_MESSAGE",
    "default_registry",
    "RetrievedChunk",
    "NO_CONTEXT_MESSAGE",
    "format_source_header",
    "format_chunk",
    "format_retrieved_context",
    "detect_potential_hallucination",
    "has_citations",
    "has_hedge_phrases",
    "has_appropriate_uncertainty",
    "uses_legal_language",
    "PromptStrategy",
    "PromptContext",
    "UserContext",
    "RequesterRole",
    "Urgency",
    "GeneratedPrompt",
    "ResponseValidation",
    "DISCLAIMER",
    "CITATION_INSTRUCTION",
    "substitute_placeholders",
]
