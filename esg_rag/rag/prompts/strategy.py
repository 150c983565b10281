"""
Prompt Strategy Engine

Selects a template, assembles a grounded prompt from retrieved chunks and
checks/post-processes generated answers against the guardrail heuristics.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .formatter import RetrievedChunk, format_retrieved_context
from .guardrails import (
    detect_potential_hallucination,
    has_appropriate_uncertainty,
    has_citations,
    uses_legal_language,
)
from .templates import (
    INSUFFICIENT_INFORMATION_MESSAGE,
    ComplianceTone,
    TemplateRegistry,
    default_registry,
)


logger = logging.getLogger(__name__)

DISCLAIMER = (
    "\n\n*Please note: This response is based exclusively on the available ESG documents. "
    "For comprehensive guidance, consider consulting the complete regulatory framework or "
    "seeking professional advice.*"
)

CITATION_INSTRUCTION = "\n\nInclude source references in your response using the format [Source X] where appropriate."

_PLACEHOLDER_RE = re.compile(r"\{(context|question)\}")


class RequesterRole(str, Enum):
    AUDITOR = "auditor"
    COMPLIANCE_OFFICER = "compliance-officer"
    LEGAL_COUNSEL = "legal-counsel"
    SUSTAINABILITY_MANAGER = "sustainability-manager"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class UserContext:
    role: Optional[RequesterRole] = None
    organization: Optional[str] = None
    urgency: Optional[Urgency] = None

    def render(self) -> str:
        parts = []
        if self.role:
            parts.append(f"Role: {RequesterRole(self.role).value}")
        if self.organization:
            parts.append(f"Organization: {self.organization}")
        if self.urgency:
            parts.append(f"Urgency: {Urgency(self.urgency).value}")
        return " | ".join(parts)


@dataclass
class PromptContext:
    question: str
    retrieved_chunks: List[RetrievedChunk] = field(default_factory=list)
    user_context: Optional[UserContext] = None


@dataclass(frozen=True)
class GeneratedPrompt:
    system_prompt: str
    user_prompt: str
    guardrails: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "systemPrompt": self.system_prompt,
            "userPrompt": self.user_prompt,
            "guardrails": list(self.guardrails),
        }


@dataclass
class ResponseValidation:
    is_valid: bool
    violations: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "violations": list(self.violations),
            "recommendations": list(self.recommendations),
        }


def substitute_placeholders(template: str, context: str, question: str) -> str:
    """Replace {context}/{question} in a single pass; substituted text is never re-scanned."""
    values = {"context": context, "question": question}
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)


class PromptStrategy:
    """
    Template-driven prompt assembly and answer validation.

    Templates come from an immutable registry passed in at construction.
    """

    def __init__(self, registry: Optional[TemplateRegistry] = None):
        self.registry = registry or default_registry()

    def available_templates(self) -> List[str]:
        return list(self.registry)

    def generate_prompt(
        self,
        template_id: str,
        context: PromptContext,
        include_citation_instruction: bool = False,
    ) -> GeneratedPrompt:
        """
        Build the system and user prompt for a question.

        Args:
            template_id: Registered template id
            context: Question, retrieved chunks and optional requester context
            include_citation_instruction: Ask the model to cite as [Source X]

        Raises:
            TemplateNotFound: If template_id is not registered
        """
        template = self.registry.require(template_id)

        formatted_context = format_retrieved_context(context.retrieved_chunks)
        user_prompt = substitute_placeholders(template.user_prompt_template, formatted_context, context.question)

        if context.user_context is not None:
            rendered = context.user_context.render()
            if rendered:
                user_prompt += f"\n\nREQUESTER CONTEXT: {rendered}"

        if include_citation_instruction:
            user_prompt += CITATION_INSTRUCTION

        return GeneratedPrompt(
            system_prompt=template.system_prompt,
            user_prompt=user_prompt,
            guardrails=list(template.guardrails),
        )

    def validate_response(self, response: str, template_id: str) -> ResponseValidation:
        """
        Check an answer against the guardrail heuristics.

        Raises:
            TemplateNotFound: If template_id is not registered
        """
        template = self.registry.require(template_id)
        violations: List[str] = []
        recommendations: List[str] = []

        if detect_potential_hallucination(response):
            violations.append("Potential hallucination detected - unsupported claims without citations")
            recommendations.append("Ensure all claims are supported by retrieved context")

        if not has_citations(response):
            violations.append("Missing regulatory citations")
            recommendations.append("Add specific document references and section numbers")

        if not has_appropriate_uncertainty(response):
            recommendations.append("Consider expressing uncertainty when context is limited")

        if template.compliance_tone == ComplianceTone.LEGAL and not uses_legal_language(response):
            recommendations.append("Use more precise legal terminology")

        return ResponseValidation(
            is_valid=not violations,
            violations=violations,
            recommendations=recommendations,
        )

    def apply_guardrails(self, response: str, context: PromptContext) -> str:
        """
        Post-process an answer.

        No retrieved chunks → the fixed insufficient-information message,
        whatever was generated. Hedge phrases without citations → the answer
        with a disclaimer appended.
        """
        if not context.retrieved_chunks:
            return INSUFFICIENT_INFORMATION_MESSAGE

        if detect_potential_hallucination(response):
            logger.debug("Appending disclaimer to uncited answer with hedge phrases")
            return response + DISCLAIMER

        return response
