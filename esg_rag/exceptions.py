"""
Error taxonomy for the ESG RAG core.

Every error carries a human-readable message plus a details dict so the
API layer can turn it into a structured refusal without parsing strings.
"""

from typing import Any, Dict, Iterable, Optional


class ESGRagError(Exception):
    """Base class for all errors raised by the RAG core."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details: {self.details}"
        return self.message


class ConfigurationError(ESGRagError):
    """
    Raised for invalid options (e.g. overlap >= max tokens).

    Always raised before any processing starts.
    """

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        self.field = field
        super().__init__(message, details)


class ProviderError(ESGRagError):
    """
    Raised when an embedding or language-model call fails for good.

    The last underlying error is kept on ``last_error`` and chained as
    ``__cause__`` by the raiser.
    """

    def __init__(self, provider: str, message: str, attempts: int = 1, last_error: Optional[BaseException] = None):
        self.provider = provider
        self.attempts = attempts
        self.last_error = last_error
        details: Dict[str, Any] = {"provider": provider, "attempts": attempts}
        if last_error is not None:
            details["last_error"] = f"{type(last_error).__name__}: {last_error}"
        super().__init__(message, details)


class DimensionMismatch(ESGRagError):
    """Raised when two vectors of different length are compared."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(
            f"Embedding dimensions differ: {left} != {right}",
            {"left": left, "right": right},
        )


class TemplateNotFound(ESGRagError):
    """Raised when a prompt template id is not registered."""

    def __init__(self, template_id: str, available: Iterable[str] = ()):
        self.template_id = template_id
        super().__init__(
            f"Template not found: {template_id}",
            {"template_id": template_id, "available": sorted(available)},
        )


class QueryFailed(ESGRagError):
    """Raised when a RAG query cannot be answered because a collaborator failed."""

    def __init__(self, question: str, reason: str):
        self.question = question
        self.reason = reason
        super().__init__(f"RAG query failed: {reason}", {"question": question[:200]})


class AnalysisError(ESGRagError):
    """Raised when a compliance analysis run cannot produce a meaningful result."""

    def __init__(self, report_name: str, reason: str):
        self.report_name = report_name
        self.reason = reason
        super().__init__(
            f"Compliance analysis failed for '{report_name}': {reason}",
            {"report_name": report_name},
        )
