"""
ESG RAG

Retrieval-augmented question answering over regulatory ESG documents and
heuristic compliance scoring of sustainability reports.
"""

__version__ = "0.1.0"

from .exceptions import (
    AnalysisError,
    ConfigurationError,
    DimensionMismatch,
    ESGRagError,
    ProviderError,
    QueryFailed,
    TemplateNotFound,
)

__all__ = [
    "__version__",
    "ESGRagError",
    "ConfigurationError",
    "ProviderError",
    "DimensionMismatch",
    "TemplateNotFound",
    "QueryFailed",
    "AnalysisError",
]
