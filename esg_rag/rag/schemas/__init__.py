"""
RAG Schemas

Shapes exchanged between the pipeline stages and with the API layer.
"""

from .chunk import TextChunk
from .vectors import EmbeddingResult, VectorRecord, SearchResult, make_record_id
from .response import (
    TokenUsage,
    LLMResponse,
    SourceAttribution,
    ResponseMetadata,
    RAGResponse,
)

__all__ = [
    "TextChunk",
    "EmbeddingResult",
    "VectorRecord",
    "SearchResult",
    "make_record_id",
    "TokenUsage",
    "LLMResponse",
    "SourceAttribution",
    "ResponseMetadata",
    "RAGResponse",
]
