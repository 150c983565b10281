"""
RAG Retrieval

Exact cosine retrieval over pluggable record stores, plus keyword re-ranking.
"""

from .record_store import (
    RecordStore,
    StoredRow,
    InMemoryRecordStore,
    ChromaRecordStore,
    matches_filter,
)
from .vector_store import VectorStore, decode_embedding, create_record_store
from .reranker import KeywordReranker

__all__ = [
    "RecordStore",
    "StoredRow",
    "InMemoryRecordStore",
    "ChromaRecordStore",
    "matches_filter",
    "VectorStore",
    "decode_embedding",
    "create_record_store",
    "KeywordReranker",
]
