"""
Vector schemas: embeddings, stored records and search hits.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class EmbeddingResult:
    """One embedded text. Dimensionality is fixed per provider/model."""
    embedding: List[float]
    token_count: int
    model: str

    @property
    def dimension(self) -> int:
        return len(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "embedding": list(self.embedding),
            "tokenCount": self.token_count,
            "model": self.model,
        }


def make_record_id(document_id: str, chunk_index: int) -> str:
    """Stable record id derived from document id + chunk index."""
    return f"{document_id}_chunk_{chunk_index}"


@dataclass(frozen=True)
class VectorRecord:
    """
    A stored chunk vector.

    Created during ingestion and never modified afterwards; the only
    removal path is a full store reset.
    """
    id: str
    content: str
    embedding: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": dict(self.metadata),
            "embedding": list(self.embedding),
        }


@dataclass
class SearchResult:
    """A ranked retrieval hit. ``similarity`` is cosine, in [-1, 1]."""
    id: str
    content: str
    metadata: Dict[str, Any]
    similarity: float

    def with_similarity(self, similarity: float) -> "SearchResult":
        return SearchResult(id=self.id, content=self.content, metadata=self.metadata, similarity=similarity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "metadata": dict(self.metadata),
            "similarity": self.similarity,
        }
