"""
RAG Embeddings

Pluggable embedding providers, the batching generator and similarity utilities.
"""

from .providers import (
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    LocalEmbeddingProvider,
    create_embedding_provider,
    estimate_tokens,
)
from .generator import EmbeddingsGenerator
from .similarity import cosine_similarity, find_most_similar, SimilarityMatch

__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "LocalEmbeddingProvider",
    "create_embedding_provider",
    "estimate_tokens",
    "EmbeddingsGenerator",
    "cosine_similarity",
    "find_most_similar",
    "SimilarityMatch",
]
