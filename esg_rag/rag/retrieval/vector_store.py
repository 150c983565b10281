"""
Vector Store

Exact similarity retrieval over a bounded working set of stored records.

search(query):
1. Embed the query if it is text
2. Read up to ``working_set_limit`` records matching the metadata filter
3. Score every decodable vector with cosine similarity
4. Drop scores below min_similarity, sort descending, keep top_k
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ...exceptions import ConfigurationError
from ..embeddings.generator import EmbeddingsGenerator
from ..embeddings.similarity import cosine_similarity
from ..schemas.vectors import SearchResult, VectorRecord
from .record_store import ChromaRecordStore, InMemoryRecordStore, RecordStore


logger = logging.getLogger(__name__)

Query = Union[str, Sequence[float]]


def decode_embedding(raw: Any) -> Optional[List[float]]:
    """
    Decode a stored vector; None when it is missing or corrupt.

    Accepts lists, numpy arrays and JSON-encoded strings.
    """
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (ValueError, TypeError):
            return None
    if isinstance(raw, np.ndarray):
        raw = raw.tolist()
    if not isinstance(raw, (list, tuple)) or not raw:
        return None
    try:
        vector = [float(x) for x in raw]
    except (TypeError, ValueError):
        return None
    if not all(np.isfinite(vector)):
        return None
    return vector


class VectorStore:
    """
    Read-many / write-occasional vector retrieval.

    add() is an idempotent upsert keyed by record id; reset() empties the
    store, and searches started afterwards see an empty store.
    """

    def __init__(
        self,
        generator: Optional[EmbeddingsGenerator],
        record_store: Optional[RecordStore] = None,
        working_set_limit: int = 1000,
    ):
        """
        Initialize vector store.

        Args:
            generator: Embeds text queries (may be None if only vector queries are used)
            record_store: Storage backend (in-memory when omitted)
            working_set_limit: Max records scored per search
        """
        if working_set_limit <= 0:
            raise ConfigurationError("working_set_limit must be positive", field="working_set_limit")
        self.generator = generator
        self.record_store = record_store or InMemoryRecordStore()
        self.working_set_limit = working_set_limit

    def add(self, records: List[VectorRecord]) -> int:
        """
        Add records, skipping ids that are already stored.

        Returns:
            Number of records actually inserted
        """
        for record in records:
            if not record.id:
                raise ValueError("VectorRecord id must not be empty")
            if not record.embedding:
                raise ValueError(f"VectorRecord {record.id} has no embedding")
        inserted = self.record_store.insert_if_absent(records)
        logger.info(f"Added {inserted} of {len(records)} records to vector store")
        return inserted

    async def search(
        self,
        query: Query,
        top_k: int = 10,
        min_similarity: float = 0.3,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[SearchResult]:
        """
        Find the stored chunks most similar to the query.

        Args:
            query: Query text (embedded first) or a query vector
            top_k: Max number of results
            min_similarity: Results below this cosine score are dropped
            filter: Metadata equality filter, applied before ranking

        Returns:
            Results sorted by similarity, highest first; [] for an empty store

        Raises:
            DimensionMismatch: If a stored vector's length differs from the query's
            ProviderError: If embedding the query text fails
        """
        if top_k <= 0:
            return []

        if isinstance(query, str):
            if self.generator is None:
                raise ConfigurationError("Text queries need an embeddings generator", field="generator")
            query_vector = (await self.generator.embed(query)).embedding
        else:
            query_vector = list(query)

        results: List[SearchResult] = []
        skipped = 0
        for row in self.record_store.iter_records(filter=filter, limit=self.working_set_limit):
            vector = decode_embedding(row.embedding)
            if vector is None:
                skipped += 1
                continue
            similarity = cosine_similarity(query_vector, vector)
            if similarity < min_similarity:
                continue
            results.append(SearchResult(id=row.id, content=row.content, metadata=row.metadata, similarity=similarity))

        if skipped:
            logger.warning(f"Skipped {skipped} records with undecodable embeddings")

        results.sort(key=lambda r: r.similarity, reverse=True)
        results = results[:top_k]
        logger.debug(f"Vector search returned {len(results)} results")
        return results

    def stats(self) -> Dict[str, int]:
        return {"count": self.record_store.count()}

    def reset(self) -> None:
        """Delete all records."""
        self.record_store.delete_all()
        logger.info("Vector store reset completed")


def create_record_store(config) -> RecordStore:
    """Record store for a VectorStoreConfig."""
    backend = config.backend.lower()
    if backend == "memory":
        return InMemoryRecordStore()
    if backend == "chroma":
        return ChromaRecordStore(persist_dir=config.persist_dir, collection_name=config.collection_name)
    raise ConfigurationError(f"Unknown vector store backend: {config.backend}", field="vector_store.backend")
