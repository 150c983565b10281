"""
Record Stores

Persistence behind the vector store. A record store only needs four
keyed operations: insert-if-absent, iterate (optionally filtered and
limited), delete everything, and count. Similarity is computed by the
VectorStore, never by the record store.

Stored embeddings may come back as lists, arrays or raw JSON strings;
decoding is the VectorStore's job.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import chromadb
from chromadb.config import Settings

from ..schemas.vectors import VectorRecord


logger = logging.getLogger(__name__)


@dataclass
class StoredRow:
    """A record as read back from storage; ``embedding`` is undecoded."""
    id: str
    content: str
    metadata: Dict[str, Any]
    embedding: Any


def matches_filter(metadata: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    """Equality filter on metadata; a list/tuple/set value means "any of"."""
    if not filter:
        return True
    for key, expected in filter.items():
        actual = metadata.get(key)
        if isinstance(expected, (list, tuple, set)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


class RecordStore(ABC):
    """Keyed storage for vector records."""

    @abstractmethod
    def insert_if_absent(self, records: List[VectorRecord]) -> int:
        """Insert records whose id is not stored yet. Returns the number inserted."""

    @abstractmethod
    def iter_records(self, filter: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> Iterator[StoredRow]:
        """Yield stored rows matching ``filter``, at most ``limit`` of them."""

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every record."""

    @abstractmethod
    def count(self) -> int:
        """Number of stored records."""


class InMemoryRecordStore(RecordStore):
    """
    Process-local record store.

    Iteration works on a snapshot taken under a lock, so a concurrent
    reset never breaks a running search; the search simply sees the
    records that existed when it started.
    """

    def __init__(self):
        self._rows: "OrderedDict[str, StoredRow]" = OrderedDict()
        self._lock = threading.Lock()

    def insert_if_absent(self, records: List[VectorRecord]) -> int:
        inserted = 0
        with self._lock:
            for record in records:
                if record.id in self._rows:
                    continue
                self._rows[record.id] = StoredRow(
                    id=record.id,
                    content=record.content,
                    metadata=dict(record.metadata),
                    embedding=list(record.embedding),
                )
                inserted += 1
        return inserted

    def put_raw(self, row: StoredRow) -> None:
        """Store a row verbatim (embedding may be any encoding). Used for imports."""
        with self._lock:
            self._rows.setdefault(row.id, row)

    def iter_records(self, filter: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> Iterator[StoredRow]:
        with self._lock:
            snapshot = list(self._rows.values())
        yielded = 0
        for row in snapshot:
            if limit is not None and yielded >= limit:
                return
            if matches_filter(row.metadata, filter):
                yielded += 1
                yield row

    def delete_all(self) -> None:
        with self._lock:
            self._rows = OrderedDict()

    def count(self) -> int:
        with self._lock:
            return len(self._rows)


def _chroma_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """ChromaDB accepts only str/int/float/bool metadata values; drop None, stringify the rest."""
    clean = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            clean[key] = value
        else:
            clean[key] = str(value)
    return clean


def _chroma_where(filter: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not filter:
        return None
    clauses = []
    for key, value in filter.items():
        if isinstance(value, (list, tuple, set)):
            clauses.append({key: {"$in": list(value)}})
        else:
            clauses.append({key: value})
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class ChromaRecordStore(RecordStore):
    """
    Persistent record store on ChromaDB.

    Vectors are stored with ``hnsw:space=cosine``; reads use ``get`` and
    return the raw stored vectors so ranking stays exact.
    """

    def __init__(
        self,
        persist_dir: str = "data/chromadb",
        collection_name: str = "esg_documents",
        client=None,
    ):
        """
        Initialize ChromaDB record store.

        Args:
            persist_dir: Directory for ChromaDB persistence
            collection_name: Name of the ChromaDB collection
            client: Pre-built ChromaDB client (a PersistentClient is created when omitted)
        """
        self.collection_name = collection_name
        if client is None:
            self.persist_dir = Path(persist_dir)
            self.persist_dir.mkdir(parents=True, exist_ok=True)
            client = chromadb.PersistentClient(
                path=str(self.persist_dir),
                settings=Settings(anonymized_telemetry=False),
            )
        self.client = client
        self.collection = self._get_or_create_collection()

    def _get_or_create_collection(self):
        return self.client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    def insert_if_absent(self, records: List[VectorRecord]) -> int:
        if not records:
            return 0

        unique: "OrderedDict[str, VectorRecord]" = OrderedDict()
        for record in records:
            unique.setdefault(record.id, record)

        existing = self.collection.get(ids=list(unique), include=[])
        existing_ids = set(existing.get("ids") or [])
        new_records = [r for r in unique.values() if r.id not in existing_ids]
        if not new_records:
            return 0

        self.collection.add(
            ids=[r.id for r in new_records],
            documents=[r.content for r in new_records],
            embeddings=[list(r.embedding) for r in new_records],
            metadatas=[_chroma_metadata(r.metadata) or {"recordId": r.id} for r in new_records],
        )
        return len(new_records)

    def iter_records(self, filter: Optional[Dict[str, Any]] = None, limit: Optional[int] = None) -> Iterator[StoredRow]:
        result = self.collection.get(
            where=_chroma_where(filter),
            limit=limit,
            include=["documents", "metadatas", "embeddings"],
        )
        ids = result.get("ids") or []
        documents = result.get("documents")
        metadatas = result.get("metadatas")
        embeddings = result.get("embeddings")

        for i, record_id in enumerate(ids):
            yield StoredRow(
                id=record_id,
                content=documents[i] if documents is not None else "",
                metadata=dict(metadatas[i] or {}) if metadatas is not None else {},
                embedding=embeddings[i] if embeddings is not None else None,
            )

    def delete_all(self) -> None:
        self.client.delete_collection(name=self.collection_name)
        self.collection = self._get_or_create_collection()
        logger.info(f"Cleared ChromaDB collection: {self.collection_name}")

    def count(self) -> int:
        return self.collection.count()
