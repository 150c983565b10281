"""
Document Processor

chunk → embed → store, per document.

Documents shorter than ``min_document_chars`` are skipped. A failing
document is recorded in the stats and processing moves on to the next one.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ...common.config import IngestionConfig
from ..chunking.chunker import ChunkingOptions, TextChunker
from ..embeddings.generator import EmbeddingsGenerator
from ..retrieval.vector_store import VectorStore
from ..schemas.vectors import VectorRecord, make_record_id
from .loader import LoadedDocument, generate_document_id, load_text_corpus


logger = logging.getLogger(__name__)


@dataclass
class ProcessingStats:
    documents_processed: int = 0
    documents_skipped: int = 0
    chunks_created: int = 0
    embeddings_generated: int = 0
    records_stored: int = 0
    processing_time: float = 0.0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentsProcessed": self.documents_processed,
            "documentsSkipped": self.documents_skipped,
            "chunksCreated": self.chunks_created,
            "embeddingsGenerated": self.embeddings_generated,
            "recordsStored": self.records_stored,
            "processingTime": round(self.processing_time, 3),
            "errors": list(self.errors),
        }


class DocumentProcessor:
    """Turns loaded documents into stored vector records."""

    def __init__(
        self,
        chunker: TextChunker,
        generator: EmbeddingsGenerator,
        vector_store: VectorStore,
        config: Optional[IngestionConfig] = None,
    ):
        self.chunker = chunker
        self.generator = generator
        self.vector_store = vector_store
        self.config = config or IngestionConfig()
        self.options = ChunkingOptions(
            max_tokens=self.config.max_tokens,
            overlap_tokens=self.config.overlap_tokens,
            preserve_paragraphs=True,
            preserve_sentences=True,
            min_chunk_size=min(ChunkingOptions.min_chunk_size, self.config.max_tokens),
        ).validate()

    async def process_document(
        self,
        text: str,
        metadata: Dict[str, Any],
        stats: Optional[ProcessingStats] = None,
    ) -> int:
        """
        Chunk, embed and store one document.

        Args:
            text: Document text
            metadata: Document metadata (filename, region, organization, documentType, ...)
            stats: Stats to update in place

        Returns:
            Number of records stored (0 if the document was skipped)
        """
        stats = stats if stats is not None else ProcessingStats()
        filename = metadata.get("filename", "Unknown")

        if not text or len(text.strip()) < self.config.min_document_chars:
            logger.info(f"Document too short, skipping: {filename}")
            stats.documents_skipped += 1
            return 0

        document_id = metadata.get("documentId") or generate_document_id(
            metadata.get("filepath") or filename, text
        )
        document_metadata = {
            "documentId": document_id,
            "filename": filename,
            "region": metadata.get("region"),
            "organization": metadata.get("organization"),
            "documentType": metadata.get("documentType"),
        }

        chunks = self.chunker.chunk_with_metadata(text, document_metadata, self.options)
        if not chunks:
            logger.info(f"No chunks created, skipping: {filename}")
            stats.documents_skipped += 1
            return 0
        logger.info(f"{filename}: created {len(chunks)} chunks")
        stats.chunks_created += len(chunks)

        embeddings = await self.generator.embed_batch([chunk.content for chunk in chunks])
        stats.embeddings_generated += len(embeddings)

        records = [
            VectorRecord(
                id=make_record_id(document_id, chunk.chunk_index),
                content=chunk.content,
                embedding=result.embedding,
                metadata={
                    **chunk.metadata,
                    "tokenCount": chunk.token_count,
                    "pageNumber": chunk.page_number,
                    "startChar": chunk.start_char,
                    "endChar": chunk.end_char,
                    "chunkIndex": chunk.chunk_index,
                    "embeddingModel": result.model,
                },
            )
            for chunk, result in zip(chunks, embeddings)
            if result.embedding
        ]

        stored = self.vector_store.add(records)
        stats.records_stored += stored
        stats.documents_processed += 1
        logger.info(f"Stored {stored} vectors for {filename}")
        return stored

    async def process_documents(self, documents: Iterable[LoadedDocument]) -> ProcessingStats:
        """Process documents one by one; per-document failures are recorded, not raised."""
        start = time.perf_counter()
        stats = ProcessingStats()

        for document in documents:
            try:
                await self.process_document(document.text, document.metadata, stats)
            except Exception as e:
                message = f"Error processing {document.filename}: {e}"
                logger.error(message)
                stats.errors.append(message)

        stats.processing_time = time.perf_counter() - start
        logger.info(
            f"Processing finished: {stats.documents_processed} documents, {stats.chunks_created} chunks, "
            f"{stats.embeddings_generated} embeddings, {len(stats.errors)} errors in {stats.processing_time:.2f}s"
        )
        return stats

    async def process_corpus(self, root: Optional[str] = None) -> ProcessingStats:
        """Load the text corpus under ``root`` (config.corpus_dir by default) and process it."""
        documents = load_text_corpus(root or self.config.corpus_dir)
        return await self.process_documents(documents)
