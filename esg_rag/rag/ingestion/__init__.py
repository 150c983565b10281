"""RAG Ingestion - corpus loading and chunk → embed → store processing"""

from .loader import LoadedDocument, load_text_corpus, load_text_file, generate_document_id
from .processor import DocumentProcessor, ProcessingStats

__all__ = [
    "LoadedDocument",
    "load_text_corpus",
    "load_text_file",
    "generate_document_id",
    "DocumentProcessor",
    "ProcessingStats",
]
