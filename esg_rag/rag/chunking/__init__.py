"""
RAG Chunking

Token-bounded, overlapping chunking with paragraph and sentence preservation.
"""

from .codec import Codec, TiktokenCodec
from .splitter import (
    TextUnit,
    normalize_text,
    split_paragraphs,
    split_sentences,
    extract_page_number,
)
from .chunker import TextChunker, ChunkingOptions

__all__ = [
    "Codec",
    "TiktokenCodec",
    "TextUnit",
    "normalize_text",
    "split_paragraphs",
    "split_sentences",
    "extract_page_number",
    "TextChunker",
    "ChunkingOptions",
]
