"""
Context formatting for prompts.

Each retrieved chunk gets a one-line source header followed by its content:

    [Source 1: tcfd_guidance.txt | Region: Global | Authority: TCFD | Page: 4 | Section: Strategy]
    <content>
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..schemas.vectors import SearchResult


NO_CONTEXT_MESSAGE = "No relevant regulatory documents found for this query."
CHUNK_DELIMITER = "\n---\n\n"


@dataclass
class RetrievedChunk:
    """A chunk as presented to the prompt."""
    content: str
    filename: str = "Unknown"
    region: Optional[str] = None
    organization: Optional[str] = None
    page_number: Optional[int] = None
    section: Optional[str] = None

    @classmethod
    def from_search_result(cls, result: SearchResult) -> "RetrievedChunk":
        return cls.from_metadata(result.content, result.metadata)

    @classmethod
    def from_metadata(cls, content: str, metadata: Dict[str, Any]) -> "RetrievedChunk":
        return cls(
            content=content,
            filename=metadata.get("filename") or "Unknown",
            region=metadata.get("region") or None,
            organization=metadata.get("organization") or None,
            page_number=metadata.get("pageNumber") or None,
            section=metadata.get("section") or None,
        )


def format_source_header(index: int, chunk: RetrievedChunk) -> str:
    """One-line header for the chunk at 1-based position ``index``."""
    parts = [f"Source {index}: {chunk.filename}"]
    if chunk.region:
        parts.append(f"Region: {chunk.region}")
    if chunk.organization:
        parts.append(f"Authority: {chunk.organization}")
    if chunk.page_number:
        parts.append(f"Page: {chunk.page_number}")
    if chunk.section:
        parts.append(f"Section: {chunk.section}")
    return "[" + " | ".join(parts) + "]"


def format_chunk(index: int, chunk: RetrievedChunk) -> str:
    return f"{format_source_header(index, chunk)}\n{chunk.content}\n"


def format_retrieved_context(chunks: List[RetrievedChunk]) -> str:
    if not chunks:
        return NO_CONTEXT_MESSAGE
    return CHUNK_DELIMITER.join(format_chunk(i, chunk) for i, chunk in enumerate(chunks, start=1))
