"""
Chunk Schema

Canonical schema for document chunks produced by the chunker.
A chunk is a token-bounded slice of one document; its ``metadata``
carries the parent document's metadata plus chunk-specific fields.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TextChunk(BaseModel):
    """
    Canonical schema for a document chunk.

    ``chunk_index`` is contiguous and increasing within one document.
    ``token_count`` stays within the configured maximum unless the chunk
    holds a single sentence that is larger than the maximum on its own.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(
        ...,
        min_length=1,
        description="Chunk text content"
    )
    start_char: int = Field(
        ...,
        ge=0,
        description="Start character offset in the normalized source text"
    )
    end_char: int = Field(
        ...,
        ge=0,
        description="End character offset (exclusive) in the normalized source text"
    )
    chunk_index: int = Field(
        ...,
        ge=0,
        description="Position of chunk in document (0-indexed)"
    )
    token_count: int = Field(
        ...,
        ge=0,
        description="Number of tokens in content, counted with the chunker's codec"
    )
    page_number: Optional[int] = Field(
        default=None,
        ge=0,
        description="Page the chunk starts on, when page markers are present"
    )
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Document metadata plus chunk-specific fields"
    )

    @field_validator("end_char")
    @classmethod
    def end_after_start(cls, v: int, info) -> int:
        """Validate end_char is not before start_char"""
        start = info.data.get("start_char", 0)
        if v < start:
            raise ValueError(f"end_char ({v}) must be >= start_char ({start})")
        return v

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "content": self.content,
            "startChar": self.start_char,
            "endChar": self.end_char,
            "chunkIndex": self.chunk_index,
            "tokenCount": self.token_count,
            "metadata": dict(self.metadata),
        }
        if self.page_number is not None:
            data["pageNumber"] = self.page_number
        return data
