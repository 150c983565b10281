"""
RAG response schemas.

These are the wire shapes handed to the API layer; ``to_dict`` emits the
camelCase keys it expects and leaves optional fields out when unset.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(frozen=True)
class LLMResponse:
    """Output of a language-model provider call."""
    content: str
    model: str
    usage: Optional[TokenUsage] = None


@dataclass
class SourceAttribution:
    """One retrieved chunk as cited in a RAG response."""
    id: str
    filename: str
    similarity: float
    snippet: str
    region: Optional[str] = None
    organization: Optional[str] = None
    page_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "filename": self.filename,
            "similarity": self.similarity,
            "snippet": self.snippet,
        }
        if self.region is not None:
            data["region"] = self.region
        if self.organization is not None:
            data["organization"] = self.organization
        if self.page_number is not None:
            data["pageNumber"] = self.page_number
        return data


@dataclass
class ResponseMetadata:
    retrieved_chunks: int
    llm_model: str
    processing_time_ms: int
    usage: Optional[TokenUsage] = None
    context_chunks: Optional[int] = None
    validation: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "retrievedChunks": self.retrieved_chunks,
            "llmModel": self.llm_model,
            "processingTimeMs": self.processing_time_ms,
        }
        if self.usage is not None:
            data["usage"] = self.usage.to_dict()
        if self.context_chunks is not None:
            data["contextChunks"] = self.context_chunks
        if self.validation is not None:
            data["validation"] = self.validation
        return data


@dataclass
class RAGResponse:
    answer: str
    sources: List[SourceAttribution] = field(default_factory=list)
    metadata: Optional[ResponseMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": [s.to_dict() for s in self.sources],
            "metadata": self.metadata.to_dict() if self.metadata else {},
        }
