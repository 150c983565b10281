"""Shared fixtures: a deterministic word codec and in-process provider fakes"""

import re
from typing import Callable, List, Optional, Sequence, Union

import pytest

from esg_rag.rag.chunking.codec import Codec
from esg_rag.rag.embeddings.generator import EmbeddingsGenerator
from esg_rag.rag.embeddings.providers import EmbeddingProvider, estimate_tokens
from esg_rag.rag.generation.providers import LLMProvider
from esg_rag.rag.retrieval.vector_store import VectorStore
from esg_rag.rag.schemas.response import LLMResponse, TokenUsage
from esg_rag.rag.schemas.vectors import EmbeddingResult, VectorRecord


_WORD_TOKEN_RE = re.compile(r"\s*\S+")

VOCABULARY = ("governance", "board", "climate", "emissions", "scope", "social", "workforce", "water")

DEFAULT_ANSWER = "According to the documents [Source 1], the board must disclose its oversight of climate risks."


class WordCodec(Codec):
    """One token per word, leading whitespace attached; decode(encode(t)) == t."""

    name = "words"

    def __init__(self):
        self.closed = False

    def encode(self, text: str) -> List[str]:
        return _WORD_TOKEN_RE.findall(text)

    def decode(self, tokens: Sequence[str]) -> str:
        return "".join(tokens)

    def close(self) -> None:
        self.closed = True


class KeywordEmbeddingProvider(EmbeddingProvider):
    """Embeds text as keyword counts over a fixed vocabulary."""

    name = "fake"
    model = "fake-keywords"

    def __init__(self, vocabulary: Sequence[str] = VOCABULARY):
        self.vocabulary = tuple(vocabulary)
        self.calls: List[str] = []
        self.batches: List[List[str]] = []
        self.initialized = 0
        self.disposed = False

    async def initialize(self) -> None:
        self.initialized += 1

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        lowered = text.lower()
        return EmbeddingResult(
            embedding=[float(lowered.count(word)) for word in self.vocabulary],
            token_count=estimate_tokens(text),
            model=self.model,
        )

    async def embed_many(self, texts: List[str]) -> List[EmbeddingResult]:
        self.batches.append(list(texts))
        return await super().embed_many(texts)

    def dispose(self) -> None:
        self.disposed = True


Reply = Union[str, Exception, Callable[[str], str]]


class ScriptedLLM(LLMProvider):
    """
    LLM fake answering from a script.

    Each call pops the next reply (a string, an exception to raise, or a
    callable of the user prompt); an empty script yields DEFAULT_ANSWER.
    """

    name = "fake"

    def __init__(self, replies: Optional[List[Reply]] = None, model: str = "fake-llm"):
        self.model = model
        self.replies = list(replies or [])
        self.calls: List[tuple] = []
        self.disposed = False

    async def generate(self, user_prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        self.calls.append((user_prompt, system_prompt))
        reply = self.replies.pop(0) if self.replies else DEFAULT_ANSWER
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(user_prompt)
        return LLMResponse(content=reply, model=self.model, usage=TokenUsage(12, 8, 20))

    def dispose(self) -> None:
        self.disposed = True


def make_record(record_id: str, content: str, embedding: List[float], **metadata) -> VectorRecord:
    return VectorRecord(id=record_id, content=content, embedding=embedding, metadata=metadata)


@pytest.fixture
def word_codec():
    return WordCodec()


@pytest.fixture
def embedding_provider():
    return KeywordEmbeddingProvider()


@pytest.fixture
def generator(embedding_provider):
    return EmbeddingsGenerator(embedding_provider, batch_size=2, batch_delay=0)


@pytest.fixture
def vector_store(generator):
    return VectorStore(generator)


@pytest.fixture
def seeded_store(vector_store, embedding_provider):
    """Vector store holding three regulatory passages, embedded with the keyword provider."""
    passages = [
        ("tcfd_chunk_0", "The board shall describe governance and board oversight of climate-related risks.",
         {"filename": "tcfd.txt", "region": "Global", "organization": "TCFD", "pageNumber": 4}),
        ("esrs_chunk_0", "Undertakings shall disclose scope 1, scope 2 and scope 3 emissions and climate targets.",
         {"filename": "esrs_e1.txt", "region": "EU", "organization": "EFRAG"}),
        ("gri_chunk_0", "The organization shall report workforce and social impacts on local communities.",
         {"filename": "gri_400.txt", "region": "Global", "organization": "GRI"}),
    ]
    records = []
    for record_id, content, metadata in passages:
        lowered = content.lower()
        embedding = [float(lowered.count(word)) for word in embedding_provider.vocabulary]
        records.append(make_record(record_id, content, embedding, **metadata))
    vector_store.add(records)
    return vector_store


@pytest.fixture
def llm():
    return ScriptedLLM()
