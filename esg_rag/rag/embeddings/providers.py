"""
Embedding providers.

Two interchangeable strategies behind ``EmbeddingProvider``:
- OpenAIEmbeddingProvider: remote API, retried with exponential back-off
- LocalEmbeddingProvider: in-process sentence-transformers model, loaded once
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI

from ...common.config import EmbeddingConfig
from ...common.retry import retry_async
from ...exceptions import ConfigurationError, ProviderError
from ..schemas.vectors import EmbeddingResult


logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough estimate for models that don't report usage: 1 token ≈ 4 characters."""
    return math.ceil(len(text) / 4)


class EmbeddingProvider(ABC):
    """Provider-agnostic embedding capability."""

    name: str = "embedding"
    model: str = ""

    async def initialize(self) -> None:
        """One-time setup. Idempotent."""

    @abstractmethod
    async def embed(self, text: str) -> EmbeddingResult:
        """Embed one preprocessed text."""

    async def embed_many(self, texts: List[str]) -> List[EmbeddingResult]:
        """Embed one batch of preprocessed texts, in input order."""
        return list(await asyncio.gather(*(self.embed(text) for text in texts)))

    def dispose(self) -> None:
        """Release provider resources."""


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embeddings API (text-embedding-3-small by default)."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "text-embedding-3-small",
        max_retries: int = 3,
        base_delay: float = 1.0,
        client=None,
    ):
        """
        Initialize OpenAI embedding provider.

        Args:
            api_key: OpenAI API key (required unless a client is injected)
            model: Embedding model name
            max_retries: Total attempts per request
            base_delay: First back-off delay in seconds
            client: Pre-built AsyncOpenAI-compatible client
        """
        if client is None:
            if not api_key:
                raise ConfigurationError(
                    "OpenAI API key is required for OpenAI embeddings", field="embeddings.api_key"
                )
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.model = model
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def embed(self, text: str) -> EmbeddingResult:
        async def _call():
            return await self.client.embeddings.create(
                model=self.model, input=text, encoding_format="float"
            )

        response = await retry_async(
            _call, provider=self.name, max_attempts=self.max_retries, base_delay=self.base_delay
        )
        usage = getattr(response, "usage", None)
        tokens = getattr(usage, "total_tokens", None) if usage is not None else None
        return EmbeddingResult(
            embedding=list(response.data[0].embedding),
            token_count=tokens if tokens is not None else estimate_tokens(text),
            model=self.model,
        )


class LocalEmbeddingProvider(EmbeddingProvider):
    """
    In-process sentence-transformers model.

    The model is loaded on first use; concurrent first calls share one load.
    Embeddings are mean-pooled and L2-normalized.
    """

    name = "local"

    def __init__(self, model: str = "sentence-transformers/all-MiniLM-L6-v2", device: Optional[str] = None):
        self.model = model
        self.device = device
        self._model = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    async def initialize(self) -> None:
        if self._model is not None:
            return
        async with self._lock:
            if self._model is not None:
                return
            logger.info(f"Loading local embeddings model: {self.model}")
            try:
                self._model = await asyncio.to_thread(self._load_model)
            except Exception as e:
                logger.error(f"Error loading local embeddings model: {e}")
                raise ProviderError(self.name, f"Failed to load model {self.model}", last_error=e) from e
            logger.info("Local embeddings model loaded successfully")

    def _load_model(self):
        from sentence_transformers import SentenceTransformer
        return SentenceTransformer(self.model, device=self.device)

    async def embed(self, text: str) -> EmbeddingResult:
        return (await self.embed_many([text]))[0]

    async def embed_many(self, texts: List[str]) -> List[EmbeddingResult]:
        await self.initialize()
        try:
            vectors = await asyncio.to_thread(
                self._model.encode,
                texts,
                normalize_embeddings=True,
                convert_to_numpy=True,
                show_progress_bar=False,
            )
        except Exception as e:
            logger.error(f"Error generating local embeddings: {e}")
            raise ProviderError(self.name, f"Local embedding failed: {e}", last_error=e) from e

        return [
            EmbeddingResult(embedding=vector.tolist(), token_count=estimate_tokens(text), model=self.model)
            for text, vector in zip(texts, vectors)
        ]

    def dispose(self) -> None:
        self._model = None


def create_embedding_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """
    Get embedding provider instance for the configured provider type.

    Raises:
        ConfigurationError: If provider type is unknown or the OpenAI key is missing
    """
    provider = config.provider.lower()
    if provider == "openai":
        return OpenAIEmbeddingProvider(
            api_key=config.api_key,
            model=config.openai_model,
            max_retries=config.max_retries,
            base_delay=config.retry_base_delay_seconds,
        )
    if provider == "local":
        return LocalEmbeddingProvider(model=config.local_model)
    raise ConfigurationError(f"Unknown embedding provider type: {config.provider}", field="embeddings.provider")
