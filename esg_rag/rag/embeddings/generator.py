"""
Embeddings Generator

Preprocesses text and drives an embedding provider, one call per text or
in sequential fixed-size batches with a short pause between batches.
"""

import asyncio
import logging
from typing import List, Optional

from ...common.config import EmbeddingConfig
from ...common.utils import collapse_whitespace
from ..schemas.vectors import EmbeddingResult
from .providers import EmbeddingProvider, create_embedding_provider


logger = logging.getLogger(__name__)


class EmbeddingsGenerator:
    """
    Provider-agnostic embedding front end.

    Text is whitespace-collapsed, trimmed and cut to ``max_chars`` before it
    reaches the provider, identically for single and batch calls.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        batch_size: int = 10,
        batch_delay: float = 0.1,
        max_chars: int = 8192,
    ):
        self.provider = provider
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.max_chars = max_chars

    @classmethod
    def from_config(cls, config: EmbeddingConfig, provider: Optional[EmbeddingProvider] = None) -> "EmbeddingsGenerator":
        return cls(
            provider=provider or create_embedding_provider(config),
            batch_size=config.batch_size,
            batch_delay=config.batch_delay_seconds,
            max_chars=config.max_chars,
        )

    @property
    def model(self) -> str:
        return self.provider.model

    async def __aenter__(self) -> "EmbeddingsGenerator":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    async def initialize(self) -> None:
        await self.provider.initialize()

    def dispose(self) -> None:
        self.provider.dispose()

    def preprocess(self, text: str) -> str:
        return collapse_whitespace(text)[: self.max_chars]

    async def embed(self, text: str) -> EmbeddingResult:
        return await self.provider.embed(self.preprocess(text))

    async def embed_batch(self, texts: List[str]) -> List[EmbeddingResult]:
        """
        Embed texts in sequential batches.

        Returns:
            One result per input text, in input order

        Raises:
            ProviderError: If any batch fails after retries
        """
        results: List[EmbeddingResult] = []
        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size

        for batch_number, i in enumerate(range(0, len(texts), self.batch_size), start=1):
            batch = [self.preprocess(text) for text in texts[i:i + self.batch_size]]
            logger.info(f"Processing embeddings batch {batch_number}/{total_batches}")
            results.extend(await self.provider.embed_many(batch))

            if batch_number < total_batches and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        return results
