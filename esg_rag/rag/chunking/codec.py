"""
Token codecs.

The chunker and the context token budget must count tokens with the same
codec, otherwise chunk token counts and prompt budgets drift apart.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

import tiktoken


class Codec(ABC):
    """Byte-pair-style encoder: encode/decode/count plus explicit release."""

    name: str = "codec"

    @abstractmethod
    def encode(self, text: str) -> List:
        ...

    @abstractmethod
    def decode(self, tokens: Sequence) -> str:
        ...

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self.encode(text))

    def close(self) -> None:
        """Release tokenizer resources. Safe to call more than once."""


class TiktokenCodec(Codec):
    """
    tiktoken-backed codec (``cl100k_base`` by default, the GPT-3.5/4 encoding).

    The BPE table is loaded on first use and dropped by ``close()``;
    using the codec again afterwards reloads it.
    """

    def __init__(self, encoding_name: str = "cl100k_base"):
        self.name = encoding_name
        self._encoding = None

    @property
    def encoding(self):
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(self.name)
        return self._encoding

    def encode(self, text: str) -> List[int]:
        return self.encoding.encode(text, disallowed_special=())

    def decode(self, tokens: Sequence[int]) -> str:
        return self.encoding.decode(list(tokens))

    def close(self) -> None:
        self._encoding = None
