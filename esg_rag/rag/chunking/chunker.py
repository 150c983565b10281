"""
Token-bounded Document Chunker

Splits normalized document text into overlapping, token-bounded chunks.

Modes:
1. preserve_paragraphs → accumulate paragraphs; a paragraph larger than
   max_tokens is broken into its sentences in place
2. preserve_sentences only → accumulate sentences
3. neither → raw token windows of max_tokens, stepping by max_tokens - overlap_tokens

When the next unit does not fit, the buffer is emitted and the next buffer
starts with the last ``overlap_tokens`` tokens of the emitted chunk. A
paragraph that does not fit behind the full tail is taken sentence by
sentence; the tail only shrinks in front of a single sentence that would
not fit otherwise. A sentence is never split; a sentence larger than
max_tokens becomes an oversized chunk of its own.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ...common.config import ChunkingConfig
from ...exceptions import ConfigurationError
from ..schemas.chunk import TextChunk
from .codec import Codec, TiktokenCodec
from .splitter import (
    TextUnit,
    normalize_text,
    split_paragraphs,
    split_sentences,
    extract_page_number,
)


logger = logging.getLogger(__name__)

REPLACEMENT_CHAR = "\ufffd"


@dataclass
class ChunkingOptions:
    """
    Options for one chunking call.

    Attributes:
        max_tokens: Token limit per chunk
        overlap_tokens: Tokens carried from the end of one chunk into the next
        preserve_paragraphs: Accumulate whole paragraphs
        preserve_sentences: Accumulate whole sentences
        min_chunk_size: Interior chunks below this many tokens are merged forward when possible
    """
    max_tokens: int = 1000
    overlap_tokens: int = 200
    preserve_paragraphs: bool = True
    preserve_sentences: bool = True
    min_chunk_size: int = 100

    @classmethod
    def from_config(cls, config: ChunkingConfig) -> "ChunkingOptions":
        return cls(
            max_tokens=config.max_tokens,
            overlap_tokens=config.overlap_tokens,
            preserve_paragraphs=config.preserve_paragraphs,
            preserve_sentences=config.preserve_sentences,
            min_chunk_size=config.min_chunk_size,
        )

    def validate(self) -> "ChunkingOptions":
        if self.max_tokens <= 0:
            raise ConfigurationError(f"max_tokens must be positive, got {self.max_tokens}", field="max_tokens")
        if self.overlap_tokens < 0:
            raise ConfigurationError(
                f"overlap_tokens must not be negative, got {self.overlap_tokens}", field="overlap_tokens"
            )
        if self.overlap_tokens >= self.max_tokens:
            raise ConfigurationError(
                f"overlap_tokens ({self.overlap_tokens}) must be smaller than max_tokens ({self.max_tokens})",
                field="overlap_tokens",
            )
        if self.min_chunk_size < 0 or self.min_chunk_size > self.max_tokens:
            raise ConfigurationError(
                f"min_chunk_size must be within [0, max_tokens], got {self.min_chunk_size}",
                field="min_chunk_size",
            )
        return self


@dataclass
class _Draft:
    text: str
    start: int
    end: int


class TextChunker:
    """
    Token-bounded chunker with overlap and boundary preservation.

    Token counts and overlap tails always come from the same codec.
    The codec is released with ``dispose()`` or by using the chunker as a
    context manager.
    """

    def __init__(
        self,
        codec: Optional[Codec] = None,
        encoding: str = "cl100k_base",
        options: Optional[ChunkingOptions] = None,
    ):
        """
        Initialize chunker.

        Args:
            codec: Token codec; a tiktoken codec for ``encoding`` is created when omitted
            encoding: tiktoken encoding name
            options: Default options for calls that pass none
        """
        self.codec = codec or TiktokenCodec(encoding)
        self.options = (options or ChunkingOptions()).validate()

    def __enter__(self) -> "TextChunker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def dispose(self) -> None:
        """Release tokenizer resources."""
        self.codec.close()

    def count_tokens(self, text: str) -> int:
        return self.codec.count(text)

    def chunk(self, text: str, options: Optional[ChunkingOptions] = None) -> List[TextChunk]:
        """
        Split text into chunks.

        Args:
            text: Raw document text
            options: Chunking options (instance defaults when omitted)

        Returns:
            Chunks in document order, chunk_index contiguous from 0

        Raises:
            ConfigurationError: If the options are invalid
        """
        opts = (options or self.options).validate()
        normalized = normalize_text(text)
        if not normalized:
            return []

        if opts.preserve_paragraphs:
            drafts = self._chunk_units(split_paragraphs(normalized), opts)
        elif opts.preserve_sentences:
            units: List[TextUnit] = []
            for paragraph in split_paragraphs(normalized):
                units.extend(split_sentences(paragraph))
            drafts = self._chunk_units(units, opts)
        else:
            drafts = self._chunk_tokens(normalized, opts)

        chunks = [
            TextChunk(
                content=draft.text,
                start_char=draft.start,
                end_char=draft.end,
                chunk_index=i,
                token_count=self.codec.count(draft.text),
            )
            for i, draft in enumerate(drafts)
        ]
        logger.debug(f"Chunked {len(normalized)} chars into {len(chunks)} chunks")
        return chunks

    def chunk_with_metadata(
        self,
        text: str,
        document_metadata: Dict[str, Any],
        options: Optional[ChunkingOptions] = None,
    ) -> List[TextChunk]:
        """
        Chunk text and attach document metadata plus page numbers.

        The page number is taken from the last page marker ("Page 12", "p. 12")
        that precedes the chunk in the normalized text.
        """
        normalized = normalize_text(text)
        chunks = self.chunk(text, options)
        return [
            chunk.model_copy(update={
                "metadata": {**document_metadata, **chunk.metadata},
                "page_number": extract_page_number(normalized, chunk.start_char),
            })
            for chunk in chunks
        ]

    def _chunk_units(self, units: List[TextUnit], opts: ChunkingOptions) -> List[_Draft]:
        """Accumulate units into drafts, emitting with an overlap tail when the next unit doesn't fit."""
        drafts: List[_Draft] = []
        queue = deque(units)
        buffer: Optional[_Draft] = None
        # buffer holds only the overlap tail of drafts[-1]
        tail_only = False

        while queue:
            unit = queue.popleft()
            unit_tokens = self.codec.count(unit.text)

            if unit_tokens > opts.max_tokens:
                sentences = split_sentences(unit)
                if len(sentences) > 1:
                    queue.extendleft(reversed(sentences))
                    continue

            if buffer is None:
                buffer = _Draft(unit.text, unit.start, unit.end)
                continue

            candidate = buffer.text + unit.separator + unit.text
            if self.codec.count(candidate) <= opts.max_tokens:
                buffer = _Draft(candidate, buffer.start, unit.end)
                tail_only = False
                continue

            if tail_only:
                # Not even one sentence fits after the full tail
                buffer = self._seed_buffer(drafts[-1], unit, unit_tokens, opts)
                tail_only = False
                continue

            # Undersized interior buffer: merge forward sentence by sentence if the unit allows it
            if self.codec.count(buffer.text) < opts.min_chunk_size:
                sentences = split_sentences(unit)
                if len(sentences) > 1:
                    queue.extendleft(reversed(sentences))
                    continue

            drafts.append(buffer)
            tail = self._overlap_tail(buffer.text, opts.overlap_tokens)
            if tail:
                seeded = _Draft(tail + unit.separator + unit.text, self._tail_start(buffer, tail), unit.end)
                if self.codec.count(seeded.text) <= opts.max_tokens:
                    buffer = seeded
                    continue
                sentences = split_sentences(unit)
                if len(sentences) > 1:
                    # Keep the full tail and let the unit's sentences fill the rest
                    queue.extendleft(reversed(sentences))
                    buffer = _Draft(tail, seeded.start, buffer.end)
                    tail_only = True
                    continue
            buffer = self._seed_buffer(buffer, unit, unit_tokens, opts)

        if buffer is not None and not tail_only:
            drafts.append(buffer)
        return drafts

    def _seed_buffer(self, emitted: _Draft, unit: TextUnit, unit_tokens: int, opts: ChunkingOptions) -> _Draft:
        """
        Start the next buffer with an overlap tail of ``emitted`` followed by a single-sentence ``unit``.

        The tail shrinks when tail + unit would not fit in max_tokens.
        """
        k = min(opts.overlap_tokens, opts.max_tokens - unit_tokens)
        while k > 0:
            tail = self._overlap_tail(emitted.text, k)
            if not tail:
                break
            candidate = tail + unit.separator + unit.text
            excess = self.codec.count(candidate) - opts.max_tokens
            if excess <= 0:
                return _Draft(candidate, self._tail_start(emitted, tail), unit.end)
            k -= excess
        return _Draft(unit.text, unit.start, unit.end)

    @staticmethod
    def _tail_start(emitted: _Draft, tail: str) -> int:
        return max(emitted.start, emitted.end - len(tail))

    def _overlap_tail(self, text: str, k: int) -> str:
        """
        Last ``k`` tokens of text, decoded back to text and stripped.

        A byte-level codec can cut a multi-byte character in half; the slice
        start moves forward until the decoded tail no longer opens with a
        replacement character.
        """
        if k <= 0:
            return ""
        tokens = self.codec.encode(text)
        if len(tokens) <= k:
            return text.strip()
        start = len(tokens) - k
        tail = self.codec.decode(tokens[start:])
        while tail.startswith(REPLACEMENT_CHAR) and start < len(tokens):
            start += 1
            tail = self.codec.decode(tokens[start:])
        return tail.strip()

    def _chunk_tokens(self, text: str, opts: ChunkingOptions) -> List[_Draft]:
        """Raw token windows; the last window is always emitted."""
        tokens = self.codec.encode(text)
        step = opts.max_tokens - opts.overlap_tokens
        drafts: List[_Draft] = []
        n = len(tokens)

        i = 0
        while i < n:
            j = min(i + opts.max_tokens, n)
            start, end = self._window_span(tokens, i, j)
            window_text = text[start:end]
            if window_text:
                drafts.append(_Draft(window_text, start, end))
            if j == n:
                break
            i += step

        return drafts

    def _window_span(self, tokens: List, i: int, j: int) -> Tuple[int, int]:
        """Character span of tokens[i:j], trimmed of surrounding whitespace."""
        prefix = len(self.codec.decode(tokens[:i])) if i else 0
        window = self.codec.decode(tokens[i:j])
        lead = len(window) - len(window.lstrip())
        return prefix + lead, prefix + len(window.rstrip())
