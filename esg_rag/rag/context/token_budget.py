"""
Token Budget Management

Caps the retrieved context sent to the language model.

Rules:
- Chunks are admitted in rank order while the formatted context fits
- If overflow: drop lowest-ranked chunks first
- Never split a chunk
- Minimum: at least 1 full chunk, even if it alone exceeds the budget
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..chunking.codec import Codec
from ..prompts.formatter import CHUNK_DELIMITER, RetrievedChunk, format_chunk


logger = logging.getLogger(__name__)


@dataclass
class BudgetConfig:
    """
    Configuration for token budget.

    Attributes:
        max_tokens: Maximum tokens allowed for the formatted context
        chars_per_token: Characters per token, used only when no codec is available
    """
    max_tokens: int = 3000
    chars_per_token: float = 4.0


@dataclass
class BudgetSelection:
    """Result of fitting chunks into the budget."""
    selected: List[RetrievedChunk] = field(default_factory=list)
    dropped: List[RetrievedChunk] = field(default_factory=list)
    used_tokens: int = 0

    @property
    def truncated(self) -> bool:
        return bool(self.dropped)


class TokenBudget:
    """
    Token budget manager for prompt context.

    Counts with the same codec as the chunker when one is given.
    """

    def __init__(self, config: Optional[BudgetConfig] = None, codec: Optional[Codec] = None):
        self.config = config or BudgetConfig()
        self.codec = codec

    def estimate_tokens(self, text: str) -> int:
        if not text:
            return 0
        if self.codec is not None:
            return self.codec.count(text)
        return max(1, int(len(text) / self.config.chars_per_token))

    def select(self, chunks: List[RetrievedChunk]) -> BudgetSelection:
        """
        Admit chunks (pre-sorted, best first) while they fit.

        Args:
            chunks: Candidate chunks in rank order

        Returns:
            BudgetSelection with the admitted and dropped chunks
        """
        selection = BudgetSelection()
        delimiter_tokens = self.estimate_tokens(CHUNK_DELIMITER)

        for chunk in chunks:
            if selection.dropped:
                selection.dropped.append(chunk)
                continue

            position = len(selection.selected) + 1
            cost = self.estimate_tokens(format_chunk(position, chunk))
            if selection.selected:
                cost += delimiter_tokens

            if not selection.selected or selection.used_tokens + cost <= self.config.max_tokens:
                selection.selected.append(chunk)
                selection.used_tokens += cost
            else:
                selection.dropped.append(chunk)

        if selection.dropped:
            logger.info(
                f"Context budget {self.config.max_tokens} tokens: kept {len(selection.selected)}, "
                f"dropped {len(selection.dropped)} lower-ranked chunks"
            )
        return selection
