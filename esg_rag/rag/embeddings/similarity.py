"""Vector similarity utilities."""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import numpy as np

from ...exceptions import DimensionMismatch


@dataclass
class SimilarityMatch:
    index: int
    similarity: float
    item: Any = None


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Raises:
        DimensionMismatch: If the vectors differ in length

    Returns 0.0 when either vector has zero magnitude.
    """
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    value = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, value))


def find_most_similar(
    query: Sequence[float],
    candidates: Sequence[Sequence[float]],
    top_k: int = 5,
    items: Optional[Sequence[Any]] = None,
) -> List[SimilarityMatch]:
    """
    Rank candidates by similarity to query, highest first.

    Ties keep input order. ``items`` (parallel to candidates) are carried
    through onto the matches.
    """
    matches = [
        SimilarityMatch(index=i, similarity=cosine_similarity(query, candidate),
                        item=items[i] if items is not None else None)
        for i, candidate in enumerate(candidates)
    ]
    # sorted() is stable, so equal scores stay in input order
    matches = sorted(matches, key=lambda m: m.similarity, reverse=True)
    return matches[:max(0, top_k)]
