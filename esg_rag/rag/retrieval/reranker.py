"""
Keyword re-ranking.

A heuristic re-ordering on top of cosine similarity: every question word
longer than 3 characters that appears in a chunk (case-insensitive
substring match) adds ``boost`` to its score, capped at 1.0.
"""

from typing import List

from ..schemas.vectors import SearchResult


class KeywordReranker:
    """Boost results per matching query keyword, then re-sort (stable)."""

    def __init__(self, boost: float = 0.01, min_keyword_length: int = 4, cap: float = 1.0):
        self.boost = boost
        self.min_keyword_length = min_keyword_length
        self.cap = cap

    def keywords(self, question: str) -> List[str]:
        return [word for word in question.lower().split() if len(word) >= self.min_keyword_length]

    def rerank(self, question: str, results: List[SearchResult]) -> List[SearchResult]:
        keywords = self.keywords(question)
        boosted = []
        for result in results:
            content = result.content.lower()
            matches = sum(1 for keyword in keywords if keyword in content)
            boosted.append(result.with_similarity(min(result.similarity + matches * self.boost, self.cap)))
        return sorted(boosted, key=lambda r: r.similarity, reverse=True)
