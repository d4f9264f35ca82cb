"""
Query Processor - Normalization and Tokenization
================================================

Prepares user queries for keyword retrieval:
1. Lowercase the whole query (used for metadata substring boosts)
2. Split on whitespace
3. Keep words longer than 3 characters
4. Strip non-word characters from each kept word

The length filter runs on the raw word, before punctuation is stripped,
so "APY?" survives as "apy" while "A's" is dropped.
"""

import re
from dataclasses import dataclass, field
from typing import List


@dataclass
class ProcessedQuery:
    """Query after normalization."""
    original: str
    normalized: str
    tokens: List[str] = field(default_factory=list)


class QueryProcessor:
    """Normalizes and tokenizes queries for the document store."""

    MIN_WORD_LENGTH = 4
    NON_WORD = re.compile(r"[^\w]", re.ASCII)

    def process(self, query: str) -> ProcessedQuery:
        """
        Process a raw query.

        Args:
            query: Free-text user query

        Returns:
            ProcessedQuery with normalized text and tokens
        """
        normalized = query.lower()
        return ProcessedQuery(
            original=query,
            normalized=normalized,
            tokens=self._tokenize(normalized)
        )

    def _tokenize(self, normalized: str) -> List[str]:
        return [
            self.NON_WORD.sub("", word)
            for word in normalized.split()
            if len(word) >= self.MIN_WORD_LENGTH
        ]
