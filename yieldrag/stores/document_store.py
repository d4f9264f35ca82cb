"""
In-Memory Document Store
========================

Keyword-scored retrieval over one generation of synthesized documents.

Scoring (per document):
- +10 metadata project is a substring of the lowercased query
- +8  metadata symbol is a substring of the query
- +5  metadata exposure is a substring of the query
- +5  metadata il_risk is a substring of the query
- +1  per query token contained in any of the document's keywords

Results are sorted by score, highest first. Ties keep generation order.
Zero-score documents are ranked last but never filtered out.

Generations:
- The store holds exactly one generation at a time
- replace() swaps the document tuple and its id index as one reference,
  so a concurrent search or get sees either the old or the new
  generation, never a mix
- No per-document mutation
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from yieldrag.document.models import Document
from yieldrag.retrieval.query_processor import QueryProcessor, ProcessedQuery


class DuplicateDocumentError(ValueError):
    """Raised when a generation contains two documents with the same id."""


@dataclass
class ScoredDocument:
    """Search hit with its score."""
    document: Document
    score: int


class DocumentStore:
    """
    Holds the current generation of documents and serves ranked search.

    Writers (replace, clear) serialize on a lock. Readers take a single
    reference to the current tuple and never lock.
    """

    # (metadata attribute, boost)
    METADATA_BOOSTS = (
        ("project", 10),
        ("symbol", 8),
        ("exposure", 5),
        ("il_risk", 5),
    )

    def __init__(self, query_processor: Optional[QueryProcessor] = None):
        self._query_processor = query_processor or QueryProcessor()
        self._write_lock = threading.Lock()
        # (documents in generation order, id -> document)
        self._state: Tuple[Tuple[Document, ...], Dict[str, Document]] = ((), {})
        self._generation = 0

    def replace(self, documents: Sequence[Document]) -> int:
        """
        Install a new generation, discarding the previous one.

        Args:
            documents: Complete document set for the new generation

        Returns:
            Number of documents installed

        Raises:
            DuplicateDocumentError: If two documents share an id. The
                previous generation stays installed.
        """
        new_documents = tuple(documents)

        by_id: Dict[str, Document] = {}
        for doc in new_documents:
            if doc.id in by_id:
                raise DuplicateDocumentError(f"Duplicate document id: {doc.id}")
            by_id[doc.id] = doc

        with self._write_lock:
            self._state = (new_documents, by_id)
            self._generation += 1

        print(f"[DocumentStore] Installed generation {self._generation} with {len(new_documents)} documents")
        return len(new_documents)

    def search(self, query: str, k: int = 5) -> List[Document]:
        """
        Search for documents matching query.

        Args:
            query: Free-text query
            k: Maximum number of documents

        Returns:
            Up to k Documents ordered by score
        """
        return [hit.document for hit in self.search_with_scores(query, k)]

    def search_with_scores(self, query: str, k: int = 5) -> List[ScoredDocument]:
        """Same ranking as search(), keeping the scores."""
        documents = self._state[0]  # single read: one consistent generation

        if not documents or k <= 0:
            return []

        processed = self._query_processor.process(query)

        scored = [
            ScoredDocument(document=doc, score=self._score(doc, processed))
            for doc in documents
        ]
        # sorted() is stable, so ties keep generation order
        scored = sorted(scored, key=lambda hit: hit.score, reverse=True)

        return scored[:k]

    def _score(self, doc: Document, query: ProcessedQuery) -> int:
        score = 0

        for attribute, boost in self.METADATA_BOOSTS:
            value = getattr(doc.metadata, attribute, None)
            if value and value.lower() in query.normalized:
                score += boost

        for token in query.tokens:
            if any(token in keyword for keyword in doc.keywords):
                score += 1

        return score

    def get(self, doc_id: str) -> Optional[Document]:
        """Look up a document of the current generation by id."""
        return self._state[1].get(doc_id)

    def clear(self) -> None:
        """Install an empty generation."""
        with self._write_lock:
            if not self._state[0]:
                return
            self._state = ((), {})
            self._generation += 1

        print("[DocumentStore] Store cleared")

    @property
    def documents(self) -> Tuple[Document, ...]:
        """Current generation, in installation order."""
        return self._state[0]

    @property
    def generation(self) -> int:
        """Number of generations installed so far."""
        return self._generation

    @property
    def count(self) -> int:
        """Get number of documents in the current generation."""
        return len(self._state[0])
