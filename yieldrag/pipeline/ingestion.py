"""
Ingestion Pipeline Orchestrator
================================

Turns a record pull into a new document generation:
1. Synthesize documents (per-record failures are skipped and reported)
2. Install the generation in the document store (atomic replace)

A pull where every record fails still installs a generation: an empty
one, so the previous pull is never served as if it were fresh.
"""

import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from yieldrag.document.synthesizer import DocumentSynthesizer, RecordFailure
from yieldrag.records.models import Record
from yieldrag.stores.document_store import DocumentStore


@dataclass
class IngestionResult:
    """Result of ingesting one record pull."""
    success: bool

    # Counts
    records_received: int = 0
    records_indexed: int = 0
    documents_created: int = 0

    # Records that synthesized, in input order
    records: List[Record] = field(default_factory=list)

    # Per-record failures (record skipped, ingestion continued)
    failures: List[RecordFailure] = field(default_factory=list)

    # Failures of the whole run
    errors: List[str] = field(default_factory=list)

    # Timing
    processing_time_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dictionary."""
        return {
            "success": self.success,
            "records_received": self.records_received,
            "records_indexed": self.records_indexed,
            "documents_created": self.documents_created,
            "failures": [
                {
                    "index": f.index,
                    "project": f.project,
                    "symbol": f.symbol,
                    "error": f.error,
                }
                for f in self.failures
            ],
            "errors": self.errors,
            "processing_time_seconds": self.processing_time_seconds,
        }


class IngestionPipeline:
    """
    Record pull -> document generation.

    The store is passed in by the owner; the pipeline never creates
    one of its own.
    """

    def __init__(
        self,
        store: DocumentStore,
        synthesizer: Optional[DocumentSynthesizer] = None
    ):
        self.store = store
        self._synthesizer = synthesizer

    @property
    def synthesizer(self) -> DocumentSynthesizer:
        if self._synthesizer is None:
            self._synthesizer = DocumentSynthesizer()
        return self._synthesizer

    def ingest(self, records: Sequence[Record]) -> IngestionResult:
        """
        Synthesize documents from records and install them.

        This is the main entry point for ingestion.

        Args:
            records: Records of one pull, already filtered to the target chain

        Returns:
            IngestionResult with counts and per-record failures
        """
        start_time = time.time()
        result = IngestionResult(success=False, records_received=len(records))

        print(f"[Ingestion] Synthesizing documents for {len(records)} records...")
        synthesis = self.synthesizer.synthesize(records)

        result.records = synthesis.records
        result.failures = synthesis.failures
        result.records_indexed = len(synthesis.records)

        if not synthesis.records:
            if records:
                print("[Ingestion] Every record failed; installing an empty generation")
            documents = []
        else:
            documents = synthesis.documents

        try:
            result.documents_created = self.store.replace(documents)
            result.success = True
        except Exception as e:
            result.errors.append(str(e))
            result.records = []
            result.records_indexed = 0
            print(f"[Ingestion] Error installing generation: {e}")
            self.store.clear()

        result.processing_time_seconds = time.time() - start_time
        print(
            f"[Ingestion] Complete: {result.documents_created} documents, "
            f"{len(result.failures)} records skipped, "
            f"{result.processing_time_seconds:.3f}s"
        )
        return result
