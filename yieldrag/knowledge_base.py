"""
Knowledge Base
==============

Composition root of the retrieval subsystem. One KnowledgeBase owns:
- the document store (one generation at a time)
- the ingestion pipeline writing to it
- the context assembler reading from it
- the record source feeding it
- the prompt builder on top of the assembler

Refreshes and ingests run one at a time, so the newest pull is always the
one left installed. Queries wait for an in-flight swap and see the store
and the overview records of the same generation.

Nothing here is a module-level singleton; create one instance per
application (the API keeps it in app.state) or per test.
"""

import threading
import time
from typing import Dict, List, Optional, Sequence

from yieldrag.generation.prompt_builder import PromptBuilder, PromptResult
from yieldrag.records.models import Record
from yieldrag.records.source import RecordSource
from yieldrag.stores.document_store import DocumentStore
from yieldrag.pipeline.ingestion import IngestionPipeline, IngestionResult
from yieldrag.pipeline.query import ContextAssembler


class KnowledgeBase:
    """
    Keeps yield data searchable and answers context queries.

    Flow:
        refresh() -> RecordSource.fetch() -> ingest()
        ingest()  -> IngestionPipeline (synthesize + replace) -> assembler records
        query()   -> ContextAssembler
    """

    def __init__(
        self,
        source: Optional[RecordSource] = None,
        store: Optional[DocumentStore] = None,
        pipeline: Optional[IngestionPipeline] = None,
        assembler: Optional[ContextAssembler] = None,
        prompt_builder: Optional[PromptBuilder] = None
    ):
        """Initialize with optional pre-configured components."""
        self.store = store or DocumentStore()
        self.pipeline = pipeline or IngestionPipeline(self.store)
        self.assembler = assembler or ContextAssembler(self.store)
        self.prompt_builder = prompt_builder or PromptBuilder(self.assembler)
        self._source = source

        # Held across fetch -> compare -> ingest
        self._refresh_lock = threading.RLock()
        # Held while the store and the assembler records change together
        self._generation_lock = threading.Lock()

        self.last_updated: Optional[float] = None
        self._ingested_pull: Optional[float] = None

    @property
    def source(self) -> RecordSource:
        """Lazy-create record source."""
        if self._source is None:
            self._source = RecordSource()
        return self._source

    def ingest(self, records: Sequence[Record]) -> IngestionResult:
        """
        Replace the searchable data with a new record set.

        Args:
            records: Records of one pull

        Returns:
            IngestionResult
        """
        with self._refresh_lock:
            with self._generation_lock:
                result = self.pipeline.ingest(records)
                self.assembler.update_records(result.records)
            self.last_updated = time.time()

        print(f"[KnowledgeBase] Updated knowledge base with {result.records_indexed} protocols")
        return result

    def refresh(self, force_refresh: bool = False) -> Optional[IngestionResult]:
        """
        Pull records and ingest them if the pull is new.

        Args:
            force_refresh: Bypass the source cache

        Returns:
            IngestionResult, or None when the cached pull was already ingested
        """
        with self._refresh_lock:
            records = self.source.fetch(force_refresh=force_refresh)
            pull = self.source.fetched_at

            if pull is not None and pull == self._ingested_pull:
                return None

            result = self.ingest(records)
            self._ingested_pull = pull
            return result

    def query(self, text: str) -> str:
        """Rendered context for a question. Never raises."""
        with self._generation_lock:
            return self.assembler.query(text)

    def build_prompt(
        self,
        messages: List[Dict[str, str]],
        force_refresh: bool = False
    ) -> PromptResult:
        """
        Refresh if needed, then build the grounded system prompt.

        A failed refresh is logged; the prompt is built from whatever
        generation is installed.
        """
        try:
            self.refresh(force_refresh=force_refresh)
        except Exception as e:
            print(f"[KnowledgeBase] Refresh failed, using current data: {e}")
        with self._generation_lock:
            return self.prompt_builder.build_prompt(messages)

    def get_project_data(self, project_name: str) -> List[Record]:
        """Records whose project or display name contains project_name."""
        normalized = project_name.lower()
        return [
            r for r in self.records
            if normalized in r.project.lower()
            or (r.project_name and normalized in r.project_name.lower())
        ]

    @property
    def records(self) -> Sequence[Record]:
        """Records of the installed generation."""
        return self.assembler.records

    @property
    def document_count(self) -> int:
        return self.store.count
