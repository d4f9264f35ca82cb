"""
Context Assembler
=================

Builds the grounding context handed to the language model:
1. Search the document store (top 5)
2. Group hits by kind: protocol -> category -> project
3. Render one labeled section per non-empty group

If the search finds nothing, or anything goes wrong while searching or
rendering, a deterministic market overview computed from the current
records is returned instead. query() never raises.
"""

from typing import List, Optional, Sequence, Tuple

from config.settings import settings
from yieldrag.document.formatting import format_currency, format_percentage
from yieldrag.document.models import Document, DocumentKind
from yieldrag.document.synthesizer import group_by, top_records
from yieldrag.records.models import Record
from yieldrag.stores.document_store import DocumentStore


class ContextAssembler:
    """
    Query-time orchestration over a document store.

    The store is owned by the caller and passed in. The record set used
    for the fallback overview is installed with update_records().
    """

    CONTEXT_HEADER = "## Retrieved Information\n\n"

    # Section order is fixed
    SECTIONS = (
        (DocumentKind.PROTOCOL, "### Protocol Details"),
        (DocumentKind.CATEGORY, "### Market Overview"),
        (DocumentKind.PROJECT, "### Project Information"),
    )

    def __init__(
        self,
        store: DocumentStore,
        top_k: Optional[int] = None,
        top_n: Optional[int] = None,
        chain_name: Optional[str] = None,
        verbose: Optional[bool] = None
    ):
        """
        Args:
            store: Document store to search
            top_k: Documents per query
            top_n: Size of the overview rankings
            chain_name: Chain name used in the overview heading
            verbose: Trace queries
        """
        self.store = store
        self.top_k = top_k if top_k is not None else settings.retrieval.top_k
        self.top_n = top_n if top_n is not None else settings.synthesis.top_n
        self.chain_name = chain_name or settings.synthesis.chain_display_name
        self.verbose = settings.debug if verbose is None else verbose

        self._records: Tuple[Record, ...] = ()

    def update_records(self, records: Sequence[Record]) -> None:
        """Install the record set the fallback overview is computed from."""
        self._records = tuple(records)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    def query(self, text: str) -> str:
        """
        Get the rendered context for a query.

        Args:
            text: Free-text user question

        Returns:
            Context block; the fallback overview on zero hits or on error
        """
        try:
            results = self.store.search(text, self.top_k)

            if self.verbose:
                print(f"[ContextAssembler] {len(results)} documents for: {text[:50]}")
                for doc in results:
                    print(f"  - {doc.id}")

            if not results:
                return self.CONTEXT_HEADER + self.overview()

            return self.CONTEXT_HEADER + self._render_sections(results)

        except Exception as e:
            print(f"[ContextAssembler] Error getting context for query: {e}")
            return self.overview()

    def _render_sections(self, results: List[Document]) -> str:
        context = ""
        for kind, heading in self.SECTIONS:
            group = [doc for doc in results if doc.kind == kind]
            if not group:
                continue
            context += f"{heading}\n\n"
            for doc in group:
                context += doc.content + "\n\n"
        return context

    def overview(self) -> str:
        """
        General market overview from the current records.

        Headings are always present; an empty record set renders
        empty lists.
        """
        records = self._records  # one consistent snapshot

        overview = f"### {self.chain_name} Market Overview\n\n"

        overview += "Top Performing Protocols by APY:\n"
        for r in top_records(records, lambda r: r.apy, self.top_n):
            overview += (
                f"- {r.project} ({r.symbol}): {format_percentage(r.apy)} APY, "
                f"TVL: {format_currency(r.tvl_usd)}\n"
            )

        overview += "\nLargest Protocols by TVL:\n"
        for r in top_records(records, lambda r: r.tvl_usd, self.top_n):
            overview += (
                f"- {r.project} ({r.symbol}): {format_currency(r.tvl_usd)} TVL, "
                f"APY: {format_percentage(r.apy)}\n"
            )

        overview += "\n### Exposure Types\n\n"
        for exposure, members in group_by(records, lambda r: r.exposure).items():
            overview += f"- {exposure}: {len(members)} protocols\n"

        overview += "\n### Impermanent Loss Risk Categories\n\n"
        for risk, members in group_by(records, lambda r: r.il_risk).items():
            overview += f"- {risk}: {len(members)} protocols\n"

        return overview
