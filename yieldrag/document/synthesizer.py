"""
Document Synthesizer
====================

Turns one record set into the complete document set of a generation.

Views produced, in this order:
1. Protocol documents - one per record
2. Top-N by APY (category)
3. Top-N by TVL (category)
4. One category document per distinct exposure value
5. One category document per distinct IL risk value
6. One project document per distinct project

Determinism: the same record sequence always yields the same documents,
byte for byte and in the same order. Rankings use a stable sort and
distinct values are enumerated in first-seen order.

A record whose protocol document cannot be rendered is skipped and
reported; aggregates are built only from records that rendered.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence

from config.settings import settings
from yieldrag.records.models import Record
from .formatting import (
    format_currency,
    format_number,
    format_optional_percentage,
    format_percentage,
)
from .models import (
    CategoryMeta,
    Document,
    DocumentKind,
    ProjectMeta,
    ProtocolMeta,
    build_keywords,
)


@dataclass
class RecordFailure:
    """A record that could not be synthesized."""
    index: int
    project: Optional[str]
    symbol: Optional[str]
    error: str


@dataclass
class SynthesisResult:
    """Documents of one generation plus per-record outcome."""
    documents: List[Document] = field(default_factory=list)
    records: List[Record] = field(default_factory=list)  # records that rendered
    failures: List[RecordFailure] = field(default_factory=list)


def top_records(
    records: Sequence[Record],
    key: Callable[[Record], float],
    n: int
) -> List[Record]:
    """First n records by descending key; ties keep input order."""
    return sorted(records, key=key, reverse=True)[:n]


def group_by(
    records: Sequence[Record],
    key: Callable[[Record], str]
) -> Dict[str, List[Record]]:
    """Group records by key; groups are in first-seen order."""
    groups: Dict[str, List[Record]] = {}
    for record in records:
        groups.setdefault(key(record), []).append(record)
    return groups


class DocumentSynthesizer:
    """
    Builds protocol, category and project documents from records.

    Configuration is loaded from settings but can be overridden.
    """

    PROTOCOL_KEYWORDS = ("yield", "apy", "tvl")
    TOP_APY_KEYWORDS = ("top", "best", "highest", "apy", "yield", "performance", "performing")
    TOP_TVL_KEYWORDS = ("top", "largest", "biggest", "tvl", "value", "locked", "size")
    EXPOSURE_KEYWORDS = ("exposure", "risk", "type")
    IL_RISK_KEYWORDS = ("impermanent", "loss", "risk", "il")
    PROJECT_KEYWORDS = ("project", "protocol")

    def __init__(
        self,
        top_n: Optional[int] = None,
        chain_name: Optional[str] = None,
        domain_keywords: Optional[Sequence[str]] = None
    ):
        """
        Args:
            top_n: Size of the top-APY and top-TVL rankings
            chain_name: Chain name shown in document text
            domain_keywords: Chain/base-asset terms added to every document
        """
        self.top_n = top_n if top_n is not None else settings.synthesis.top_n
        self.chain_name = chain_name or settings.synthesis.chain_display_name
        self.domain_keywords = tuple(
            domain_keywords if domain_keywords is not None
            else settings.synthesis.domain_keywords
        )

    def synthesize(self, records: Sequence[Record]) -> SynthesisResult:
        """
        Build the full document set for a generation.

        This is the MAIN ENTRY POINT for synthesis.

        Args:
            records: Records of the current pull, in upstream order

        Returns:
            SynthesisResult with documents, usable records and failures
        """
        result = SynthesisResult()
        used_ids = set()

        for index, record in enumerate(records):
            try:
                doc = self._protocol_document(record)
            except Exception as e:
                failure = RecordFailure(
                    index=index,
                    project=getattr(record, "project", None),
                    symbol=getattr(record, "symbol", None),
                    error=f"{type(e).__name__}: {e}"
                )
                result.failures.append(failure)
                print(f"[Synthesizer] Skipping record {index} ({failure.project}/{failure.symbol}): {failure.error}")
                continue

            # Id already taken (repeated pair or a symbol ending in -N): bump the suffix
            doc_id = doc.id
            suffix = 1
            while doc_id in used_ids:
                suffix += 1
                doc_id = f"{doc.id}-{suffix}"
            used_ids.add(doc_id)
            if doc_id != doc.id:
                doc = replace(doc, id=doc_id)

            result.documents.append(doc)
            result.records.append(record)

        usable = result.records
        result.documents.append(self._top_apy_document(usable))
        result.documents.append(self._top_tvl_document(usable))
        result.documents.extend(self._exposure_documents(usable))
        result.documents.extend(self._il_risk_documents(usable))
        result.documents.extend(self._project_documents(usable))

        print(
            f"[Synthesizer] Created {len(result.documents)} documents from "
            f"{len(usable)} records ({len(result.failures)} skipped)"
        )
        return result

    # ------------------------------------------------------------------
    # Protocol view
    # ------------------------------------------------------------------

    def _protocol_document(self, record: Record) -> Document:
        lines = [
            f"Protocol: {record.project}",
            f"Symbol: {record.symbol}",
            f"Chain: {self.chain_name}",
            f"APY: {format_percentage(record.apy)}",
            f"Base APY: {format_optional_percentage(record.apy_base)}",
            f"Reward APY: {format_optional_percentage(record.apy_reward)}",
            f"TVL: {format_currency(record.tvl_usd)}",
            f"1-Day APY Change: {format_optional_percentage(record.apy_pct_1d)}",
            f"7-Day APY Change: {format_optional_percentage(record.apy_pct_7d)}",
            f"30-Day APY Change: {format_optional_percentage(record.apy_pct_30d)}",
            f"30-Day Mean APY: {format_optional_percentage(record.apy_mean_30d)}",
            f"Exposure: {record.exposure}",
            f"IL Risk: {record.il_risk}",
            f"Stablecoin: {'Yes' if record.stablecoin else 'No'}",
        ]

        prediction_class = []
        if record.predictions is not None:
            lines.append(
                f"Prediction: {record.predictions.predicted_class} "
                f"({format_number(record.predictions.predicted_probability)}% confidence)"
            )
            prediction_class = [record.predictions.predicted_class]

        keywords = build_keywords(
            [record.project, record.symbol],
            self.domain_keywords,
            self.PROTOCOL_KEYWORDS,
            [record.exposure, record.il_risk],
            ["stablecoin" if record.stablecoin else "volatile"],
            prediction_class,
        )

        return Document(
            id=f"protocol-{record.project}-{record.symbol}",
            kind=DocumentKind.PROTOCOL,
            content="\n".join(lines),
            metadata=ProtocolMeta(
                project=record.project,
                symbol=record.symbol,
                exposure=record.exposure,
                il_risk=record.il_risk,
                apy=record.apy,
                tvl_usd=record.tvl_usd,
                stablecoin=record.stablecoin
            ),
            keywords=keywords
        )

    # ------------------------------------------------------------------
    # Category views
    # ------------------------------------------------------------------

    def _top_apy_document(self, records: Sequence[Record]) -> Document:
        ranked = top_records(records, lambda r: r.apy, self.top_n)
        lines = [f"Top Performing {self.chain_name} Protocols by APY:"]
        lines += [
            f"- {r.project} ({r.symbol}): {format_percentage(r.apy)} APY, "
            f"TVL: {format_currency(r.tvl_usd)}, Exposure: {r.exposure}, IL Risk: {r.il_risk}"
            for r in ranked
        ]
        return self._category_document(
            "category-top-apy", lines, CategoryMeta(category="top-apy"),
            self.TOP_APY_KEYWORDS, ranked
        )

    def _top_tvl_document(self, records: Sequence[Record]) -> Document:
        ranked = top_records(records, lambda r: r.tvl_usd, self.top_n)
        lines = [f"Largest {self.chain_name} Protocols by TVL:"]
        lines += [
            f"- {r.project} ({r.symbol}): {format_currency(r.tvl_usd)} TVL, "
            f"APY: {format_percentage(r.apy)}, Exposure: {r.exposure}, IL Risk: {r.il_risk}"
            for r in ranked
        ]
        return self._category_document(
            "category-top-tvl", lines, CategoryMeta(category="top-tvl"),
            self.TOP_TVL_KEYWORDS, ranked
        )

    def _exposure_documents(self, records: Sequence[Record]) -> List[Document]:
        documents = []
        for exposure, members in group_by(records, lambda r: r.exposure).items():
            lines = [f"{self.chain_name} protocols with {exposure} exposure:"]
            lines += [
                f"- {r.project} ({r.symbol}): {format_percentage(r.apy)} APY, "
                f"TVL: {format_currency(r.tvl_usd)}, IL Risk: {r.il_risk}"
                for r in members
            ]
            documents.append(self._category_document(
                f"exposure-{exposure}", lines,
                CategoryMeta(category="exposure", exposure=exposure),
                [exposure, *self.EXPOSURE_KEYWORDS], members
            ))
        return documents

    def _il_risk_documents(self, records: Sequence[Record]) -> List[Document]:
        documents = []
        for risk, members in group_by(records, lambda r: r.il_risk).items():
            lines = [f"{self.chain_name} protocols with {risk} impermanent loss risk:"]
            lines += [
                f"- {r.project} ({r.symbol}): {format_percentage(r.apy)} APY, "
                f"TVL: {format_currency(r.tvl_usd)}, Exposure: {r.exposure}"
                for r in members
            ]
            documents.append(self._category_document(
                f"il-risk-{risk}", lines,
                CategoryMeta(category="il-risk", il_risk=risk),
                [risk, *self.IL_RISK_KEYWORDS], members
            ))
        return documents

    def _category_document(
        self,
        doc_id: str,
        lines: List[str],
        metadata: CategoryMeta,
        discriminators: Sequence[str],
        members: Sequence[Record]
    ) -> Document:
        keywords = build_keywords(
            discriminators,
            self.domain_keywords,
            [r.project for r in members],
            [r.symbol for r in members],
        )
        return Document(
            id=doc_id,
            kind=DocumentKind.CATEGORY,
            content="\n".join(lines),
            metadata=metadata,
            keywords=keywords
        )

    # ------------------------------------------------------------------
    # Project view
    # ------------------------------------------------------------------

    def _project_documents(self, records: Sequence[Record]) -> List[Document]:
        documents = []
        for project, members in group_by(records, lambda r: r.project).items():
            lines = [f"{project} protocols on {self.chain_name}:"]
            lines += [
                f"- {r.symbol}: {format_percentage(r.apy)} APY, "
                f"TVL: {format_currency(r.tvl_usd)}, Exposure: {r.exposure}, IL Risk: {r.il_risk}"
                for r in members
            ]
            keywords = build_keywords(
                [project],
                [r.symbol for r in members],
                self.PROJECT_KEYWORDS,
                self.domain_keywords,
            )
            documents.append(Document(
                id=f"project-{project}",
                kind=DocumentKind.PROJECT,
                content="\n".join(lines),
                metadata=ProjectMeta(project=project),
                keywords=keywords
            ))
        return documents
