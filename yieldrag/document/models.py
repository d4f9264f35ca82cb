"""
Document Model
==============

A Document is the atomic unit of retrieval: a rendered text summary plus
the metadata and keywords the store scores against.

Metadata is a tagged variant per document kind. Each variant carries only
the fields its kind uses; scoring reads them by attribute name and treats a
missing attribute the same as an empty one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple, Union


class DocumentKind(Enum):
    """Granularity of a document."""
    PROTOCOL = "protocol"
    CATEGORY = "category"
    PROJECT = "project"


@dataclass(frozen=True)
class ProtocolMeta:
    project: str
    symbol: str
    exposure: str
    il_risk: str
    apy: float
    tvl_usd: float
    stablecoin: bool = False


@dataclass(frozen=True)
class CategoryMeta:
    category: str  # top-apy | top-tvl | exposure | il-risk
    exposure: Optional[str] = None
    il_risk: Optional[str] = None


@dataclass(frozen=True)
class ProjectMeta:
    project: str


DocumentMeta = Union[ProtocolMeta, CategoryMeta, ProjectMeta]


@dataclass(frozen=True)
class Document:
    """
    One retrievable summary.

    `id` is a deterministic function of kind and discriminating keys,
    e.g. "protocol-Sovryn-RBTC" or "exposure-single".
    """
    id: str
    kind: DocumentKind
    content: str
    metadata: DocumentMeta
    keywords: Tuple[str, ...] = field(default_factory=tuple)


def build_keywords(*groups: Iterable[str]) -> Tuple[str, ...]:
    """
    Lowercase and de-duplicate keyword groups, keeping first-seen order.

    Empty strings are dropped.
    """
    seen = {}
    for group in groups:
        for keyword in group:
            normalized = keyword.lower()
            if normalized and normalized not in seen:
                seen[normalized] = None
    return tuple(seen)
