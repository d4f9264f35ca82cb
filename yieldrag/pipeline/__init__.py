"""Pipeline module - ingestion and context assembly orchestrators."""
from .ingestion import IngestionPipeline, IngestionResult
from .query import ContextAssembler

__all__ = [
    "IngestionPipeline",
    "IngestionResult",
    "ContextAssembler",
]
