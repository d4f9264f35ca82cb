"""Store module - in-memory keyword document store."""
from .document_store import DocumentStore, DuplicateDocumentError, ScoredDocument

__all__ = [
    "DocumentStore",
    "DuplicateDocumentError",
    "ScoredDocument",
]
