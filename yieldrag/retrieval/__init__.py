"""Retrieval module - query normalization and tokenization."""
from .query_processor import QueryProcessor, ProcessedQuery

__all__ = [
    "QueryProcessor",
    "ProcessedQuery",
]
