"""Document module - document model, formatting and synthesis."""
from .models import Document, DocumentKind, ProtocolMeta, CategoryMeta, ProjectMeta
from .synthesizer import DocumentSynthesizer, SynthesisResult, RecordFailure

__all__ = [
    "Document",
    "DocumentKind",
    "ProtocolMeta",
    "CategoryMeta",
    "ProjectMeta",
    "DocumentSynthesizer",
    "SynthesisResult",
    "RecordFailure",
]
