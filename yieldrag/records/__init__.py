"""Records module - upstream pool model and cached record source."""
from .models import Record, Prediction, parse_records
from .source import RecordSource

__all__ = [
    "Record",
    "Prediction",
    "parse_records",
    "RecordSource",
]
