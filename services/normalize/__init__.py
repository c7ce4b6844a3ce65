"""
ZSE Normalize Service
Converts raw Zendesk entities to flat OutputRecords

Components:
- normalizer.py: RecordNormalizer rule table and entity records
- durations.py: Duration ranges and value coercion helpers
"""

from .durations import NOT_APPLICABLE, DurationScale, format_timestamp, parse_int
from .normalizer import RecordNormalizer

__all__ = [
    "RecordNormalizer",
    "DurationScale",
    "NOT_APPLICABLE",
    "format_timestamp",
    "parse_int",
]
