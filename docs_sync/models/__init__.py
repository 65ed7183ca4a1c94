"""Models package for Docs Sync.

This package contains data models for:
- Discovered entry references
- Stored document records
"""

from .documents import DiscoveredRef, DocumentLinks, DocumentRecord, validate_record

__all__ = [
    "DiscoveredRef",
    "DocumentLinks",
    "DocumentRecord",
    "validate_record",
]
