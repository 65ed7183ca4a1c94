"""
Redis key construction utilities.

Centralizes Redis key construction for the content store.
"""

import hashlib


class StoreKeys:
    """Utility class for constructing Redis keys with consistent naming conventions."""

    PREFIX = "docs_sync"

    @staticmethod
    def document_id(url: str) -> str:
        """Short stable identifier derived from a canonical URL."""
        return hashlib.sha256(url.encode("utf-8")).hexdigest()[:32]

    @staticmethod
    def document(collection: str, url: str) -> str:
        """Key for a stored document record."""
        return f"docs_sync:{collection}:doc:{StoreKeys.document_id(url)}"

    @staticmethod
    def collection_index(collection: str) -> str:
        """Key for the hash mapping canonical URL -> record key."""
        return f"docs_sync:{collection}:index"

    @staticmethod
    def collection_meta(collection: str) -> str:
        """Key for collection metadata (last sync time, counts)."""
        return f"docs_sync:{collection}:meta"
