"""Errors raised by the sync pipeline."""

from typing import Any, Dict, List, Optional


class DocsSyncError(Exception):
    """Base class for all sync errors."""


class ListingError(DocsSyncError):
    """Raised when the directory listing is not a successful JSON array."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Failed to list {url}: {reason}")


class FetchError(DocsSyncError):
    """Raised when a metadata or content request fails or returns nothing."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Failed to fetch {url}: {reason}")


class MalformedReferenceError(DocsSyncError):
    """Raised when a discovered entry carries a URL that does not parse."""

    def __init__(self, url: Any):
        self.url = url
        super().__init__(f"Malformed entry URL: {url!r}")


class RecordValidationError(DocsSyncError):
    """Raised when a merged candidate does not match the document schema."""

    def __init__(self, url: str, errors: List[Dict[str, Any]]):
        self.url = url
        self.errors = errors
        fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) for err in errors)
        super().__init__(f"Invalid document record for {url}: {fields or 'unknown fields'}")


class SyncAbortedError(DocsSyncError):
    """Raised in fail-fast mode when an entry failure stops the run.

    ``stored`` lists the keys that were written before the abort; they stay in
    the store.
    """

    def __init__(self, cause: BaseException, stored: List[str]):
        self.cause = cause
        self.stored = stored
        super().__init__(f"Sync aborted after {len(stored)} stored records: {cause}")
