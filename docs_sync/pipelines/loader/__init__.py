"""GitHub docs loader.

Discovery lists a repository directory, the fetcher downloads each entry and
rewrites its relative links, and the result is validated as a DocumentRecord.
"""

from .discovery import discover_entries, filter_entries, is_eligible
from .fetcher import EntryFetcher
from .links import rewrite_links, rewrite_url

__all__ = [
    "EntryFetcher",
    "discover_entries",
    "filter_entries",
    "is_eligible",
    "rewrite_links",
    "rewrite_url",
]
