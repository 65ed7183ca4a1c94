"""Discover eligible Markdown entries in a GitHub directory."""

import json
import logging
from typing import Any, Dict, List
from urllib.parse import quote, urlparse

from docs_sync.core.exceptions import ListingError
from docs_sync.core.http import GITHUB_JSON_ACCEPT, GitHubClient
from docs_sync.models.documents import DiscoveredRef

logger = logging.getLogger(__name__)


def contents_url(api_base_url: str, repo: str, path: str) -> str:
    """Contents endpoint for ``path`` inside ``repo``."""
    clean_path = quote(path.strip("/"))
    return f"{api_base_url.rstrip('/')}/repos/{repo.strip('/')}/contents/{clean_path}"


def is_eligible(descriptor: Dict[str, Any]) -> bool:
    """Whether a listing descriptor points at a syncable Markdown document."""
    metadata_url = descriptor.get("url")
    download_url = descriptor.get("download_url")
    if not metadata_url or not download_url:
        return False
    if not isinstance(metadata_url, str) or not isinstance(download_url, str):
        return False

    download_path = urlparse(download_url).path
    return download_path.endswith(".md") and "README.md" not in download_path


def filter_entries(listing: List[Any]) -> List[DiscoveredRef]:
    """Keep eligible descriptors in listing order."""
    refs = []
    for descriptor in listing:
        if not isinstance(descriptor, dict) or not is_eligible(descriptor):
            continue
        refs.append(
            DiscoveredRef(metadata_url=descriptor["url"], content_url=descriptor["download_url"])
        )
    return refs


async def discover_entries(
    client: GitHubClient, repo: str, path: str, api_base_url: str = "https://api.github.com"
) -> List[DiscoveredRef]:
    """List ``repo``/``path`` and return the eligible entries.

    Raises:
        ListingError: if the listing fails or its body is not a JSON array.
    """
    url = contents_url(api_base_url, repo, path)
    logger.info(f"Listing {repo}/{path}")

    response = await client.get(url, accept=GITHUB_JSON_ACCEPT)
    if not response.ok:
        raise ListingError(url, f"HTTP {response.status}", status=response.status)

    try:
        listing = response.json()
    except UnicodeDecodeError as e:
        raise ListingError(url, "body is not valid UTF-8", status=response.status) from e
    except json.JSONDecodeError as e:
        raise ListingError(url, "response body is not JSON", status=response.status) from e

    if not isinstance(listing, list):
        message = listing.get("message") if isinstance(listing, dict) else None
        reason = f"expected a JSON array ({message})" if message else "expected a JSON array"
        raise ListingError(url, reason, status=response.status)

    refs = filter_entries(listing)
    logger.info(f"Discovered {len(refs)} of {len(listing)} entries in {repo}/{path}")
    return refs
