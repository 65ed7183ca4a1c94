"""Fetch metadata and content for discovered entries."""

import json
import logging
from typing import Optional
from urllib.parse import urlparse

from docs_sync.core.config import Settings
from docs_sync.core.exceptions import FetchError, MalformedReferenceError
from docs_sync.core.http import GITHUB_JSON_ACCEPT, GitHubClient
from docs_sync.models.documents import DiscoveredRef, DocumentRecord, validate_record

from .links import DEFAULT_ROUTE_PREFIX, rewrite_links

logger = logging.getLogger(__name__)


def parse_url(url: object) -> str:
    """Return ``url`` if it is an absolute http(s) URL.

    Raises:
        MalformedReferenceError: if it is not.
    """
    if not isinstance(url, str) or not url:
        raise MalformedReferenceError(url)
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise MalformedReferenceError(url) from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise MalformedReferenceError(url)
    return url


class EntryFetcher:
    """Turns a DiscoveredRef into a validated DocumentRecord."""

    def __init__(
        self,
        client: GitHubClient,
        route_prefix: str = DEFAULT_ROUTE_PREFIX,
        normalize_paths: bool = False,
    ):
        self.client = client
        self.route_prefix = route_prefix
        self.normalize_paths = normalize_paths

    @classmethod
    def from_settings(cls, client: GitHubClient, settings: Settings) -> "EntryFetcher":
        return cls(
            client,
            route_prefix=settings.route_prefix,
            normalize_paths=settings.normalize_paths,
        )

    async def fetch_metadata(self, url: str) -> dict:
        logger.debug(f"Loading metadata {url}")
        response = await self.client.get(url, accept=GITHUB_JSON_ACCEPT)
        if not response.ok:
            raise FetchError(url, f"HTTP {response.status}", status=response.status)
        try:
            metadata = response.json()
        except UnicodeDecodeError as e:
            raise FetchError(url, "body is not valid UTF-8", status=response.status) from e
        except json.JSONDecodeError as e:
            raise FetchError(url, "metadata is not JSON", status=response.status) from e
        if not isinstance(metadata, dict) or not metadata:
            raise FetchError(url, "metadata is not a JSON object", status=response.status)
        logger.debug(f"Loaded metadata {url}")
        return metadata

    async def fetch_content(self, url: str) -> str:
        logger.debug(f"Loading content {url}")
        response = await self.client.get(url)
        if not response.ok:
            raise FetchError(url, f"HTTP {response.status}", status=response.status)
        try:
            text = response.text
        except UnicodeDecodeError as e:
            raise FetchError(url, "body is not valid UTF-8", status=response.status) from e
        if not text:
            raise FetchError(url, "empty body", status=response.status)
        logger.debug(f"Loaded content {url}")
        return text

    async def fetch(
        self, ref: DiscoveredRef, cached: Optional[DocumentRecord] = None
    ) -> Optional[DocumentRecord]:
        """Fetch, rewrite and validate one entry.

        Returns None when the entry's URLs do not parse. When ``cached`` has the
        same ``sha`` as the fresh metadata, its content is reused and the
        download is skipped.

        Raises:
            FetchError: if a request fails or the content is empty.
            RecordValidationError: if the merged record does not validate.
        """
        try:
            metadata_url = parse_url(ref.metadata_url)
            content_url = parse_url(ref.content_url)
        except MalformedReferenceError as e:
            logger.debug(f"Skipping entry: {e}")
            return None

        metadata = await self.fetch_metadata(metadata_url)

        if cached is not None and cached.content and cached.sha == metadata.get("sha"):
            logger.debug(f"Reusing stored content for {metadata_url} (sha {cached.sha})")
            content = cached.content
        else:
            text = await self.fetch_content(content_url)
            content = rewrite_links(text, self.route_prefix, self.normalize_paths)

        record = validate_record({**metadata, "content": content})
        logger.info(f"Parsed {record.url}")
        return record
