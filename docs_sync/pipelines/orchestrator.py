"""Sync orchestrator: discovery, concurrent fetch, validation and store writes."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import BaseModel, Field

from docs_sync.core.config import Settings, settings as default_settings
from docs_sync.core.exceptions import DocsSyncError, SyncAbortedError
from docs_sync.core.http import GitHubClient, create_session
from docs_sync.models.documents import DiscoveredRef

from .loader.discovery import discover_entries
from .loader.fetcher import EntryFetcher
from .store import ContentStore, create_store

logger = logging.getLogger(__name__)

# Failures isolated to a single entry; anything else aborts the run
ENTRY_ERRORS = (DocsSyncError, aiohttp.ClientError, asyncio.TimeoutError)


class EntryFailure(BaseModel):
    """An entry that could not be synced."""

    metadata_url: str
    content_url: str
    error_type: str
    message: str


class SyncResult(BaseModel):
    """Outcome of one sync pass."""

    repo: str
    path: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    discovered: int = 0
    stored: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failures: List[EntryFailure] = Field(default_factory=list)
    pruned: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def summary(self) -> Dict[str, Any]:
        return {
            "repo": self.repo,
            "path": self.path,
            "discovered": self.discovered,
            "stored": len(self.stored),
            "skipped": len(self.skipped),
            "failed": len(self.failures),
            "pruned": len(self.pruned),
            "success": self.success,
        }


class SyncOrchestrator:
    """Runs one synchronization pass into a content store.

    Discovery runs first and any listing failure aborts before a single fetch.
    Entries are then fetched concurrently, bounded by
    ``max_concurrent_requests``. By default each entry's failure is recorded
    and the rest of the run continues; with ``fail_fast`` the first failure
    cancels outstanding work and raises SyncAbortedError. Records stored
    before an abort stay stored.
    """

    def __init__(
        self,
        store: ContentStore,
        settings: Optional[Settings] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.store = store
        self.settings = settings or default_settings
        self.session = session

    async def _with_client(self, func):
        if self.session is not None:
            return await func(GitHubClient.from_settings(self.session, self.settings))
        async with create_session(self.settings) as session:
            return await func(GitHubClient.from_settings(session, self.settings))

    async def discover(
        self, repo: Optional[str] = None, path: Optional[str] = None
    ) -> List[DiscoveredRef]:
        """List eligible entries without fetching them."""

        async def _discover(client: GitHubClient) -> List[DiscoveredRef]:
            return await discover_entries(
                client,
                repo or self.settings.repo,
                path if path is not None else self.settings.path,
                self.settings.api_base_url,
            )

        return await self._with_client(_discover)

    async def run(self, repo: Optional[str] = None, path: Optional[str] = None) -> SyncResult:
        """Run a full sync pass and return its result.

        Raises:
            ListingError: if discovery fails. Nothing is fetched or stored.
            SyncAbortedError: in fail-fast mode, on the first entry failure.
        """
        repo = repo or self.settings.repo
        path = path if path is not None else self.settings.path

        async def _run(client: GitHubClient) -> SyncResult:
            return await self._run(client, repo, path)

        return await self._with_client(_run)

    async def _run(self, client: GitHubClient, repo: str, path: str) -> SyncResult:
        result = SyncResult(repo=repo, path=path)
        logger.info(f"Starting sync of {repo}/{path} into collection {self.store.collection}")

        refs = await discover_entries(client, repo, path, self.settings.api_base_url)
        result.discovered = len(refs)
        logger.info(f"Loading {len(refs)} entries")

        fetcher = EntryFetcher.from_settings(client, self.settings)
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_requests)
        aborted = asyncio.Event()

        async def _process(ref: DiscoveredRef) -> None:
            async with semaphore:
                if aborted.is_set():
                    return

                cached = None
                if self.settings.reuse_unchanged:
                    cached = await self.store.get(ref.metadata_url)

                try:
                    record = await fetcher.fetch(ref, cached)
                except ENTRY_ERRORS as e:
                    if self.settings.fail_fast:
                        aborted.set()
                        raise
                    logger.error(f"Entry {ref.metadata_url} failed: {e}")
                    result.failures.append(
                        EntryFailure(
                            metadata_url=ref.metadata_url,
                            content_url=ref.content_url,
                            error_type=type(e).__name__,
                            message=str(e),
                        )
                    )
                    return

                if record is None:
                    result.skipped.append(ref.metadata_url)
                    return

                await self.store.set(record.url, record)
                result.stored.append(record.url)
                logger.debug(f"Stored {record.url}")

        tasks = [asyncio.create_task(_process(ref)) for ref in refs]
        try:
            await asyncio.gather(*tasks)
        except Exception as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.error(f"Sync of {repo}/{path} aborted: {e}")
            if isinstance(e, ENTRY_ERRORS):
                raise SyncAbortedError(e, list(dict.fromkeys(result.stored))) from e
            raise

        # Entries sharing a canonical URL collapse to one stored record
        result.stored = list(dict.fromkeys(result.stored))

        if self.settings.prune_stale:
            result.pruned = await self._prune(refs, result.stored)

        result.completed_at = datetime.now(timezone.utc)
        await self.store.save_manifest(result.summary())

        logger.info(
            f"Sync of {repo}/{path} completed: {len(result.stored)} stored, "
            f"{len(result.skipped)} skipped, {len(result.failures)} failed, "
            f"{len(result.pruned)} pruned"
        )
        return result

    async def _prune(self, refs: List[DiscoveredRef], stored: List[str]) -> List[str]:
        """Delete stored records whose keys were not discovered this run."""
        live = {ref.metadata_url for ref in refs} | set(stored)
        pruned = []
        for key in await self.store.keys():
            if key in live:
                continue
            if await self.store.delete(key):
                pruned.append(key)
                logger.info(f"Pruned stale record {key}")
        return pruned


# Convenience function for CLI usage


async def run_sync(
    settings: Optional[Settings] = None,
    repo: Optional[str] = None,
    path: Optional[str] = None,
) -> SyncResult:
    """Run one sync pass into the store configured by ``settings``."""
    settings = settings or default_settings
    store = create_store(settings)
    try:
        return await SyncOrchestrator(store, settings).run(repo, path)
    finally:
        await store.close()
