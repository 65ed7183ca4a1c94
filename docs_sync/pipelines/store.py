"""Content stores that hold synced document records keyed by canonical URL."""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from redis.asyncio import Redis

from docs_sync.core.config import Settings
from docs_sync.core.keys import StoreKeys
from docs_sync.models.documents import DocumentRecord

logger = logging.getLogger(__name__)


class ContentStore(ABC):
    """Abstract base class for content store backends.

    Implementations provide keyed upsert, lookup, deletion and listing of
    document records. ``set`` always overwrites; records are never merged.
    Implementations must tolerate concurrent ``set`` calls from one event loop.
    Records are keyed by their canonical ``url``; ``set`` rejects any other key.
    """

    def __init__(self, collection: str = "docs"):
        self.collection = collection

    @staticmethod
    def _check_key(key: str, record: DocumentRecord) -> None:
        if key != record.url:
            raise ValueError(f"Record {record.url} cannot be stored under key {key}")

    @abstractmethod
    async def set(self, key: str, record: DocumentRecord) -> None:
        """Store ``record`` under ``key``, replacing any previous record."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[DocumentRecord]:
        """Return the record stored under ``key``, if any."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete the record under ``key``. Returns True if one existed."""
        ...

    @abstractmethod
    async def keys(self) -> List[str]:
        """All keys currently stored in this collection."""
        ...

    @abstractmethod
    async def list(self) -> List[DocumentRecord]:
        """All records in this collection, ordered by path."""
        ...

    async def clear(self) -> int:
        """Delete every record in the collection. Returns how many were removed."""
        removed = 0
        for key in await self.keys():
            if await self.delete(key):
                removed += 1
        return removed

    async def save_manifest(self, summary: Dict[str, Any]) -> None:
        """Record a summary of the last sync. Optional for backends."""
        return None

    async def close(self) -> None:
        return None


class InMemoryContentStore(ContentStore):
    """Dict-backed store, used in tests and one-off runs."""

    def __init__(self, collection: str = "docs"):
        super().__init__(collection)
        self.records: Dict[str, DocumentRecord] = {}
        self.manifest: Optional[Dict[str, Any]] = None

    async def set(self, key: str, record: DocumentRecord) -> None:
        self._check_key(key, record)
        self.records[key] = record

    async def get(self, key: str) -> Optional[DocumentRecord]:
        return self.records.get(key)

    async def delete(self, key: str) -> bool:
        return self.records.pop(key, None) is not None

    async def keys(self) -> List[str]:
        return list(self.records.keys())

    async def list(self) -> List[DocumentRecord]:
        return sorted(self.records.values(), key=lambda r: r.path)

    async def save_manifest(self, summary: Dict[str, Any]) -> None:
        self.manifest = dict(summary)


class JsonFileContentStore(ContentStore):
    """Stores each record as a JSON file under ``<base_path>/<collection>/``."""

    MANIFEST_NAME = "collection_manifest.json"

    def __init__(self, base_path: Union[str, Path], collection: str = "docs"):
        super().__init__(collection)
        self.base_path = Path(base_path)
        self.collection_path = self.base_path / collection
        self.collection_path.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()

    def _record_path(self, key: str) -> Path:
        return self.collection_path / f"{StoreKeys.document_id(key)}.json"

    def _write_json(self, path: Path, data: Any) -> None:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    def _iter_record_files(self) -> List[Path]:
        return sorted(
            p for p in self.collection_path.glob("*.json") if p.name != self.MANIFEST_NAME
        )

    def _load(self, path: Path) -> DocumentRecord:
        with open(path, "r", encoding="utf-8") as f:
            return DocumentRecord.from_store(json.load(f))

    async def set(self, key: str, record: DocumentRecord) -> None:
        self._check_key(key, record)
        path = self._record_path(key)
        async with self._lock:
            self._write_json(path, record.to_store())
        logger.debug(f"Saved record {key} to {path}")

    async def get(self, key: str) -> Optional[DocumentRecord]:
        path = self._record_path(key)
        if not path.exists():
            return None
        return self._load(path)

    async def delete(self, key: str) -> bool:
        path = self._record_path(key)
        async with self._lock:
            if not path.exists():
                return False
            path.unlink()
        logger.debug(f"Deleted record {key}")
        return True

    async def keys(self) -> List[str]:
        return [record.url for record in await self.list()]

    async def list(self) -> List[DocumentRecord]:
        records = [self._load(path) for path in self._iter_record_files()]
        return sorted(records, key=lambda r: r.path)

    async def save_manifest(self, summary: Dict[str, Any]) -> None:
        manifest = {
            "collection": self.collection,
            "updated_at": datetime.now(timezone.utc).isoformat(),
            **summary,
        }
        async with self._lock:
            self._write_json(self.collection_path / self.MANIFEST_NAME, manifest)
        logger.info(f"Saved collection manifest for {self.collection}")

    def get_manifest(self) -> Optional[Dict[str, Any]]:
        manifest_path = self.collection_path / self.MANIFEST_NAME
        if not manifest_path.exists():
            return None
        with open(manifest_path, "r", encoding="utf-8") as f:
            return json.load(f)


class RedisContentStore(ContentStore):
    """Stores records as JSON strings in Redis.

    Each record lives at its own key; a per-collection hash maps canonical URL
    to record key so the collection can be listed without SCAN.
    """

    def __init__(self, client: Redis, collection: str = "docs"):
        super().__init__(collection)
        self.client = client
        self.index_key = StoreKeys.collection_index(collection)

    @classmethod
    def from_url(cls, redis_url: str, collection: str = "docs") -> "RedisContentStore":
        return cls(Redis.from_url(redis_url, decode_responses=True), collection)

    @staticmethod
    def _decode(value: Any) -> Any:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, record: DocumentRecord) -> None:
        self._check_key(key, record)
        doc_key = StoreKeys.document(self.collection, key)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.set(doc_key, json.dumps(record.to_store(), ensure_ascii=False))
            pipe.hset(self.index_key, key, doc_key)
            await pipe.execute()

    async def get(self, key: str) -> Optional[DocumentRecord]:
        raw = await self.client.get(StoreKeys.document(self.collection, key))
        if raw is None:
            return None
        return DocumentRecord.from_store(json.loads(self._decode(raw)))

    async def delete(self, key: str) -> bool:
        doc_key = StoreKeys.document(self.collection, key)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(doc_key)
            pipe.hdel(self.index_key, key)
            deleted, _ = await pipe.execute()
        return bool(deleted)

    async def keys(self) -> List[str]:
        return [self._decode(k) for k in await self.client.hkeys(self.index_key)]

    async def list(self) -> List[DocumentRecord]:
        doc_keys = [self._decode(k) for k in await self.client.hvals(self.index_key)]
        if not doc_keys:
            return []
        records = []
        for raw in await self.client.mget(doc_keys):
            if raw is None:
                continue
            records.append(DocumentRecord.from_store(json.loads(self._decode(raw))))
        return sorted(records, key=lambda r: r.path)

    async def save_manifest(self, summary: Dict[str, Any]) -> None:
        mapping = {"updated_at": datetime.now(timezone.utc).isoformat()}
        for k, v in summary.items():
            mapping[k] = json.dumps(v) if isinstance(v, (dict, list)) else str(v)
        await self.client.hset(StoreKeys.collection_meta(self.collection), mapping=mapping)

    async def close(self) -> None:
        await self.client.aclose()


def create_store(settings: Settings) -> ContentStore:
    """Build the store selected by ``settings.store_backend``."""
    backend = settings.store_backend
    if backend == "memory":
        return InMemoryContentStore(settings.collection)
    if backend == "redis":
        return RedisContentStore.from_url(
            settings.redis_url.get_secret_value(), settings.collection
        )
    if backend == "json":
        return JsonFileContentStore(settings.store_path, settings.collection)
    raise ValueError(f"Unknown store backend: {backend}")
