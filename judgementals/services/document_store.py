"""
Document Store

Key/value document persistence for judging sessions. ``get`` on a missing
document raises ``DocumentNotFoundError`` so callers can tell "gone" apart
from transport failures.

Two implementations:
- InMemoryDocumentStore: process-local, used by tests and single-process runs
- DiskDocumentStore: persistent, one diskcache directory per collection
"""

import asyncio
import copy
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from diskcache import Cache

from ..exceptions import DocumentNotFoundError

logger = structlog.get_logger(__name__)

Document = Dict[str, Any]


class DocumentStore(ABC):
    """Abstract document store keyed by (collection, id)."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Document:
        """Return a copy of the document. Raises DocumentNotFoundError."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Create or fully replace a document."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, partial: Document) -> None:
        """Merge top-level fields into an existing document. Raises DocumentNotFoundError."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document; returns whether it existed."""

    @abstractmethod
    async def list_ids(self, collection: str) -> List[str]:
        """All document ids in a collection."""

    async def query_expired(
        self,
        collection: str,
        now_ms: int,
        limit: Optional[int] = None
    ) -> List[str]:
        """Ids of documents whose ``expiresAt`` is before ``now_ms``."""
        expired = []
        for doc_id in await self.list_ids(collection):
            try:
                doc = await self.get(collection, doc_id)
            except DocumentNotFoundError:
                continue
            expires_at = doc.get("expiresAt")
            if isinstance(expires_at, (int, float)) and expires_at < now_ms:
                expired.append(doc_id)
                if limit is not None and len(expired) >= limit:
                    break
        return expired


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store. Documents are deep-copied in and out."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = asyncio.Lock()
        self.write_count = 0

    async def get(self, collection: str, doc_id: str) -> Document:
        async with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise DocumentNotFoundError(collection, doc_id)
            return copy.deepcopy(docs[doc_id])

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        async with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
            self.write_count += 1

    async def update(self, collection: str, doc_id: str, partial: Document) -> None:
        async with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise DocumentNotFoundError(collection, doc_id)
            docs[doc_id].update(copy.deepcopy(partial))
            self.write_count += 1

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            return self._collections.get(collection, {}).pop(doc_id, None) is not None

    async def list_ids(self, collection: str) -> List[str]:
        async with self._lock:
            return list(self._collections.get(collection, {}).keys())


class DiskDocumentStore(DocumentStore):
    """
    Persistent store built on diskcache.

    diskcache is process- and thread-safe, so concurrent processes sharing a
    directory see each other's writes; read-modify-write cycles are still not
    transactional.
    """

    def __init__(self, store_dir: str = "data/store"):
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._caches: Dict[str, Cache] = {}

        logger.info("Disk document store initialized", store_dir=str(self.store_dir))

    def _cache(self, collection: str) -> Cache:
        if collection not in self._caches:
            self._caches[collection] = Cache(str(self.store_dir / collection))
        return self._caches[collection]

    async def get(self, collection: str, doc_id: str) -> Document:
        value = self._cache(collection).get(doc_id)
        if value is None:
            raise DocumentNotFoundError(collection, doc_id)
        return copy.deepcopy(value)

    async def set(self, collection: str, doc_id: str, data: Document) -> None:
        self._cache(collection).set(doc_id, copy.deepcopy(data))
        logger.debug("Document written", collection=collection, doc_id=doc_id)

    async def update(self, collection: str, doc_id: str, partial: Document) -> None:
        cache = self._cache(collection)
        with cache.transact():
            current = cache.get(doc_id)
            if current is None:
                raise DocumentNotFoundError(collection, doc_id)
            current.update(copy.deepcopy(partial))
            cache.set(doc_id, current)
        logger.debug("Document updated", collection=collection, doc_id=doc_id, fields=list(partial))

    async def delete(self, collection: str, doc_id: str) -> bool:
        return bool(self._cache(collection).delete(doc_id))

    async def list_ids(self, collection: str) -> List[str]:
        return [str(key) for key in self._cache(collection).iterkeys()]

    def close(self) -> None:
        for name, cache in self._caches.items():
            try:
                cache.close()
            except Exception as e:
                logger.warning("Failed to close document cache", collection=name, error=str(e))


def create_document_store(store_dir: Optional[str] = None) -> DocumentStore:
    """Disk-backed when a directory is configured, in-memory otherwise."""
    if store_dir:
        return DiskDocumentStore(store_dir)
    return InMemoryDocumentStore()
