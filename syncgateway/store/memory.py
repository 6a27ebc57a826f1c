"""In-process reference implementation of the document store."""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from bson import ObjectId

from syncgateway.core.exceptions import MissingIdentifierError
from syncgateway.models.document import ID_FIELD, MTIME_FIELD, Document, has_identifier
from syncgateway.store.base import DocumentStore
from syncgateway.store.clock import ModificationClock

logger = logging.getLogger(__name__)


@dataclass
class _StoredDocument:
    mtime: int
    document: Document


@dataclass
class _Collection:
    documents: Dict[ObjectId, _StoredDocument] = field(default_factory=dict)
    last_modified: int = 0


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store; calls are serialized by one lock."""

    def __init__(self, clock: Optional[ModificationClock] = None) -> None:
        self.clock = clock or ModificationClock()
        self._collections: Dict[str, _Collection] = {}
        self._lock = asyncio.Lock()

    async def save(self, collection: str, document: Document) -> ObjectId:
        if has_identifier(document):
            return await self.upsert(collection, document)

        identifier = ObjectId()
        document[ID_FIELD] = identifier
        async with self._lock:
            self._write(collection, identifier, document)
        logger.debug("Inserted document %s into %s", identifier, collection)
        return identifier

    async def upsert(self, collection: str, document: Document) -> ObjectId:
        if not has_identifier(document):
            raise MissingIdentifierError()
        identifier = document[ID_FIELD]
        async with self._lock:
            self._write(collection, identifier, document)
        return identifier

    async def update(self, collection: str, document: Document) -> None:
        if not has_identifier(document):
            raise MissingIdentifierError()
        identifier = document[ID_FIELD]
        async with self._lock:
            bucket = self._collections.get(collection)
            if bucket is None or identifier not in bucket.documents:
                logger.debug("Update of unknown document %s in %s ignored", identifier, collection)
                return
            self._write(collection, identifier, document)

    async def find(self, collection: str, identifier: ObjectId) -> Optional[Document]:
        async with self._lock:
            bucket = self._collections.get(collection)
            if bucket is None or identifier not in bucket.documents:
                return None
            return copy.deepcopy(bucket.documents[identifier].document)

    async def find_all(self, collection: str) -> List[Document]:
        async with self._lock:
            bucket = self._collections.get(collection)
            if bucket is None:
                return []
            return [copy.deepcopy(stored.document) for stored in bucket.documents.values()]

    async def find_by_ids(self, collection: str, identifiers: Iterable[ObjectId]) -> List[Document]:
        async with self._lock:
            bucket = self._collections.get(collection)
            if bucket is None:
                return []
            results: List[Document] = []
            seen = set()
            for identifier in identifiers:
                if identifier in seen:
                    continue
                seen.add(identifier)
                stored = bucket.documents.get(identifier)
                if stored is not None:
                    results.append(copy.deepcopy(stored.document))
            return results

    async def find_since(self, collection: str, timestamp: int) -> List[Document]:
        async with self._lock:
            bucket = self._collections.get(collection)
            if bucket is None:
                return []
            return [
                copy.deepcopy(stored.document)
                for stored in bucket.documents.values()
                if stored.mtime > timestamp
            ]

    async def delete(self, collection: str, identifier: ObjectId) -> None:
        async with self._lock:
            bucket = self._collections.setdefault(collection, _Collection())
            removed = bucket.documents.pop(identifier, None)
            bucket.last_modified = max(bucket.last_modified, self.clock.now())
        if removed is None:
            logger.debug("Delete of unknown document %s in %s", identifier, collection)

    async def last_modified(self, collection: str) -> int:
        async with self._lock:
            bucket = self._collections.get(collection)
            return bucket.last_modified if bucket is not None else 0

    async def modification_time(self, collection: str, identifier: ObjectId) -> Optional[int]:
        """Return the stored modification time of a single document."""

        async with self._lock:
            bucket = self._collections.get(collection)
            if bucket is None or identifier not in bucket.documents:
                return None
            return bucket.documents[identifier].mtime

    def _write(self, collection: str, identifier: ObjectId, document: Document) -> None:
        # Caller holds the lock.
        bucket = self._collections.setdefault(collection, _Collection())
        mtime = self.clock.now()
        bucket.documents[identifier] = _StoredDocument(mtime=mtime, document=_without_stamp(document))
        bucket.last_modified = max(bucket.last_modified, mtime)


def _without_stamp(document: Document) -> Document:
    return {key: copy.deepcopy(value) for key, value in document.items() if key != MTIME_FIELD}


__all__ = ["InMemoryDocumentStore"]
