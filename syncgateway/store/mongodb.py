"""MongoDB-backed document store built on motor."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, AsyncIterator, Dict, Iterable, Iterator, List, Optional

from bson import ObjectId
from bson.errors import InvalidDocument
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import ConnectionFailure, PyMongoError, WriteError

from syncgateway.core.config import Settings
from syncgateway.core.exceptions import (
    DocumentRejectedError,
    MissingIdentifierError,
    StoreError,
    StoreUnavailableError,
)
from syncgateway.models.document import ID_FIELD, MTIME_FIELD, Document, has_identifier
from syncgateway.store.base import DocumentStore
from syncgateway.store.clock import ModificationClock

logger = logging.getLogger(__name__)

_HIDE_MTIME = {MTIME_FIELD: False}


class MongoDocumentStore(DocumentStore):
    """Stores each sync collection as a MongoDB collection.

    The modification time lives in the ``_mtime`` field of every stored
    document and is projected away on reads. Collection high-water marks are
    kept in a separate metadata collection and only ever raised with ``$max``,
    so deletes of unknown documents still advance them.

    Writes to one collection are serialized inside this process. Several
    gateway processes sharing a database are ordered only by their clocks.
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase,
        *,
        meta_collection: str = "_sync_meta",
        clock: Optional[ModificationClock] = None,
        client: Optional[AsyncIOMotorClient] = None,
    ) -> None:
        self.database = database
        self.meta_collection = meta_collection
        self.clock = clock or ModificationClock()
        self._client = client
        self._indexed: set[str] = set()
        self._write_locks: Dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(cls, config: Settings) -> "MongoDocumentStore":
        client = AsyncIOMotorClient(
            str(config.MONGODB_URL),
            serverSelectionTimeoutMS=config.MONGODB_TIMEOUT_MS,
        )
        return cls(
            client[config.MONGODB_DATABASE],
            meta_collection=config.SYNC_META_COLLECTION,
            client=client,
        )

    async def initialize(self) -> None:
        """Seed the clock from persisted high-water marks."""

        with self._guard("initialize", self.meta_collection):
            cursor = self.database[self.meta_collection].find({}, {"mtime": True}).sort("mtime", -1).limit(1)
            latest = await cursor.to_list(length=1)
        if latest:
            self.clock.observe(int(latest[0].get("mtime", 0)))
        logger.info("MongoDB document store ready on database %s", self.database.name)

    async def save(self, collection: str, document: Document) -> ObjectId:
        if has_identifier(document):
            return await self.upsert(collection, document)

        document[ID_FIELD] = ObjectId()
        async with self._writing(collection, "save") as mtime:
            await self._ensure_index(collection)
            await self.database[collection].insert_one(self._stamped(document, mtime))
            await self._touch(collection, mtime)
        return document[ID_FIELD]

    async def upsert(self, collection: str, document: Document) -> ObjectId:
        if not has_identifier(document):
            raise MissingIdentifierError()
        identifier = document[ID_FIELD]
        async with self._writing(collection, "upsert") as mtime:
            await self._ensure_index(collection)
            await self.database[collection].replace_one(
                {ID_FIELD: identifier}, self._stamped(document, mtime), upsert=True
            )
            await self._touch(collection, mtime)
        return identifier

    async def update(self, collection: str, document: Document) -> None:
        if not has_identifier(document):
            raise MissingIdentifierError()
        identifier = document[ID_FIELD]
        async with self._writing(collection, "update") as mtime:
            result = await self.database[collection].replace_one(
                {ID_FIELD: identifier}, self._stamped(document, mtime), upsert=False
            )
            if result.matched_count:
                await self._touch(collection, mtime)
            else:
                logger.debug("Update of unknown document %s in %s ignored", identifier, collection)

    async def find(self, collection: str, identifier: ObjectId) -> Optional[Document]:
        with self._guard("find", collection):
            return await self.database[collection].find_one({ID_FIELD: identifier}, _HIDE_MTIME)

    async def find_all(self, collection: str) -> List[Document]:
        return await self._find_many(collection, {})

    async def find_by_ids(self, collection: str, identifiers: Iterable[ObjectId]) -> List[Document]:
        unique = list(dict.fromkeys(identifiers))
        if not unique:
            return []
        return await self._find_many(collection, {ID_FIELD: {"$in": unique}})

    async def find_since(self, collection: str, timestamp: int) -> List[Document]:
        return await self._find_many(collection, {MTIME_FIELD: {"$gt": timestamp}})

    async def delete(self, collection: str, identifier: ObjectId) -> None:
        async with self._writing(collection, "delete") as mtime:
            await self.database[collection].delete_one({ID_FIELD: identifier})
            await self._touch(collection, mtime)

    async def last_modified(self, collection: str) -> int:
        with self._guard("last_modified", collection):
            record = await self.database[self.meta_collection].find_one({ID_FIELD: collection})
        if not record:
            return 0
        return int(record.get("mtime", 0))

    async def ping(self) -> bool:
        try:
            await self.database.command("ping")
        except ConnectionFailure as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    async def _find_many(self, collection: str, query: dict) -> List[Document]:
        with self._guard("find", collection):
            cursor = self.database[collection].find(query, _HIDE_MTIME)
            return await cursor.to_list(length=None)

    async def _touch(self, collection: str, mtime: int) -> None:
        await self.database[self.meta_collection].update_one(
            {ID_FIELD: collection}, {"$max": {"mtime": mtime}}, upsert=True
        )

    async def _ensure_index(self, collection: str) -> None:
        if collection in self._indexed:
            return
        await self.database[collection].create_index([(MTIME_FIELD, ASCENDING)])
        self._indexed.add(collection)

    @staticmethod
    def _stamped(document: Document, mtime: int) -> dict[str, Any]:
        return {**document, MTIME_FIELD: mtime}

    @contextlib.asynccontextmanager
    async def _writing(self, collection: str, action: str) -> AsyncIterator[int]:
        """Serialize writes to ``collection`` from stamp through high-water mark.

        Stamps become visible in the order they were handed out, so the
        high-water mark never passes a document that is still in flight.
        """

        lock = self._write_locks.setdefault(collection, asyncio.Lock())
        async with lock:
            with self._guard(action, collection):
                yield self.clock.now()

    @contextlib.contextmanager
    def _guard(self, action: str, collection: str) -> Iterator[None]:
        try:
            yield
        except ConnectionFailure as exc:
            logger.error("MongoDB unavailable during %s on %s: %s", action, collection, exc)
            raise StoreUnavailableError(f"Document store unavailable: {exc}") from exc
        except (InvalidDocument, WriteError) as exc:
            # DocumentTooLarge is an InvalidDocument; DuplicateKeyError a WriteError.
            logger.warning("MongoDB rejected document during %s on %s: %s", action, collection, exc)
            raise DocumentRejectedError(f"Document rejected by store: {exc}") from exc
        except PyMongoError as exc:
            logger.error("MongoDB error during %s on %s: %s", action, collection, exc)
            raise StoreError(f"Document store error: {exc}") from exc


__all__ = ["MongoDocumentStore"]
