"""
Delta-synchronization service.

Maps each protocol request onto document store calls. Every request is
validated completely before the first store write. Batched writes are then
applied document by document: a failure does not stop the rest of the batch
and nothing is rolled back, so callers may observe partially applied batches.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId

from syncgateway.codec import decode_id_set, decode_many
from syncgateway.core.exceptions import (
    ApplicationError,
    MalformedPayloadError,
    MissingIdentifierError,
)
from syncgateway.models.document import ID_FIELD, MTIME_FIELD, Document, has_identifier
from syncgateway.store.base import DocumentStore
from syncgateway.utils.monitoring import observe_served, observe_written

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?\d{1,19}")
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


@dataclass
class SyncPage:
    """Documents returned by a read plus the collection high-water mark."""

    documents: List[Document] = field(default_factory=list)
    last_modified: int = 0

    @property
    def empty(self) -> bool:
        return not self.documents


class SyncGateway:
    """Protocol-facing operations over an explicitly supplied store."""

    def __init__(self, store: DocumentStore, *, reserved_collections: tuple[str, ...] = ()) -> None:
        self.store = store
        self.reserved_collections = reserved_collections

    async def push(self, collection: str, body: Optional[bytes]) -> int:
        """Store new documents; ones carrying an identifier are upserted."""

        self._check_collection(collection)
        documents = self._decode_body(body)
        for document in documents:
            self._check_document(document)

        logger.debug("Received push [documents=%s, collection=%s]", len(documents), collection)

        async def apply(document: Document) -> None:
            if has_identifier(document):
                await self.store.upsert(collection, document)
            else:
                await self.store.save(collection, document)

        applied = await self._apply_batch(collection, documents, apply)
        observe_written("push", applied)
        return applied

    async def update(self, collection: str, body: Optional[bytes]) -> int:
        """Overwrite existing documents. Every document must carry an identifier."""

        self._check_collection(collection)
        documents = self._decode_body(body)
        for document in documents:
            if not has_identifier(document):
                logger.info("Rejected update without identifier [collection=%s]", collection)
                raise MissingIdentifierError()
            self._check_document(document)

        logger.debug("Received update [documents=%s, collection=%s]", len(documents), collection)

        async def apply(document: Document) -> None:
            await self.store.update(collection, document)

        applied = await self._apply_batch(collection, documents, apply)
        observe_written("update", applied)
        return applied

    async def pull_all(self, collection: str) -> SyncPage:
        self._check_collection(collection)
        last_modified = await self.store.last_modified(collection)
        documents = await self.store.find_all(collection)
        observe_served("all", len(documents))
        return SyncPage(documents, last_modified)

    async def pull_since(self, collection: str, time: str) -> SyncPage:
        """Return documents modified strictly after ``time`` (epoch milliseconds)."""

        self._check_collection(collection)
        if not _INTEGER.fullmatch(time or "") or not _INT64_MIN <= int(time) <= _INT64_MAX:
            raise MalformedPayloadError(f"Modification time is not a 64-bit integer: {time!r}")
        # High-water mark first, so a concurrent write is never skipped.
        last_modified = await self.store.last_modified(collection)
        documents = await self.store.find_since(collection, int(time))
        observe_served("since", len(documents))
        return SyncPage(documents, last_modified)

    async def pull_by_ids(self, collection: str, ids: str) -> SyncPage:
        self._check_collection(collection)
        identifiers = decode_id_set(ids)
        logger.debug("Received id lookup [ids=%s, collection=%s]", len(identifiers), collection)
        last_modified = await self.store.last_modified(collection)
        documents = await self.store.find_by_ids(collection, identifiers)
        observe_served("ids", len(documents))
        return SyncPage(documents, last_modified)

    async def remove(self, collection: str, identifier: str) -> None:
        self._check_collection(collection)
        try:
            object_id = ObjectId(identifier)
        except (InvalidId, TypeError) as exc:
            raise MalformedPayloadError(f"Invalid document identifier: {identifier!r}") from exc
        await self.store.delete(collection, object_id)

    async def _apply_batch(
        self,
        collection: str,
        documents: List[Document],
        apply: Callable[[Document], Awaitable[None]],
    ) -> int:
        applied = 0
        failures: List[ApplicationError] = []
        for document in documents:
            try:
                await apply(document)
            except ApplicationError as exc:
                logger.warning(
                    "Failed to apply document %s to %s: %s", document.get(ID_FIELD), collection, exc.message
                )
                failures.append(exc)
                continue
            applied += 1

        if failures:
            logger.error(
                "Batch on %s partially applied [applied=%s, failed=%s]", collection, applied, len(failures)
            )
            raise failures[0]
        return applied

    def _decode_body(self, body: Optional[bytes]) -> List[Document]:
        if not body:
            raise MalformedPayloadError("Request body is empty")
        return decode_many(body)

    def _check_collection(self, collection: str) -> None:
        if (
            not collection
            or "$" in collection
            or "\x00" in collection
            or collection.startswith("system.")
            or collection in self.reserved_collections
        ):
            raise MalformedPayloadError(f"Invalid collection name: {collection!r}")

    @staticmethod
    def _check_document(document: Document) -> None:
        if has_identifier(document) and not isinstance(document[ID_FIELD], ObjectId):
            raise MalformedPayloadError("Document identifier must be an ObjectId")
        if MTIME_FIELD in document:
            raise MalformedPayloadError(f"Field {MTIME_FIELD!r} is reserved")


__all__ = ["SyncGateway", "SyncPage"]
