"""Abstract document store contract used by the sync gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from bson import ObjectId

from syncgateway.models.document import Document


class DocumentStore(ABC):
    """Per-collection persistent storage of identified documents.

    Every method is scoped to a collection, which is created on first write.
    Each call is atomic on its own; there are no cross-call transactions, so
    two concurrent writes to the same identifier resolve as last write wins.
    Every write stamps the document with a strictly increasing modification
    time and advances the collection's last-modified value. Deletes advance
    it as well.

    The ``_mtime`` field name is reserved for the modification stamp; a
    client value under that name is not stored.
    """

    @abstractmethod
    async def save(self, collection: str, document: Document) -> ObjectId:
        """Insert ``document``, generating an identifier when it has none.

        A document that already carries an identifier is upserted. The
        generated identifier is written into ``document`` and returned.
        """

    @abstractmethod
    async def upsert(self, collection: str, document: Document) -> ObjectId:
        """Insert or overwrite by client-supplied identifier.

        Raises:
            MissingIdentifierError: if ``document`` has no identifier.
        """

    @abstractmethod
    async def update(self, collection: str, document: Document) -> None:
        """Overwrite the stored document with the same identifier.

        Unknown identifiers are a silent no-op.

        Raises:
            MissingIdentifierError: if ``document`` has no identifier.
        """

    @abstractmethod
    async def find(self, collection: str, identifier: ObjectId) -> Optional[Document]:
        """Return the document or ``None`` when it does not exist."""

    @abstractmethod
    async def find_all(self, collection: str) -> List[Document]:
        """Return every live document in no particular order."""

    @abstractmethod
    async def find_by_ids(self, collection: str, identifiers: Iterable[ObjectId]) -> List[Document]:
        """Return the existing documents among ``identifiers``, each once."""

    @abstractmethod
    async def find_since(self, collection: str, timestamp: int) -> List[Document]:
        """Return documents modified strictly after ``timestamp``."""

    @abstractmethod
    async def delete(self, collection: str, identifier: ObjectId) -> None:
        """Remove the document if present. Always advances last-modified."""

    @abstractmethod
    async def last_modified(self, collection: str) -> int:
        """Return the collection high-water mark, 0 if never written."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


__all__ = ["DocumentStore"]
