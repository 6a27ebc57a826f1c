"""Async HTTP client for the sync protocol."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

import httpx
from bson import ObjectId

from syncgateway.codec import decode_many, encode_id_set, encode_many
from syncgateway.core.config import settings
from syncgateway.models.document import Document
from syncgateway.services.sync import SyncPage

logger = logging.getLogger(__name__)


class SyncClientError(RuntimeError):
    """Raised when the gateway answers with an error status."""

    def __init__(self, status_code: int, detail: str, code: Optional[str] = None) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.code = code


class SyncClient:
    """Push and pull documents against a sync gateway.

    The client keeps no state between calls; persisting the last-modified
    value returned by reads is up to the caller.
    """

    def __init__(
        self,
        base_url: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
        object_root: str = settings.OBJECT_ROOT,
        mtime_path: str = settings.MTIME_PATH,
        modified_header: str = settings.MODIFIED_HEADER,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.object_root = object_root
        self.mtime_path = mtime_path
        self.modified_header = modified_header

    async def __aenter__(self) -> "SyncClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def push(self, collection: str, documents: Iterable[Document]) -> None:
        response = await self._client.put(self._path(collection), content=encode_many(documents))
        self._raise_for_status(response)

    async def update(self, collection: str, documents: Iterable[Document]) -> None:
        response = await self._client.post(self._path(collection), content=encode_many(documents))
        self._raise_for_status(response)

    async def pull_all(self, collection: str) -> SyncPage:
        return await self._read(self._path(collection))

    async def pull_since(self, collection: str, last_modified: int) -> SyncPage:
        return await self._read(self._path(collection, self.mtime_path, str(last_modified)))

    async def pull_by_ids(self, collection: str, identifiers: Iterable[ObjectId]) -> SyncPage:
        return await self._read(self._path(collection, encode_id_set(identifiers)))

    async def delete(self, collection: str, identifier: ObjectId) -> None:
        response = await self._client.delete(self._path(collection, str(identifier)))
        self._raise_for_status(response)

    async def _read(self, path: str) -> SyncPage:
        response = await self._client.get(path)
        self._raise_for_status(response)
        last_modified = int(response.headers.get(self.modified_header, "0"))
        documents: List[Document] = []
        if response.status_code != httpx.codes.NO_CONTENT:
            documents = decode_many(response.content)
        return SyncPage(documents, last_modified)

    def _path(self, collection: str, *segments: str) -> str:
        return "/".join(["", self.object_root, collection, *segments])

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        detail, code = response.text, None
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            detail = str(payload.get("detail", detail))
            code = payload.get("code")
        logger.warning("Sync request %s %s failed with %s", response.request.method, response.request.url, response.status_code)
        raise SyncClientError(response.status_code, detail, code)


__all__ = ["SyncClient", "SyncClientError"]
