"""Object synchronization endpoints.

All payloads are BSON document streams (``application/octet-stream``). Every
read response carries the collection's last-modified value so clients can
keep a high-water mark for their next delta query.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from syncgateway.api.dependencies import get_gateway
from syncgateway.codec import encode_many
from syncgateway.core.config import settings
from syncgateway.services.sync import SyncGateway, SyncPage

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"

router = APIRouter(prefix=f"/{settings.OBJECT_ROOT}/{{collection}}", tags=["objects"])


def _page_response(page: SyncPage, *, allow_no_content: bool = True) -> Response:
    headers = {settings.MODIFIED_HEADER: str(page.last_modified)}
    if page.empty and allow_no_content:
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)
    return Response(content=encode_many(page.documents), media_type=OCTET_STREAM, headers=headers)


@router.put("")
async def put_objects(collection: str, request: Request, gateway: SyncGateway = Depends(get_gateway)) -> Response:
    """Store documents the server has not seen yet."""

    body = await request.body()
    logger.debug("Received PUT [data.length=%s, collection=%s]", len(body), collection)
    await gateway.push(collection, body)
    return Response(status_code=status.HTTP_200_OK)


@router.post("")
async def post_objects(collection: str, request: Request, gateway: SyncGateway = Depends(get_gateway)) -> Response:
    """Overwrite existing documents; each must carry its identifier."""

    body = await request.body()
    logger.debug("Received POST [data.length=%s, collection=%s]", len(body), collection)
    await gateway.update(collection, body)
    return Response(status_code=status.HTTP_200_OK)


@router.get("")
async def get_objects(collection: str, gateway: SyncGateway = Depends(get_gateway)) -> Response:
    """Return the whole collection."""

    logger.debug("Received GET [collection=%s]", collection)
    return _page_response(await gateway.pull_all(collection))


@router.get(f"/{settings.MTIME_PATH}/{{time}}")
async def get_objects_since(collection: str, time: str, gateway: SyncGateway = Depends(get_gateway)) -> Response:
    """Return documents modified after ``time``."""

    logger.debug("Received GET [collection=%s, mtime=%s]", collection, time)
    return _page_response(await gateway.pull_since(collection, time))


@router.get("/{ids}")
async def get_objects_by_ids(collection: str, ids: str, gateway: SyncGateway = Depends(get_gateway)) -> Response:
    """Return the requested documents that still exist."""

    logger.debug("Received GET [collection=%s, ids.length=%s]", collection, len(ids))
    return _page_response(await gateway.pull_by_ids(collection, ids), allow_no_content=False)


@router.delete("/{identifier}")
async def delete_object(collection: str, identifier: str, gateway: SyncGateway = Depends(get_gateway)) -> Response:
    logger.debug("Received DELETE [collection=%s, id=%s]", collection, identifier)
    await gateway.remove(collection, identifier)
    return Response(status_code=status.HTTP_200_OK)
