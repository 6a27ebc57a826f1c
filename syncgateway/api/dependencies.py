from __future__ import annotations

from fastapi import HTTPException, Request, status

from syncgateway.services.sync import SyncGateway


async def get_gateway(request: Request) -> SyncGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Document store is not initialized.",
        )
    return gateway
