"""FastAPI application entrypoint for the sync gateway."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from syncgateway.api.middleware.logging import LoggingMiddleware
from syncgateway.api.routes import objects
from syncgateway.core.config import settings
from syncgateway.core.database import DatabaseManager
from syncgateway.core.exceptions import ApplicationError
from syncgateway.core.observability import setup_tracing
from syncgateway.services.sync import SyncGateway
from syncgateway.store.base import DocumentStore


def create_app(store: Optional[DocumentStore] = None) -> FastAPI:
    """Build the application around ``store``.

    Without an explicit store the one selected by ``STORE_BACKEND`` is created
    on startup and closed on shutdown.
    """

    database_manager = DatabaseManager(settings)
    reserved = (settings.SYNC_META_COLLECTION,)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if store is None:
            backend = await database_manager.initialize()
            app.state.gateway = SyncGateway(backend, reserved_collections=reserved)
        try:
            yield
        finally:
            await database_manager.close()

    app = FastAPI(
        title=settings.API_TITLE,
        version=settings.API_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )
    if store is not None:
        app.state.gateway = SyncGateway(store, reserved_collections=reserved)

    if settings.ENABLE_TRACING:
        setup_tracing(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[settings.MODIFIED_HEADER],
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(objects.router)

    if settings.ENABLE_METRICS:
        app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    async def health_check(request: Request):
        gateway = getattr(request.app.state, "gateway", None)
        if gateway is None or not await gateway.store.ping():
            return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"status": "unavailable"})
        return {"status": "healthy"}

    @app.exception_handler(ApplicationError)
    async def handle_application_error(_: Request, exc: ApplicationError):
        """Return standardized responses for application layer exceptions."""

        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "code": exc.code})

    return app


__all__ = ["create_app"]
