"""Document store lifecycle for the sync gateway."""

from __future__ import annotations

import logging
from typing import Optional

from syncgateway.core.config import Settings, settings
from syncgateway.store.base import DocumentStore
from syncgateway.store.memory import InMemoryDocumentStore

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Builds the configured document store on startup and closes it on shutdown."""

    def __init__(self, config: Settings = settings) -> None:
        self.config = config
        self.store: Optional[DocumentStore] = None

    async def initialize(self) -> DocumentStore:
        """Create the store selected by ``STORE_BACKEND``."""

        logger.info("Initializing %s document store", self.config.STORE_BACKEND)

        if self.config.STORE_BACKEND == "mongodb":
            from syncgateway.store.mongodb import MongoDocumentStore

            store = MongoDocumentStore.from_settings(self.config)
            await store.initialize()
            self.store = store
        else:
            self.store = InMemoryDocumentStore()

        logger.info("Document store initialized")
        return self.store

    async def close(self) -> None:
        """Tear down the store gracefully."""

        if self.store is not None:
            logger.info("Closing document store")
            await self.store.close()
            self.store = None


__all__ = ["DatabaseManager"]
