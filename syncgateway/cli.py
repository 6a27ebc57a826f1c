"""Command line entry for the sync gateway."""

from __future__ import annotations

import uvicorn

from syncgateway.api.main import create_app
from syncgateway.core.config import settings
from syncgateway.core.observability import setup_logging


def run_server() -> None:
    setup_logging(settings)
    uvicorn.run(create_app(), host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


def main() -> None:
    run_server()


if __name__ == "__main__":
    main()
