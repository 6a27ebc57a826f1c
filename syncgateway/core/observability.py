"""Logging and OpenTelemetry initialization helpers."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter

from syncgateway.core.config import Settings, settings

logger = logging.getLogger(__name__)
_TRACING_INITIALIZED = False

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(config: Settings = settings) -> None:
    """Configure root logging once per process."""

    logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO), format=LOG_FORMAT)


def setup_tracing(app: Optional[FastAPI] = None, config: Settings = settings) -> None:
    """Configure OpenTelemetry tracers and instrument FastAPI if requested."""

    global _TRACING_INITIALIZED
    if not _TRACING_INITIALIZED:
        resource = Resource.create(
            {
                "service.name": config.API_TITLE.lower().replace(" ", "-"),
                "service.version": config.API_VERSION,
                "environment": config.ENVIRONMENT,
            }
        )

        provider = TracerProvider(resource=resource)
        exporter = _select_exporter(config)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        _TRACING_INITIALIZED = True
        logger.info("OpenTelemetry tracing initialized with %s exporter", exporter.__class__.__name__)

    if app is not None:
        FastAPIInstrumentor.instrument_app(app)


def _select_exporter(config: Settings) -> SpanExporter:
    if config.OTEL_EXPORTER_OTLP_ENDPOINT:
        headers = _parse_headers(config.OTEL_EXPORTER_OTLP_HEADERS)
        return OTLPSpanExporter(endpoint=str(config.OTEL_EXPORTER_OTLP_ENDPOINT), headers=headers or None)
    return ConsoleSpanExporter()


def _parse_headers(raw_headers: Optional[str]) -> Dict[str, str]:
    if not raw_headers:
        return {}
    pairs = {}
    for item in raw_headers.split(","):
        if not item.strip():
            continue
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        pairs[key.strip()] = value.strip()
    return pairs


__all__ = ["setup_logging", "setup_tracing"]
