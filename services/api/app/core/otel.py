from __future__ import annotations

import logging

from app.core.config import settings
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)


def init_otel(app: FastAPI) -> bool:
    """Install tracing when OTEL_ENABLED is set. Returns whether it did."""
    if not settings.otel_enabled:
        return False

    resource = Resource.create(
        {
            "service.name": settings.api_name,
            "deployment.environment": settings.env,
            "bookledger.social_store": settings.social_store,
        }
    )
    provider = TracerProvider(resource=resource)

    # OTEL_EXPORTER_OTLP_ENDPOINT still applies when no override is configured.
    endpoint = settings.otel_otlp_endpoint
    exporter = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()

    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()
    logger.info("OpenTelemetry enabled", extra={"endpoint": endpoint})
    return True
