"""
Tracing for the grid engine (OpenTelemetry)

Spans are always recorded so log lines carry trace ids; they are exported over
OTLP only when OTEL_EXPORTER_OTLP_ENDPOINT is set. Trace context travels with
payment webhooks and with feed client requests as W3C `traceparent` headers.
"""

from typing import Any, Mapping, Optional

from opentelemetry import context as otel_context, trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.propagate import extract, inject
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from sqlalchemy.ext.asyncio import AsyncEngine

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


def configure_tracing(
    *, service_name: Optional[str] = None, otlp_endpoint: Optional[str] = None
) -> TracerProvider:
    """Install the global tracer provider; call once per process"""
    endpoint = otlp_endpoint or settings.OTEL_EXPORTER_OTLP_ENDPOINT
    provider = TracerProvider(
        resource=Resource(attributes={SERVICE_NAME: service_name or settings.SERVICE_NAME}),
        sampler=ALWAYS_ON,
    )
    if endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        Logger.base.info(f'📊 [TRACING] Exporting spans to {endpoint}')
    trace.set_tracer_provider(provider)
    return provider


def instrument_app(app: Any) -> None:
    # Long-lived feed streams would otherwise stay open as single spans
    FastAPIInstrumentor.instrument_app(app, excluded_urls='health,metrics,api/grid/stream')


def instrument_engine(engine: AsyncEngine) -> None:
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


def inject_trace_context(*, headers: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Outgoing headers carrying the current trace (feed client requests)"""
    headers = headers or {}
    inject(headers)
    return headers


def extract_trace_context(*, headers: Optional[Mapping[str, str]] = None) -> Context:
    """
    Trace context of an incoming request, so payment reconciliation joins the
    trace of the webhook that triggered it. Falls back to the current context.
    """
    if headers:
        return extract(dict(headers))
    return otel_context.get_current()
