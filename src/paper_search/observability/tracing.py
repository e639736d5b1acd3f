"""OpenTelemetry spans around indexing runs and queries.

Until ``init_tracing`` installs an SDK provider, spans go to the global
default provider, which records nothing.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor, SpanExporter
from opentelemetry.trace import Span, SpanKind

from paper_search.observability.context import record_span, restore_span


logger = logging.getLogger(__name__)

_INSTRUMENTATION_NAME = "paper_search"
_provider_holder: dict[str, TracerProvider | None] = {"provider": None}


def init_tracing(service_name: str = "paper-search", *, exporter: SpanExporter | None = None) -> TracerProvider:
    """Install the SDK tracer provider once and attach an optional exporter.

    Args:
        service_name: ``service.name`` resource attribute
        exporter: Receives every finished span (the CLI's ``--trace`` uses a console exporter)
    """
    provider = _provider_holder["provider"]
    if provider is None:
        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
        trace.set_tracer_provider(provider)
        _provider_holder["provider"] = provider
        logger.debug("Tracing initialized for service: %s", service_name)
    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    return provider


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(_INSTRUMENTATION_NAME)


@contextmanager
def create_span(
    name: str,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Mapping[str, Any] | None = None,
) -> Iterator[Span]:
    """Run the block inside a new current span and expose its id to log records.

    Exceptions escaping the block are recorded on the span and re-raised.
    """
    with get_tracer().start_as_current_span(name, kind=kind, attributes=attributes) as span:
        span_context = span.get_span_context()
        if not span_context.is_valid:
            yield span
            return
        token = record_span(format(span_context.span_id, "016x"))
        try:
            yield span
        finally:
            restore_span(token)
