"""Observability module for tracing, metrics, and logging."""

from paper_search.observability.context import CorrelationContext, bound_session, current_context
from paper_search.observability.logging import JsonFormatter, configure_logging
from paper_search.observability.metrics import (
    DOCUMENT_FETCH_FAILURES,
    DOCUMENTS_INDEXED,
    INDEXED_DOCUMENTS,
    MANIFEST_FAILURES,
    SEARCH_LATENCY,
    get_metrics,
    track_latency,
)
from paper_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "DOCUMENTS_INDEXED",
    "DOCUMENT_FETCH_FAILURES",
    "INDEXED_DOCUMENTS",
    "MANIFEST_FAILURES",
    "SEARCH_LATENCY",
    "CorrelationContext",
    "JsonFormatter",
    "bound_session",
    "configure_logging",
    "create_span",
    "current_context",
    "get_metrics",
    "get_tracer",
    "init_tracing",
    "track_latency",
]
