"""Prometheus metrics for indexing and query observability."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


DOCUMENTS_INDEXED = Counter(
    "paper_search_documents_indexed_total",
    "Documents committed to the search index",
)

DOCUMENT_FETCH_FAILURES = Counter(
    "paper_search_document_fetch_failures_total",
    "Documents indexed with empty content after both fetch attempts failed",
)

MANIFEST_FAILURES = Counter(
    "paper_search_manifest_failures_total",
    "Indexing runs aborted because the manifest was unavailable",
)

INDEXED_DOCUMENTS = Gauge(
    "paper_search_indexed_documents",
    "Documents currently searchable in the most recent session",
)

SEARCH_LATENCY = Histogram(
    "paper_search_query_latency_seconds",
    "Search query latency",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


@contextmanager
def track_latency(histogram: Histogram) -> Generator[None, None, None]:
    """Observe the wall-clock duration of the block, including failed runs."""
    started = time.perf_counter()
    try:
        yield
    finally:
        histogram.observe(time.perf_counter() - started)


def get_metrics(registry: CollectorRegistry = REGISTRY) -> bytes:
    """Render ``registry`` in the Prometheus text exposition format."""
    return generate_latest(registry)
