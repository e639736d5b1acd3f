"""Concurrent fetch-and-index pipeline.

One ``ConcurrentIndexer`` owns the state of one search session: the document
table, the inverted index and the fuzzy ranker. It is their only writer.
Workers run as asyncio tasks on one event loop and only suspend while
awaiting the network, so committing a document to all three structures
happens without interleaving and readers never see a half-indexed document.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable, Mapping
import logging
import os
from types import MappingProxyType
from typing import Protocol

from paper_search.config import Settings
from paper_search.domain.index_status import (
    DocumentFetchFailedError,
    IndexLifecycle,
    IndexStatus,
    ManifestUnavailableError,
    MissingConfigurationError,
    Progress,
)
from paper_search.domain.model import Document
from paper_search.observability import (
    DOCUMENT_FETCH_FAILURES,
    DOCUMENTS_INDEXED,
    INDEXED_DOCUMENTS,
    MANIFEST_FAILURES,
    create_span,
)
from paper_search.search.analyzers import unique_tokens
from paper_search.search.fuzzy import FuzzyRanker, create_fuzzy_ranker
from paper_search.search.inverted_index import InvertedIndex


logger = logging.getLogger(__name__)

ProgressListener = Callable[[Progress], None]


class DocumentStore(Protocol):
    """Source of the manifest and document texts."""

    async def fetch_manifest(self) -> list[str]:  # pragma: no cover - interface definition
        ...

    async def fetch_document(self, identifier: str) -> str:  # pragma: no cover - interface definition
        ...


class ConcurrentIndexer:
    """Coordinate bounded-concurrency fetching and incremental indexing."""

    def __init__(
        self,
        store: DocumentStore | None,
        settings: Settings,
        *,
        fuzzy_ranker: FuzzyRanker | None = None,
        cpu_count: int | None = None,
    ) -> None:
        """Initialize an idle indexer.

        Args:
            store: Document source; None means the session is unconfigured
            settings: Ranking and concurrency configuration
            fuzzy_ranker: Override for the session-wide fuzzy ranker
            cpu_count: Host concurrency hint, defaults to ``os.cpu_count()``
        """
        self.store = store
        self.settings = settings
        self._cpu_count = cpu_count if cpu_count is not None else os.cpu_count()
        self._lifecycle = IndexLifecycle()
        self._progress = Progress()
        self._listeners: list[ProgressListener] = []

        self._documents: dict[str, Document] = {}
        self.inverted_index = InvertedIndex()
        self.fuzzy_ranker: FuzzyRanker = fuzzy_ranker or create_fuzzy_ranker(
            settings.fuzzy_strategy,
            self._documents.values,
            threshold=settings.fuzzy_threshold,
            title_weight=settings.title_weight,
            content_weight=settings.content_weight,
        )

    @property
    def documents(self) -> Mapping[str, Document]:
        """Read-only live view of the document table."""
        return MappingProxyType(self._documents)

    @property
    def status(self) -> IndexStatus:
        return self._lifecycle.status

    @property
    def error_message(self) -> str | None:
        return self._lifecycle.error_message

    @property
    def progress(self) -> Progress:
        return self._progress

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a progress listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def worker_count(self, manifest_size: int) -> int:
        return min(self.settings.resolve_concurrency(self._cpu_count), manifest_size)

    async def run(self) -> IndexStatus:
        """Fetch the manifest and index every document it lists.

        Returns the terminal status. Configuration and manifest failures are
        reported through ``status``/``error_message`` rather than raised.

        Raises:
            InvalidTransitionError: If the indexer has already run.
        """
        if self.store is None or not self.settings.is_configured():
            error = MissingConfigurationError("Please set MANIFEST_URL and BASE_URL")
            self._lifecycle.fail(str(error))
            logger.error("Indexing not started: %s", error)
            return self.status

        self._lifecycle.start()
        with create_span("search.index_run") as span:
            try:
                manifest = await self.store.fetch_manifest()
            except ManifestUnavailableError as exc:
                MANIFEST_FAILURES.inc()
                self._lifecycle.fail(str(exc))
                span.set_attribute("search.status", self.status.value)
                logger.error("Indexing aborted: %s", exc)
                return self.status

            self._progress = Progress(done=0, total=len(manifest))
            queue = deque(manifest)
            workers = self.worker_count(len(manifest))
            span.set_attribute("search.manifest_size", len(manifest))
            span.set_attribute("search.workers", workers)
            logger.info("Indexing %d documents with %d workers", len(manifest), workers)

            await asyncio.gather(*(self._worker(queue) for _ in range(workers)))

            self._lifecycle.mark_ready()
            span.set_attribute("search.status", self.status.value)

        logger.info("Index ready: %d documents, %d tokens", len(self._documents), len(self.inverted_index))
        return self.status

    async def _worker(self, queue: deque[str]) -> None:
        while queue:
            # popleft is the only claim point; no await separates the check from the claim
            identifier = queue.popleft()
            try:
                content = await self.store.fetch_document(identifier)
            except Exception as exc:
                error = DocumentFetchFailedError(identifier, f"{type(exc).__name__}: {exc}")
                DOCUMENT_FETCH_FAILURES.inc()
                logger.warning("%s; indexing with empty content", error, extra={"document_id": identifier})
                content = ""
            self.index_document(Document.from_identifier(identifier, content))
            self._advance_progress()

    def index_document(self, document: Document) -> None:
        """Commit one document to the table, the inverted index and the fuzzy ranker.

        Must not await: the three inserts form one step relative to readers.
        """
        self._documents[document.id] = document
        self.inverted_index.add_document(document.id, unique_tokens(document.title, document.content))
        if self.fuzzy_ranker.supports_incremental:
            self.fuzzy_ranker.add(document)
        else:
            self.fuzzy_ranker.rebuild(self._documents.values())
        DOCUMENTS_INDEXED.inc()
        INDEXED_DOCUMENTS.set(len(self._documents))

    def _advance_progress(self) -> None:
        self._progress = self._progress.advance()
        for listener in list(self._listeners):
            try:
                listener(self._progress)
            except Exception:
                logger.exception("Progress listener failed")
