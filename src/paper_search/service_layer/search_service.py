"""Search session orchestration layer.

A ``SearchSession`` bundles one indexer with the query engine reading it and
follows a ``create -> run -> query* -> close`` lifecycle. Sessions share no
state, so several can coexist in one process. ``browse`` lists the manifest by
title without waiting for indexing.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging
import math
from typing import Protocol

import httpx

from paper_search.adapters.document_store import HttpDocumentStore
from paper_search.config import Settings
from paper_search.domain.index_status import IndexStatus, MissingConfigurationError, Progress
from paper_search.domain.model import PaperListing, PaperMetadata, SearchResult, listing_title
from paper_search.observability import bound_session
from paper_search.observability.context import new_span_id
from paper_search.search.indexer import ConcurrentIndexer, DocumentStore, ProgressListener
from paper_search.search.query_engine import QueryEngine


logger = logging.getLogger(__name__)


class BrowsableStore(DocumentStore, Protocol):
    """Document store that can also describe papers for browsing."""

    async def fetch_metadata(self, identifier: str) -> PaperMetadata:  # pragma: no cover - interface definition
        ...


@dataclass(frozen=True)
class ResultPage:
    """One page of a ranked result list."""

    results: tuple[SearchResult, ...]
    page: int
    page_size: int
    total_results: int
    total_pages: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def paginate(results: Sequence[SearchResult], page: int = 1, page_size: int = 10) -> ResultPage:
    """Slice a ranked result list into 1-based pages.

    The requested page is clamped into ``[1, total_pages]`` and there is
    always at least one (possibly empty) page.

    Raises:
        ValueError: If ``page_size`` is not positive.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    total_pages = max(1, math.ceil(len(results) / page_size))
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    return ResultPage(
        results=tuple(results[start : start + page_size]),
        page=page,
        page_size=page_size,
        total_results=len(results),
        total_pages=total_pages,
    )


class SearchSession:
    """High-level handle over one indexing run and its queries."""

    def __init__(
        self,
        settings: Settings,
        *,
        store: BrowsableStore | None = None,
        client: httpx.AsyncClient | None = None,
        cpu_count: int | None = None,
    ) -> None:
        """Initialize an idle session.

        Args:
            settings: Session configuration
            store: Document source; built from the settings' URLs when omitted
            client: HTTP client handed to the default store (tests use a mock transport)
            cpu_count: Host concurrency hint passed to the indexer
        """
        self.settings = settings
        self.session_id = new_span_id()
        self._owned_store: HttpDocumentStore | None = None
        if store is None and settings.is_configured():
            self._owned_store = HttpDocumentStore(
                settings.manifest_url,
                settings.base_url,
                timeout=settings.http_timeout,
                client=client,
            )
            store = self._owned_store
        self.store = store

        self.indexer = ConcurrentIndexer(store, settings, cpu_count=cpu_count)
        self.query_engine = QueryEngine(
            self.indexer.documents,
            self.indexer.inverted_index,
            self.indexer.fuzzy_ranker,
            settings,
        )

    async def __aenter__(self) -> SearchSession:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @property
    def status(self) -> IndexStatus:
        return self.indexer.status

    @property
    def error_message(self) -> str | None:
        return self.indexer.error_message

    @property
    def progress(self) -> Progress:
        return self.indexer.progress

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        return self.indexer.subscribe(listener)

    async def run(self) -> IndexStatus:
        """Build the index; queries may be issued while this is running."""
        with bound_session(self.session_id):
            status = await self.indexer.run()
            if status is IndexStatus.ERROR:
                logger.warning("Search session %s failed: %s", self.session_id, self.error_message)
        return status

    def search(self, query: str) -> list[SearchResult]:
        """Rank the currently indexed documents against ``query``."""
        return self.query_engine.search(query)

    def search_page(self, query: str, page: int = 1, page_size: int = 10) -> ResultPage:
        return paginate(self.search(query), page=page, page_size=page_size)

    async def browse(self, title_filter: str = "", *, with_metadata: bool = True) -> list[PaperListing]:
        """List manifest entries alphabetically by title.

        Args:
            title_filter: Case-insensitive substring the listing title must contain
            with_metadata: Also fetch authors and year for each listed paper

        Returns:
            One listing per distinct identifier, sorted by case-folded title.

        Raises:
            MissingConfigurationError: If the session has no document host.
            ManifestUnavailableError: If the manifest cannot be fetched.
        """
        if self.store is None or not self.settings.is_configured():
            raise MissingConfigurationError("Please set MANIFEST_URL and BASE_URL")

        manifest = await self.store.fetch_manifest()
        needle = title_filter.casefold()
        entries = [(identifier, listing_title(identifier)) for identifier in dict.fromkeys(manifest)]
        entries = [entry for entry in entries if needle in entry[1].casefold()]
        entries.sort(key=lambda entry: (entry[1].casefold(), entry[0]))

        metadata = [PaperMetadata()] * len(entries)
        if with_metadata and entries:
            metadata = await self._fetch_metadata([identifier for identifier, _ in entries])

        return [
            PaperListing(id=identifier, title=title, authors=meta.authors, year=meta.year)
            for (identifier, title), meta in zip(entries, metadata)
        ]

    async def _fetch_metadata(self, identifiers: list[str]) -> list[PaperMetadata]:
        semaphore = asyncio.Semaphore(self.indexer.worker_count(len(identifiers)))

        async def load(identifier: str) -> PaperMetadata:
            async with semaphore:
                return await self.store.fetch_metadata(identifier)

        return list(await asyncio.gather(*(load(identifier) for identifier in identifiers)))

    async def aclose(self) -> None:
        if self._owned_store is not None:
            await self._owned_store.aclose()
