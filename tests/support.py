"""Test helpers: settings/engine builders and a fake static file host."""

from __future__ import annotations

from collections.abc import Iterable
from urllib.parse import quote

import httpx

from paper_search.config import Settings
from paper_search.domain.model import Document
from paper_search.search.indexer import ConcurrentIndexer
from paper_search.search.query_engine import QueryEngine


MANIFEST_URL = "https://papers.test/manifest.json"
BASE_URL = "https://papers.test/articles/"


def make_settings(**overrides) -> Settings:
    values = {"manifest_url": MANIFEST_URL, "base_url": BASE_URL}
    values.update(overrides)
    return Settings(**values)


def build_engine(documents: Iterable[Document], **overrides) -> tuple[QueryEngine, ConcurrentIndexer]:
    """Index documents synchronously and return an engine over them."""
    settings = make_settings(**overrides)
    indexer = ConcurrentIndexer(None, settings)
    for document in documents:
        indexer.index_document(document)
    engine = QueryEngine(indexer.documents, indexer.inverted_index, indexer.fuzzy_ranker, settings)
    return engine, indexer


def doc(identifier: str, content: str = "") -> Document:
    return Document.from_identifier(identifier, content)


class FakeHost:
    """Static file host served through ``httpx.MockTransport``.

    Files are keyed by the path as it appears on the wire below the
    articles folder, so tests control which encoding variant succeeds.
    """

    def __init__(self, manifest: list[str] | None = None, manifest_status: int = 200) -> None:
        self.manifest = manifest if manifest is not None else []
        self.manifest_status = manifest_status
        self.manifest_body: bytes | None = None
        self.files: dict[str, str] = {}
        self.errors: set[str] = set()
        self.requests: list[str] = []

    def add(self, identifier: str, text: str, *, encoded: bool = True) -> None:
        wire_name = quote(identifier, safe="") if encoded else identifier
        self.files[wire_name] = text
        if identifier not in self.manifest:
            self.manifest.append(identifier)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.raw_path.decode("ascii")
        self.requests.append(path)
        if path == "/manifest.json":
            if self.manifest_body is not None:
                return httpx.Response(self.manifest_status, content=self.manifest_body)
            return httpx.Response(self.manifest_status, json=self.manifest)

        name = path.removeprefix("/articles/")
        if name in self.errors:
            raise httpx.ConnectError("connection refused", request=request)
        if name in self.files:
            return httpx.Response(200, text=self.files[name])
        return httpx.Response(404, text="not found")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def document_requests(self) -> list[str]:
        return [path.removeprefix("/articles/") for path in self.requests if path.startswith("/articles/")]
