"""Remote document store backed by a static file host.

The host serves a JSON manifest listing filenames and one plain-text file
per filename under a base folder URL. Filenames may or may not need
percent-encoding depending on how the host serves them, so each document is
requested encoded first and verbatim second. A paper may also have a
``<name>.json`` sidecar carrying its authors and publication year.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
import orjson

from paper_search.domain.index_status import DocumentFetchFailedError, ManifestUnavailableError
from paper_search.domain.model import PaperMetadata, title_from_identifier
from paper_search.observability import DOCUMENT_FETCH_FAILURES


logger = logging.getLogger(__name__)


class HttpDocumentStore:
    """Fetches the manifest and document texts over HTTP."""

    def __init__(
        self,
        manifest_url: str,
        base_url: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            manifest_url: URL of the JSON array of document identifiers
            base_url: Prefix identifiers are appended to verbatim
            timeout: Request timeout in seconds when the store creates its own client
            client: Optional pre-built client; the store never closes a client it did not create
        """
        self.manifest_url = manifest_url
        self.base_url = base_url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> HttpDocumentStore:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            timeout = httpx.Timeout(self.timeout, connect=min(self.timeout, 10.0))
            self._client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_manifest(self) -> list[str]:
        """Fetch the ordered list of document identifiers.

        Raises:
            ManifestUnavailableError: Endpoint unreachable, non-success status,
                or a body that is not a JSON array of strings.
        """
        client = self._ensure_client()
        try:
            response = await client.get(self.manifest_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ManifestUnavailableError(
                f"Failed to fetch manifest: {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ManifestUnavailableError(f"Failed to fetch manifest: {exc}") from exc

        try:
            manifest = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            raise ManifestUnavailableError(f"Manifest is not valid JSON: {exc}") from exc

        if not isinstance(manifest, list) or not all(isinstance(item, str) for item in manifest):
            raise ManifestUnavailableError("Manifest must be a JSON array of filenames")

        logger.info("Fetched manifest with %d documents from %s", len(manifest), self.manifest_url)
        return manifest

    def encoded_url(self, identifier: str) -> str:
        return self.base_url + quote(identifier, safe="")

    def raw_url(self, identifier: str) -> str:
        return self.base_url + identifier

    async def fetch_document(self, identifier: str) -> str:
        """Fetch one document's text, or ``""`` when both attempts fail.

        A failed document keeps its place in the corpus so progress counts
        stay consistent; the failure is only logged.
        """
        try:
            return await self._fetch_text(identifier)
        except DocumentFetchFailedError as exc:
            DOCUMENT_FETCH_FAILURES.inc()
            logger.warning("%s; indexing with empty content", exc, extra={"document_id": identifier})
            return ""

    async def _fetch_text(self, identifier: str) -> str:
        client = self._ensure_client()
        first_error = "unknown error"
        for attempt, url in enumerate((self.encoded_url(identifier), self.raw_url(identifier))):
            try:
                response = await client.get(url)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                error = f"{type(exc).__name__}: {exc}"
            else:
                if response.is_success:
                    return response.text
                error = f"HTTP {response.status_code}"
            if attempt == 0:
                first_error = error
                logger.debug("Encoded fetch failed for %s (%s), retrying unencoded", identifier, error)

        raise DocumentFetchFailedError(identifier, f"encoded: {first_error}; raw: {error}")

    def metadata_url(self, identifier: str) -> str:
        """URL of the JSON sidecar that sits next to a ``.txt`` paper."""
        return self.base_url + quote(title_from_identifier(identifier) + ".json", safe="")

    async def fetch_metadata(self, identifier: str) -> PaperMetadata:
        """Fetch authors and year for one paper, or empty metadata.

        The ``<name>.json`` sidecar is preferred; without one, the paper's
        own text is scanned for an ``Authors:`` header and a year. Metadata is
        decorative, so failures are logged at debug level only.
        """
        client = self._ensure_client()
        try:
            response = await client.get(self.metadata_url(identifier))
            if response.is_success:
                data = orjson.loads(response.content)
                if isinstance(data, dict):
                    return PaperMetadata.from_sidecar(data)
        except (httpx.HTTPError, httpx.InvalidURL, orjson.JSONDecodeError) as exc:
            logger.debug("No metadata sidecar for %s: %s", identifier, exc)

        try:
            response = await client.get(self.encoded_url(identifier))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Metadata header fetch failed for %s: %s", identifier, exc)
            return PaperMetadata()
        if not response.is_success:
            return PaperMetadata()
        return PaperMetadata.from_text_header(response.text)
