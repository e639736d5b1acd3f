"""Centralized configuration for paper-search using Pydantic Settings."""

from typing import ClassVar, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Missing manifest/base URLs are not a validation error: an unconfigured
    session is still constructed and reports the problem through its
    ``error`` status instead.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",  # Ignore extra env vars not defined in model
    )

    # Document host
    manifest_url: str = Field(default="", description="URL of the JSON manifest listing document filenames")
    base_url: str = Field(
        default="",
        description="Prefix the document filenames are appended to verbatim, usually a folder URL ending in /",
    )

    # HTTP/Request settings
    http_timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds")
    concurrency: int | None = Field(
        default=None,
        ge=1,
        le=64,
        description="Concurrency hint for document fetch workers (defaults to the CPU count)",
    )

    # Ranking settings
    candidate_threshold: int = Field(
        default=600,
        ge=0,
        description="Largest candidate set that gets its own scoped fuzzy index",
    )
    fuzzy_threshold: float = Field(
        default=0.35, ge=0.0, le=1.0, description="Maximum field dissimilarity for the session-wide fuzzy index"
    )
    candidate_fuzzy_threshold: float = Field(
        default=0.45, ge=0.0, le=1.0, description="Maximum field dissimilarity for candidate-scoped fuzzy indexes"
    )
    fuzzy_limit: int = Field(default=500, ge=1, description="Result limit for the session-wide fuzzy index")
    title_weight: float = Field(default=0.7, gt=0.0, description="Relative weight of title matches")
    content_weight: float = Field(default=0.3, gt=0.0, description="Relative weight of content matches")
    fuzzy_strategy: Literal["incremental", "rebuild"] = Field(
        default="incremental",
        description="incremental: add documents one at a time; rebuild: rebuild the fuzzy index on every add",
    )

    # Excerpts
    excerpt_length: int = Field(default=220, ge=20, description="Width of the window centred on a match")
    lead_excerpt_length: int = Field(
        default=250, ge=20, description="Leading characters shown when no literal match exists"
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON logs")

    # Concurrency bounds applied to the hint
    MIN_WORKERS: ClassVar[int] = 2
    MAX_WORKERS: ClassVar[int] = 8

    def is_configured(self) -> bool:
        """Check whether both document host URLs are set."""
        return bool(self.manifest_url.strip() and self.base_url.strip())

    def resolve_concurrency(self, cpu_count: int | None) -> int:
        """Resolve the worker count from the configured hint or the CPU count.

        Args:
            cpu_count: Host concurrency hint, typically ``os.cpu_count()``

        Returns:
            Worker count clamped to [MIN_WORKERS, MAX_WORKERS]
        """
        hint = self.concurrency or cpu_count or 4
        return min(self.MAX_WORKERS, max(self.MIN_WORKERS, hint))
