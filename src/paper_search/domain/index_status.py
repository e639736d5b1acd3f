"""Domain model for the indexing lifecycle.

An indexing session moves through ``idle -> indexing -> ready``. ``error`` is
terminal and reachable from ``idle`` (missing configuration) or from
``indexing`` (manifest failure). A fresh session is required to start over.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PaperSearchError(Exception):
    """Base error for the search index."""


class MissingConfigurationError(PaperSearchError):
    """Raised when the manifest or base URL is not configured."""


class ManifestUnavailableError(PaperSearchError):
    """Raised when the manifest cannot be fetched or parsed."""


class DocumentFetchFailedError(PaperSearchError):
    """Describes a document that failed both the encoded and the raw fetch."""

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f"Could not fetch {identifier!r}: {reason}")
        self.identifier = identifier
        self.reason = reason


class InvalidTransitionError(PaperSearchError):
    """Raised when invalid status transition occurs."""


class IndexStatus(str, Enum):
    """Phases of an indexing session."""

    IDLE = "idle"
    INDEXING = "indexing"
    READY = "ready"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in {IndexStatus.READY, IndexStatus.ERROR}

    def can_transition_to(self, target: IndexStatus) -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[IndexStatus, frozenset[IndexStatus]] = {
    IndexStatus.IDLE: frozenset({IndexStatus.INDEXING, IndexStatus.ERROR}),
    IndexStatus.INDEXING: frozenset({IndexStatus.READY, IndexStatus.ERROR}),
    IndexStatus.READY: frozenset(),
    IndexStatus.ERROR: frozenset(),
}


@dataclass(frozen=True, slots=True)
class Progress:
    """Counters for one indexing run."""

    done: int = 0
    total: int = 0

    @property
    def is_complete(self) -> bool:
        return self.done >= self.total

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.done / self.total

    def advance(self) -> Progress:
        if self.done >= self.total:
            raise InvalidTransitionError(f"Progress already complete ({self.done}/{self.total})")
        return Progress(done=self.done + 1, total=self.total)


class IndexLifecycle:
    """Status holder that enforces the allowed transitions."""

    def __init__(self) -> None:
        self._status = IndexStatus.IDLE
        self._error_message: str | None = None

    @property
    def status(self) -> IndexStatus:
        return self._status

    @property
    def error_message(self) -> str | None:
        return self._error_message

    def start(self) -> None:
        self._transition(IndexStatus.INDEXING)

    def mark_ready(self) -> None:
        self._transition(IndexStatus.READY)

    def fail(self, message: str) -> None:
        self._transition(IndexStatus.ERROR)
        self._error_message = message

    def _transition(self, target: IndexStatus) -> None:
        if not self._status.can_transition_to(target):
            raise InvalidTransitionError(f"Cannot transition from {self._status.value} to {target.value}")
        self._status = target
