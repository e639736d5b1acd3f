"""Log formatting and root logger setup.

JSON output is one orjson-encoded object per line carrying the correlation
ids of the task that emitted it, so concurrent sessions in one process can
be told apart.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from pathlib import Path
import sys
from typing import IO, Any

import orjson

from paper_search.observability.context import current_context


# Attributes every LogRecord carries; anything else came in through ``extra=``
_STANDARD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}
_SENSITIVE_KEYS = frozenset({"password", "token", "api_key", "secret", "authorization"})
_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_NOISY_LOGGERS = ("httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects with correlation ids."""

    MAX_MESSAGE_LEN = 2000
    MAX_FIELD_LEN = 500

    def format(self, record: logging.LogRecord) -> str:
        entry = self._base_entry(record)
        entry.update(self._extra_fields(record))
        return orjson.dumps(entry, default=_encode_fallback).decode("utf-8")

    def _base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        ctx = current_context()
        message = record.getMessage()
        if len(message) > self.MAX_MESSAGE_LEN:
            message = message[: self.MAX_MESSAGE_LEN] + "..."

        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": record.name.rpartition(".")[2],
            "message": message,
            "trace_id": ctx.trace_id,
            "span_id": ctx.span_id,
        }
        if ctx.session_id:
            entry["session"] = ctx.session_id
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return entry

    def _extra_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRIBUTES or key.startswith("_"):
                continue
            if key.lower() in _SENSITIVE_KEYS:
                value = "[REDACTED]"
            elif isinstance(value, str) and len(value) > self.MAX_FIELD_LEN:
                value = value[: self.MAX_FIELD_LEN] + "..."
            fields[key] = value
        return fields


def _encode_fallback(value: Any) -> Any:
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, (Path, Exception)):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return repr(value)


def _resolve_level(level: str) -> int:
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    *,
    stream: IO[str] | None = None,
    logger_levels: dict[str, str] | None = None,
) -> logging.Handler:
    """Replace the root handlers with a single stream handler.

    Args:
        level: Root log level name, case-insensitive; unknown names mean INFO
        json_output: Emit JSON lines instead of plain text
        stream: Destination, stderr by default so stdout stays machine-readable
        logger_levels: Per-logger level overrides (logger name -> level name)

    Returns:
        The installed handler.
    """
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name, logger_level in (logger_levels or {}).items():
        logging.getLogger(name).setLevel(_resolve_level(logger_level))
    return handler
