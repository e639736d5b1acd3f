"""Incremental keyword and fuzzy search over a remote corpus of plain-text papers."""

__version__ = "0.1.0"
