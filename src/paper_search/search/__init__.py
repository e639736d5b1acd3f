"""
Search indexing and query engine package.

This package provides the incremental search stack:
- analyzers: Tokenizer shared by indexing and queries
- inverted_index: Token -> document postings
- fuzzy: Approximate title/content ranking
- phrase, snippet: Exact-phrase helpers, excerpts and highlighting
- indexer: Concurrent fetch-and-index pipeline
- query_engine: Tiered exact/fuzzy ranking
"""
