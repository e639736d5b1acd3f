"""Domain layer: documents, results, and indexing lifecycle."""
