"""Service layer orchestrating indexing sessions and result pages."""
