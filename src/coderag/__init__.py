"""coderag - chunking and indexing of source repositories for semantic search."""

__version__ = "0.3.0"
