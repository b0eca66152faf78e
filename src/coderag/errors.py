"""Exception taxonomy for coderag.

Only :class:`FatalError` (and :class:`ConfigError`, raised before a run starts)
escapes :meth:`coderag.ingestion.pipeline.IngestionPipeline.run`; everything else
is turned into an entry of the run's error list.
"""

from __future__ import annotations


class CodeRagError(Exception):
    """Base class for all coderag errors."""


class ConfigError(CodeRagError):
    """Configuration is missing or invalid."""


class ParseError(CodeRagError):
    """A Symbol Source could not parse one file."""

    def __init__(self, path: str, language: str, message: str) -> None:
        super().__init__(f"{path} ({language}): {message}")
        self.path = path
        self.language = language
        self.message = message


class EmbeddingError(CodeRagError):
    """The embedding provider failed for a batch."""


class RepoError(CodeRagError):
    """Any failure while scanning, parsing, embedding or indexing one repository."""

    def __init__(self, repo: str, message: str) -> None:
        super().__init__(f"Failed to process {repo}: {message}")
        self.repo = repo
        self.message = message


class FatalError(CodeRagError):
    """Pre-flight failure that aborts the whole run before any repository is touched."""


class StoreError(CodeRagError):
    """The vector store rejected an operation as a whole."""
