"""Result and progress types reported by the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from coderag.errors import ParseError, RepoError
from coderag.models import Chunk


class Phase(str, Enum):
    SCANNING = "scanning"
    PARSING = "parsing"
    EMBEDDING = "embedding"
    INDEXING = "indexing"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class IngestionStatus:
    """Progress checkpoint handed to ``on_progress`` callbacks."""

    phase: Phase
    repo: Optional[str] = None
    file: Optional[str] = None
    files_processed: Optional[int] = None
    total_files: Optional[int] = None
    chunks_created: Optional[int] = None
    chunks_embedded: Optional[int] = None
    chunks_indexed: Optional[int] = None


ProgressCallback = Callable[[IngestionStatus], None]


@dataclass(frozen=True, slots=True)
class IndexingProgress:
    phase: Phase
    completed: int
    total: int
    successful: int = 0


@dataclass(slots=True)
class FileOutcome:
    """Chunks produced for one file, or the reason it was skipped."""

    path: str
    chunks: List[Chunk] = field(default_factory=list)
    error: Optional[str] = None
    fallback: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class IndexingResult:
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass(slots=True)
class RepoOutcome:
    """Counts for one repository, or the error that stopped it."""

    repo: str
    files: int = 0
    chunks: int = 0
    indexed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[RepoError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class IngestionResult:
    """Totals accumulated over every repository of a run; never reset mid-run."""

    repositories: int = 0
    files: int = 0
    chunks: int = 0
    indexed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def add(self, outcome: RepoOutcome) -> None:
        self.files += outcome.files
        self.chunks += outcome.chunks
        self.indexed += outcome.indexed
        self.failed += outcome.failed
        self.errors.extend(outcome.errors)
        if outcome.error is not None:
            self.errors.append(str(outcome.error))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repositories": self.repositories,
            "files": self.files,
            "chunks": self.chunks,
            "indexed": self.indexed,
            "failed": self.failed,
            "errors": list(self.errors),
        }
