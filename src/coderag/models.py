"""Core coderag data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from coderag.utils.hashing import stable_hash


class SymbolType(str, Enum):
    """Kinds of symbols shared by every Symbol Source."""

    FILE = "file"
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"
    FUNCTION = "function"
    METHOD = "method"
    BLOCK = "block"


class Language(str, Enum):
    JAVA = "java"
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"
    PYTHON = "python"
    SQL = "sql"
    YAML = "yaml"
    JSON = "json"
    CONFIG = "config"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class Symbol:
    """A parsed semantic unit of one file (1-indexed, inclusive lines)."""

    type: SymbolType
    start_line: int
    end_line: int
    text: str
    name: Optional[str] = None
    signature: Optional[str] = None
    doc_comment: Optional[str] = None
    parent: Optional[str] = None
    package: Optional[str] = None
    imports: Sequence[str] = ()
    calls: Sequence[str] = ()


@dataclass(frozen=True, slots=True)
class FileInfo:
    absolute_path: str
    relative_path: str
    language: Language
    extension: str


@dataclass(frozen=True, slots=True)
class Repository:
    """A repository checkout, immutable for the duration of one ingestion pass."""

    name: str
    path: str
    branch: str
    commit: str
    microservice: Optional[str] = None
    tags: Optional[Sequence[str]] = None


def create_chunk_id(
    repo: str, path: str, symbol_name: Optional[str], start_line: int, commit: str
) -> str:
    """Return the content-addressed id of a chunk.

    The id depends only on ``repo``, ``path``, ``symbol_name``, ``start_line`` and
    ``commit`` so re-ingesting an unchanged symbol at the same commit overwrites it.
    """
    return stable_hash(f"{repo}:{path}:{symbol_name or ''}:{start_line}:{commit}")


@dataclass(frozen=True, slots=True)
class Chunk:
    """Token-budget-bounded text unit, the unit of embedding and storage."""

    id: str
    repo: str
    branch: str
    commit: str
    path: str
    language: str
    symbol_type: SymbolType
    start_line: int
    end_line: int
    text: str
    microservice: Optional[str] = None
    symbol_name: Optional[str] = None
    signature: Optional[str] = None
    embedding: Optional[List[float]] = None
    package: Optional[str] = None
    imports: List[str] = field(default_factory=list)
    calls: List[str] = field(default_factory=list)
    aggregate: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.end_line < self.start_line:
            raise ValueError(
                f"Chunk {self.id} ends before it starts ({self.start_line}-{self.end_line})"
            )

    def with_embedding(self, embedding: Sequence[float]) -> "Chunk":
        """Return a copy of the chunk carrying ``embedding``."""
        return replace(self, embedding=[float(value) for value in embedding])

    def to_document(self) -> Dict[str, Any]:
        """Fields exposed to the vector store."""
        document = asdict(self)
        document["symbol_type"] = self.symbol_type.value
        return document


def create_chunk(
    *,
    repo: Repository,
    file_info: FileInfo,
    symbol: Symbol,
    symbol_name: Optional[str],
    start_line: int,
    end_line: int,
    text: str,
) -> Chunk:
    """Build a chunk for ``symbol`` in ``repo`` with a deterministic id."""
    return Chunk(
        id=create_chunk_id(repo.name, file_info.relative_path, symbol_name, start_line, repo.commit),
        repo=repo.name,
        branch=repo.branch,
        commit=repo.commit,
        path=file_info.relative_path,
        language=file_info.language.value,
        microservice=repo.microservice,
        symbol_type=symbol.type,
        symbol_name=symbol_name,
        signature=symbol.signature,
        start_line=start_line,
        end_line=end_line,
        text=text,
        package=symbol.package,
        imports=list(symbol.imports),
        calls=list(symbol.calls),
        tags=list(repo.tags or ()),
    )
