"""Contracts of the collaborators driven by the ingestion core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Protocol, Sequence, runtime_checkable

from coderag.models import Language, Symbol


@runtime_checkable
class SymbolSource(Protocol):
    """Turns the text of one file into an ordered list of symbols.

    Implementations raise :class:`coderag.errors.ParseError` on malformed input
    instead of returning partial results.
    """

    languages: Sequence[Language]

    def parse(self, content: str, path: str) -> List[Symbol]: ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Produces fixed-dimension vectors; ``embed_batch`` keeps input order."""

    @property
    def dimension(self) -> int: ...

    def initialize(self) -> None: ...

    def embed(self, text: str) -> Sequence[float]: ...

    def embed_batch(self, texts: Sequence[str]) -> Sequence[Sequence[float]]: ...

    def dispose(self) -> None: ...


@dataclass(slots=True)
class BulkResult:
    """Outcome of one bulk upsert call."""

    successful: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


@runtime_checkable
class VectorStore(Protocol):
    def ping(self) -> bool: ...

    def index_exists(self) -> bool: ...

    def bulk_upsert(self, documents: Sequence[Mapping[str, Any]]) -> BulkResult: ...

    def delete_by_filter(self, repo: str) -> int: ...

    def search(
        self,
        embedding: Sequence[float],
        *,
        top_k: int = 10,
        filters: Dict[str, str] | None = None,
    ) -> List[Dict[str, Any]]: ...

    def close(self) -> None: ...
