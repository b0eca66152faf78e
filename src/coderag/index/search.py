"""Semantic search interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from coderag.interfaces import EmbeddingProvider, VectorStore


@dataclass(slots=True)
class SearchResult:
    id: str
    score: float
    repo: str
    path: str
    language: str
    symbol_type: str
    start_line: int
    end_line: int
    text: str
    symbol_name: Optional[str] = None
    signature: Optional[str] = None
    microservice: Optional[str] = None


class Searcher:
    """High-level API to query the vector store."""

    def __init__(self, embedder: EmbeddingProvider, store: VectorStore) -> None:
        self.embedder = embedder
        self.store = store

    def search(
        self, query: str, *, top_k: int = 10, filters: Dict[str, str] | None = None
    ) -> List[SearchResult]:
        embedding = self.embedder.embed(query)
        rows = self.store.search(embedding, top_k=top_k, filters=filters)
        return [
            SearchResult(
                id=row["id"],
                score=float(row["score"]),
                repo=row["repo"],
                path=row["path"],
                language=row["language"],
                symbol_type=row["symbol_type"],
                start_line=row["start_line"],
                end_line=row["end_line"],
                text=row["text"],
                symbol_name=row.get("symbol_name"),
                signature=row.get("signature"),
                microservice=row.get("microservice"),
            )
            for row in rows
        ]
