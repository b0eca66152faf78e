"""Shared fixtures and in-memory collaborators."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

import numpy as np
import pytest

from coderag.errors import StoreError
from coderag.interfaces import BulkResult
from coderag.models import FileInfo, Language, Repository


class FakeEmbedder:
    """Deterministic embedding provider recording every call."""

    def __init__(self, dimension: int = 4, fail_on: str | None = None) -> None:
        self._dimension = dimension
        self.fail_on = fail_on
        self.calls: List[List[str]] = []
        self.initialized = False
        self.disposed = False

    @property
    def dimension(self) -> int:
        return self._dimension

    def initialize(self) -> None:
        self.initialized = True

    def embed(self, text: str) -> np.ndarray:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> np.ndarray:
        self.calls.append(list(texts))
        if self.fail_on is not None and any(self.fail_on in text for text in texts):
            raise RuntimeError("model exploded")
        return np.array(
            [[float(len(text) % 7 + 1)] + [1.0] * (self._dimension - 1) for text in texts],
            dtype="float32",
        )

    def dispose(self) -> None:
        self.disposed = True


class FakeStore:
    """Dictionary-backed vector store."""

    def __init__(
        self,
        *,
        reachable: bool = True,
        has_index: bool = True,
        dimension: int = 4,
        fail_batch: int | None = None,
    ):
        self.reachable = reachable
        self.has_index = has_index
        self.dimension = dimension
        self.index = "code_chunks"
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self.closed = False
        self.fail_batch = fail_batch
        self.batches = 0

    def ping(self) -> bool:
        self.calls.append("ping")
        return self.reachable

    def index_exists(self) -> bool:
        self.calls.append("index_exists")
        return self.has_index

    def bulk_upsert(self, documents: Sequence[Mapping[str, Any]]) -> BulkResult:
        self.calls.append("bulk_upsert")
        self.batches += 1
        if self.batches == self.fail_batch:
            raise StoreError("database is locked")
        result = BulkResult()
        for document in documents:
            self.documents[document["id"]] = dict(document)
            result.successful += 1
        return result

    def delete_by_filter(self, repo: str) -> int:
        self.calls.append("delete_by_filter")
        doomed = [key for key, doc in self.documents.items() if doc["repo"] == repo]
        for key in doomed:
            del self.documents[key]
        return len(doomed)

    def search(self, embedding, *, top_k=10, filters=None):
        self.calls.append("search")
        return []

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def repo() -> Repository:
    return Repository(name="demo", path="/repos/demo", branch="main", commit="c1")


@pytest.fixture
def ts_file() -> FileInfo:
    return FileInfo(
        absolute_path="/repos/demo/a.ts",
        relative_path="a.ts",
        language=Language.TYPESCRIPT,
        extension=".ts",
    )


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
