"""SQLite-backed vector store for code chunks."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import numpy as np

from coderag.errors import StoreError
from coderag.interfaces import BulkResult

LOGGER = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Chunk document field -> column. ``commit`` is an SQL keyword.
_COLUMNS: Dict[str, str] = {
    "id": "id",
    "repo": "repo",
    "branch": "branch",
    "commit": "commit_hash",
    "path": "path",
    "language": "language",
    "microservice": "microservice",
    "symbol_type": "symbol_type",
    "symbol_name": "symbol_name",
    "signature": "signature",
    "start_line": "start_line",
    "end_line": "end_line",
    "text": "text",
    "package": "package",
    "imports": "imports",
    "calls": "calls",
    "aggregate": "aggregate",
    "tags": "tags",
}
_LIST_FIELDS = ("imports", "calls", "tags")
FILTER_FIELDS = ("repo", "language", "microservice", "symbol_type", "path")


class SQLiteVectorStore:
    """Persistence layer for chunk documents and their embeddings.

    One table per index holds every chunk field plus the float32 embedding blob;
    the ``indexes`` table records each index's vector dimension.
    """

    def __init__(self, db_path: Path, *, index: str = "code_chunks") -> None:
        if not _IDENTIFIER.match(index):
            raise StoreError(f"Invalid index name: {index!r}")
        self.db_path = Path(db_path)
        self.index = index
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_catalog()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_catalog(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS indexes (
                    name TEXT PRIMARY KEY,
                    dimension INTEGER NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

    def ping(self) -> bool:
        try:
            self._conn.execute("SELECT 1").fetchone()
        except sqlite3.Error as exc:
            LOGGER.debug("Store ping failed: %s", exc)
            return False
        return True

    def index_exists(self) -> bool:
        return self.dimension is not None

    @property
    def dimension(self) -> Optional[int]:
        row = self._conn.execute(
            "SELECT dimension FROM indexes WHERE name = ?", (self.index,)
        ).fetchone()
        return int(row["dimension"]) if row else None

    def create_index(self, dimension: int) -> None:
        if dimension <= 0:
            raise StoreError("Embedding dimension must be positive")
        if self.index_exists():
            raise StoreError(f"Index '{self.index}' already exists")
        with self.transaction() as conn:
            conn.execute(
                f"""
                CREATE TABLE {self.index} (
                    id TEXT PRIMARY KEY,
                    repo TEXT NOT NULL,
                    branch TEXT NOT NULL,
                    commit_hash TEXT NOT NULL,
                    path TEXT NOT NULL,
                    language TEXT NOT NULL,
                    microservice TEXT,
                    symbol_type TEXT NOT NULL,
                    symbol_name TEXT,
                    signature TEXT,
                    start_line INTEGER NOT NULL,
                    end_line INTEGER NOT NULL,
                    text TEXT NOT NULL,
                    package TEXT,
                    imports TEXT,
                    calls TEXT,
                    aggregate TEXT,
                    tags TEXT,
                    embedding BLOB NOT NULL,
                    indexed_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute(f"CREATE INDEX idx_{self.index}_repo ON {self.index}(repo)")
            conn.execute(f"CREATE INDEX idx_{self.index}_repo_path ON {self.index}(repo, path)")
            conn.execute(
                "INSERT INTO indexes(name, dimension) VALUES (?, ?)", (self.index, dimension)
            )
        LOGGER.info("Created index '%s' with dimension %d", self.index, dimension)

    def delete_index(self) -> None:
        with self.transaction() as conn:
            conn.execute(f"DROP TABLE IF EXISTS {self.index}")
            conn.execute("DELETE FROM indexes WHERE name = ?", (self.index,))

    def _require_index(self) -> int:
        dimension = self.dimension
        if dimension is None:
            raise StoreError(f"Index '{self.index}' does not exist")
        return dimension

    def bulk_upsert(self, documents: Sequence[Mapping[str, Any]]) -> BulkResult:
        """Insert or overwrite documents by id.

        Each document is validated and written on its own; rejects are reported as
        ``"<id>: <reason>"`` without affecting the rest of the batch.
        """
        dimension = self._require_index()
        result = BulkResult()
        columns = list(_COLUMNS.values()) + ["embedding"]
        statement = (
            f"INSERT OR REPLACE INTO {self.index}({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )

        with self.transaction() as conn:
            for document in documents:
                doc_id = document.get("id") or "<missing id>"
                try:
                    row = self._to_row(document, dimension)
                    conn.execute(statement, row)
                except (ValueError, TypeError, sqlite3.Error) as exc:
                    result.failed += 1
                    result.errors.append(f"{doc_id}: {exc}")
                else:
                    result.successful += 1
        return result

    def _to_row(self, document: Mapping[str, Any], dimension: int) -> List[Any]:
        if not document.get("id"):
            raise ValueError("document has no id")
        embedding = document.get("embedding")
        if embedding is None:
            raise ValueError("document has no embedding")
        vector = np.asarray(embedding, dtype="float32").reshape(-1)
        if vector.shape[0] != dimension:
            raise ValueError(f"embedding dimension {vector.shape[0]} != index dimension {dimension}")

        row: List[Any] = []
        for field_name in _COLUMNS:
            value = document.get(field_name)
            if field_name in _LIST_FIELDS:
                value = json.dumps(list(value or []), ensure_ascii=True)
            elif isinstance(value, Enum):
                value = value.value
            row.append(value)
        row.append(sqlite3.Binary(vector.tobytes()))
        return row

    def delete_by_filter(self, repo: str) -> int:
        """Delete every chunk of ``repo``; returns the number of deleted chunks."""
        self._require_index()
        with self.transaction() as conn:
            cursor = conn.execute(f"DELETE FROM {self.index} WHERE repo = ?", (repo,))
        return cursor.rowcount

    def count(self, repo: Optional[str] = None) -> int:
        self._require_index()
        if repo is None:
            row = self._conn.execute(f"SELECT COUNT(*) FROM {self.index}").fetchone()
        else:
            row = self._conn.execute(
                f"SELECT COUNT(*) FROM {self.index} WHERE repo = ?", (repo,)
            ).fetchone()
        return int(row[0])

    def list_repositories(self) -> List[str]:
        self._require_index()
        rows = self._conn.execute(f"SELECT DISTINCT repo FROM {self.index} ORDER BY repo")
        return [row["repo"] for row in rows]

    def repo_stats(self, repo: str) -> Dict[str, Any]:
        self._require_index()
        by_language = {
            row["language"]: row["n"]
            for row in self._conn.execute(
                f"SELECT language, COUNT(*) AS n FROM {self.index} WHERE repo = ? "
                "GROUP BY language ORDER BY n DESC",
                (repo,),
            )
        }
        by_symbol_type = {
            row["symbol_type"]: row["n"]
            for row in self._conn.execute(
                f"SELECT symbol_type, COUNT(*) AS n FROM {self.index} WHERE repo = ? "
                "GROUP BY symbol_type ORDER BY n DESC",
                (repo,),
            )
        }
        latest = self._conn.execute(
            f"SELECT commit_hash FROM {self.index} WHERE repo = ? "
            "ORDER BY indexed_at DESC, rowid DESC LIMIT 1",
            (repo,),
        ).fetchone()
        return {
            "repo": repo,
            "total_chunks": sum(by_language.values()),
            "by_language": by_language,
            "by_symbol_type": by_symbol_type,
            "last_indexed_commit": latest["commit_hash"] if latest else None,
        }

    def get_file_chunks(self, repo: str, path: str) -> List[Dict[str, Any]]:
        self._require_index()
        rows = self._conn.execute(
            f"SELECT * FROM {self.index} WHERE repo = ? AND path = ? ORDER BY start_line",
            (repo, path),
        ).fetchall()
        return [self._to_document(row) for row in rows]

    def _to_document(self, row: sqlite3.Row) -> Dict[str, Any]:
        document = {field_name: row[column] for field_name, column in _COLUMNS.items()}
        for field_name in _LIST_FIELDS:
            document[field_name] = json.loads(document[field_name] or "[]")
        return document

    def search(
        self,
        embedding: Sequence[float],
        *,
        top_k: int = 10,
        filters: Dict[str, str] | None = None,
    ) -> List[Dict[str, Any]]:
        """Rank stored chunks by cosine similarity to ``embedding``."""
        self._require_index()
        clauses: List[str] = []
        params: List[Any] = []
        for key, value in (filters or {}).items():
            if key not in FILTER_FIELDS:
                raise StoreError(f"Unsupported filter: {key}")
            if value is None:
                continue
            clauses.append(f"{_COLUMNS[key]} = ?")
            params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._conn.execute(f"SELECT * FROM {self.index} {where}", params).fetchall()

        if not rows or top_k <= 0:
            return []

        query = np.asarray(embedding, dtype="float32").reshape(-1)
        embeddings = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in rows])
        norms = np.linalg.norm(embeddings, axis=1) * (np.linalg.norm(query) or 1.0)
        scores = (embeddings @ query) / np.where(norms == 0, 1.0, norms)

        if top_k < len(scores):
            top_indices = np.argpartition(scores, -top_k)[-top_k:]
            top_indices = top_indices[np.argsort(scores[top_indices])[::-1]]
        else:
            top_indices = np.argsort(scores)[::-1]

        results: List[Dict[str, Any]] = []
        for idx in top_indices:
            document = self._to_document(rows[idx])
            document["score"] = float(scores[idx])
            results.append(document)
        return results
