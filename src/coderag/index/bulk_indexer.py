"""Embedding and bulk indexing of one repository's chunks."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from coderag.errors import EmbeddingError
from coderag.ingestion.results import IndexingProgress, IndexingResult, Phase
from coderag.interfaces import EmbeddingProvider, VectorStore
from coderag.models import Chunk

LOGGER = logging.getLogger(__name__)

DEFAULT_EMBEDDING_BATCH_SIZE = 50
DEFAULT_INDEX_BATCH_SIZE = 100

IndexingCallback = Callable[[IndexingProgress], None]


def batched(items: Sequence[Chunk], size: int) -> List[Sequence[Chunk]]:
    return [items[start : start + size] for start in range(0, len(items), size)]


class BulkIndexer:
    """Runs the embedding phase then the indexing phase, one batch at a time.

    Batches are awaited sequentially, so at most one call to the embedding
    provider or the store is in flight.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        *,
        embedding_batch_size: int = DEFAULT_EMBEDDING_BATCH_SIZE,
        index_batch_size: int = DEFAULT_INDEX_BATCH_SIZE,
    ) -> None:
        if embedding_batch_size <= 0 or index_batch_size <= 0:
            raise ValueError("Batch sizes must be positive")
        self.store = store
        self.embedder = embedder
        self.embedding_batch_size = embedding_batch_size
        self.index_batch_size = index_batch_size

    def embed_chunks(
        self,
        chunks: Sequence[Chunk],
        result: IndexingResult,
        on_progress: Optional[IndexingCallback] = None,
    ) -> List[Chunk]:
        """Attach embeddings by position; chunks of failed batches are recorded in ``result``."""
        embedded: List[Chunk] = []
        completed = 0
        for batch in batched(chunks, self.embedding_batch_size):
            try:
                vectors = self.embedder.embed_batch([chunk.text for chunk in batch])
                if len(vectors) != len(batch):
                    raise EmbeddingError(
                        f"provider returned {len(vectors)} vectors for {len(batch)} texts"
                    )
            except Exception as exc:
                LOGGER.warning("Embedding batch of %d chunks failed: %s", len(batch), exc)
                result.failed += len(batch)
                result.errors.extend(f"{chunk.id}: embedding failed: {exc}" for chunk in batch)
            else:
                embedded.extend(chunk.with_embedding(vector) for chunk, vector in zip(batch, vectors))

            completed += len(batch)
            if on_progress:
                on_progress(IndexingProgress(Phase.EMBEDDING, completed, len(chunks)))
        return embedded

    def index_chunks(
        self, chunks: Sequence[Chunk], on_progress: Optional[IndexingCallback] = None
    ) -> IndexingResult:
        """Embed then bulk-upsert ``chunks``; partial failures never abort the run."""
        result = IndexingResult(total=len(chunks))
        if not chunks:
            return result

        LOGGER.info("Generating embeddings for %d chunks...", len(chunks))
        embedded = self.embed_chunks(chunks, result, on_progress)

        LOGGER.info("Indexing %d chunks...", len(embedded))
        completed = 0
        for batch in batched(embedded, self.index_batch_size):
            completed += len(batch)
            try:
                response = self.store.bulk_upsert([chunk.to_document() for chunk in batch])
            except Exception as exc:
                LOGGER.warning("Indexing batch of %d chunks failed: %s", len(batch), exc)
                result.failed += len(batch)
                result.errors.extend(f"{chunk.id}: {exc}" for chunk in batch)
            else:
                result.successful += response.successful
                result.failed += response.failed
                result.errors.extend(response.errors)
                LOGGER.debug(
                    "Indexed batch: %d ok, %d failed (%d/%d)",
                    response.successful,
                    response.failed,
                    completed,
                    len(embedded),
                )
            if on_progress:
                on_progress(
                    IndexingProgress(Phase.INDEXING, completed, len(embedded), result.successful)
                )
        return result

    def reindex_repository(
        self,
        repo_name: str,
        chunks: Sequence[Chunk],
        on_progress: Optional[IndexingCallback] = None,
    ) -> IndexingResult:
        """Delete every stored chunk of ``repo_name``, then index ``chunks``."""
        LOGGER.info("Deleting existing chunks for %s...", repo_name)
        deleted = self.store.delete_by_filter(repo_name)
        LOGGER.info("Deleted %d existing chunks", deleted)
        return self.index_chunks(chunks, on_progress)

    def upsert_chunks(
        self, chunks: Sequence[Chunk], on_progress: Optional[IndexingCallback] = None
    ) -> IndexingResult:
        """Overwrite chunks by id without deleting chunks of removed symbols."""
        return self.index_chunks(chunks, on_progress)
