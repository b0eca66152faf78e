"""Ingestion Orchestrator: scan -> parse -> embed -> index, one repository at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from coderag.config import AppConfig
from coderag.errors import FatalError, RepoError
from coderag.index.bulk_indexer import BulkIndexer
from coderag.ingestion.chunker import ChunkBuilder
from coderag.ingestion.processor import FileProcessor
from coderag.ingestion.results import (
    IndexingProgress,
    IngestionResult,
    IngestionStatus,
    Phase,
    ProgressCallback,
    RepoOutcome,
)
from coderag.interfaces import EmbeddingProvider, VectorStore
from coderag.models import Chunk, FileInfo, Repository
from coderag.parsing.registry import ParserRegistry
from coderag.scanner.file_enumerator import FileEnumerator
from coderag.scanner.repo_scanner import RepoScanner

LOGGER = logging.getLogger(__name__)

FULL_REINDEX = "full"
INCREMENTAL = "incremental"


@dataclass(slots=True)
class IngestionOptions:
    repo: Optional[str] = None
    dry_run: bool = False
    mode: Optional[str] = None
    on_progress: Optional[ProgressCallback] = None


class IngestionPipeline:
    """Coordinates repository discovery, chunking, embedding and indexing.

    The store and embedding provider are created by the caller and injected; the
    pipeline never constructs them. A dry run may pass no store at all.
    Repositories are processed strictly one after another and only the current
    repository's chunks are held in memory.
    """

    def __init__(
        self,
        config: AppConfig,
        store: Optional[VectorStore],
        embedder: EmbeddingProvider,
        *,
        repo_scanner: RepoScanner | None = None,
        file_enumerator: FileEnumerator | None = None,
        registry: ParserRegistry | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.embedder = embedder
        self.repo_scanner = repo_scanner or RepoScanner(config.repositories)
        self.file_enumerator = file_enumerator or FileEnumerator(config.files)
        self.processor = FileProcessor(ChunkBuilder.from_config(config.chunking), registry)
        self.bulk_indexer: Optional[BulkIndexer] = None
        if store is not None:
            self.bulk_indexer = BulkIndexer(
                store,
                embedder,
                embedding_batch_size=config.ingestion.embedding_batch_size,
                index_batch_size=config.ingestion.index_batch_size,
            )

    def preflight(self, dry_run: bool = False) -> None:
        """Raise :class:`FatalError` when the store cannot take writes."""
        if dry_run:
            return
        if self.store is None:
            raise FatalError("No vector store was given for a non-dry run")
        if not self.store.ping():
            raise FatalError("Failed to connect to the vector store")
        if not self.store.index_exists():
            index = getattr(self.store, "index", "code_chunks")
            raise FatalError(f"Index '{index}' does not exist. Run 'coderag setup-index' first.")
        self.embedder.initialize()
        store_dimension = getattr(self.store, "dimension", None)
        if store_dimension is not None and store_dimension != self.embedder.dimension:
            raise FatalError(
                f"Embedding dimension {self.embedder.dimension} does not match "
                f"index dimension {store_dimension}"
            )

    def run(self, options: IngestionOptions | None = None) -> IngestionResult:
        options = options or IngestionOptions()
        mode = options.mode or self.config.ingestion.mode
        if mode not in (FULL_REINDEX, INCREMENTAL):
            raise FatalError(f"Unknown ingestion mode: {mode}")
        notify = options.on_progress or (lambda status: None)

        self.preflight(options.dry_run)
        result = IngestionResult()

        notify(IngestionStatus(Phase.SCANNING))
        LOGGER.info("Scanning for repositories...")
        repos = self._repositories(options.repo)
        LOGGER.info("Found %d repositories", len(repos))
        result.repositories = len(repos)

        for repo in repos:
            LOGGER.info("--- Processing: %s ---", repo.name)
            LOGGER.info("  Branch: %s", repo.branch)
            LOGGER.info("  Commit: %s", repo.commit[:8])
            outcome = self.process_repository(repo, dry_run=options.dry_run, mode=mode, notify=notify)
            if outcome.error is not None:
                LOGGER.error("%s", outcome.error)
            result.add(outcome)

        notify(IngestionStatus(Phase.DONE))
        return result

    def _repositories(self, name: Optional[str]) -> List[Repository]:
        if name is None:
            return self.repo_scanner.discover_repositories()
        repo = self.repo_scanner.get_repository(name)
        if repo is None:
            raise FatalError(f"Repository '{name}' not found")
        return [repo]

    def process_repository(
        self,
        repo: Repository,
        *,
        dry_run: bool = False,
        mode: str = FULL_REINDEX,
        notify: ProgressCallback | None = None,
    ) -> RepoOutcome:
        """Run every phase for one repository; failures end up in the outcome."""
        notify = notify or (lambda status: None)
        outcome = RepoOutcome(repo=repo.name)
        try:
            self._process(repo, outcome, dry_run, mode, notify)
        except Exception as exc:
            outcome.error = RepoError(repo.name, str(exc))
        return outcome

    def _process(
        self,
        repo: Repository,
        outcome: RepoOutcome,
        dry_run: bool,
        mode: str,
        notify: ProgressCallback,
    ) -> None:
        notify(IngestionStatus(Phase.SCANNING, repo=repo.name))
        files = self.file_enumerator.enumerate_files(Path(repo.path))
        LOGGER.info("  Found %d files to process", len(files))
        if not files:
            return

        chunks = self._parse(repo, files, outcome, notify)
        outcome.chunks = len(chunks)
        LOGGER.info("  Created %d chunks from %d files", len(chunks), outcome.files)

        if dry_run:
            LOGGER.info("  [DRY RUN] Skipping embedding and indexing")
            return

        notify(IngestionStatus(Phase.EMBEDDING, repo=repo.name, chunks_created=len(chunks)))

        def forward(progress: IndexingProgress) -> None:
            if progress.phase is Phase.EMBEDDING:
                status = IngestionStatus(
                    Phase.EMBEDDING,
                    repo=repo.name,
                    chunks_created=len(chunks),
                    chunks_embedded=progress.completed,
                )
            else:
                outcome.indexed = progress.successful
                status = IngestionStatus(
                    Phase.INDEXING,
                    repo=repo.name,
                    chunks_created=len(chunks),
                    chunks_indexed=progress.successful,
                )
            notify(status)

        if mode == FULL_REINDEX:
            indexing = self.bulk_indexer.reindex_repository(repo.name, chunks, forward)
        else:
            indexing = self.bulk_indexer.upsert_chunks(chunks, forward)

        outcome.indexed = indexing.successful
        outcome.failed = indexing.failed
        outcome.errors.extend(indexing.errors)
        LOGGER.info("  Indexed: %d, Failed: %d", indexing.successful, indexing.failed)

    def _parse(
        self,
        repo: Repository,
        files: List[FileInfo],
        outcome: RepoOutcome,
        notify: ProgressCallback,
    ) -> List[Chunk]:
        chunks: List[Chunk] = []
        notify(IngestionStatus(Phase.PARSING, repo=repo.name, total_files=len(files)))
        for file_info in files:
            notify(
                IngestionStatus(
                    Phase.PARSING,
                    repo=repo.name,
                    file=file_info.relative_path,
                    files_processed=outcome.files,
                    total_files=len(files),
                )
            )
            file_outcome = self.processor.process_file(file_info, repo)
            if not file_outcome.ok:
                outcome.warnings.append(file_outcome.error)
                continue
            if file_outcome.fallback is not None:
                outcome.warnings.append(str(file_outcome.fallback))
            chunks.extend(file_outcome.chunks)
            outcome.files += 1
        return chunks

    def dispose(self) -> None:
        """Release the injected collaborators."""
        self.embedder.dispose()
        if self.store is not None:
            self.store.close()
