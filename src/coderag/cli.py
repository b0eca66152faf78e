"""Command line interface for coderag."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from coderag.config import AppConfig, load_config
from coderag.embedding.encoder import EmbeddingModel
from coderag.errors import CodeRagError, ConfigError, FatalError
from coderag.index.search import Searcher
from coderag.index.storage import SQLiteVectorStore
from coderag.ingestion.pipeline import IngestionOptions, IngestionPipeline
from coderag.ingestion.results import IngestionResult, IngestionStatus, Phase
from coderag.utils.files import ensure_parent

console = Console()
app = typer.Typer(help="coderag - chunk and index source repositories for semantic search")

MAX_ERRORS_SHOWN = 10


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load(config_path: Optional[Path]) -> AppConfig:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def _open_store(config: AppConfig, *, must_exist: bool = False) -> SQLiteVectorStore:
    resolved_db = config.resolve_db_path(Path.cwd())
    if must_exist and not resolved_db.exists():
        console.print(f"[red]Database not found: {resolved_db}[/red]")
        raise typer.Exit(code=1)
    ensure_parent(resolved_db)
    return SQLiteVectorStore(resolved_db, index=config.store.index)


def _print_progress(status: IngestionStatus) -> None:
    if status.phase is Phase.PARSING and status.file:
        line = f"Parsing: {status.files_processed}/{status.total_files} files"
    elif status.phase is Phase.EMBEDDING:
        line = f"Embedding: {status.chunks_embedded or 0}/{status.chunks_created} chunks"
    elif status.phase is Phase.INDEXING:
        line = f"Indexing: {status.chunks_indexed or 0}/{status.chunks_created} chunks"
    else:
        return
    console.print(f"  [dim]{status.repo}[/dim] {line}", end="\r", highlight=False)


def _print_summary(result: IngestionResult) -> None:
    console.print("\n[bold]Ingestion complete[/bold]")
    table = Table(show_header=False)
    table.add_row("Repositories", str(result.repositories))
    table.add_row("Files processed", str(result.files))
    table.add_row("Chunks created", str(result.chunks))
    table.add_row("Chunks indexed", str(result.indexed))
    table.add_row("Failed", str(result.failed))
    console.print(table)

    if result.errors:
        console.print(f"\n[yellow]Errors ({len(result.errors)}):[/yellow]")
        for error in result.errors[:MAX_ERRORS_SHOWN]:
            console.print(f"  - {escape(error)}", highlight=False)
        remaining = len(result.errors) - MAX_ERRORS_SHOWN
        if remaining > 0:
            console.print(f"  ... and {remaining} more")


@app.command()
def ingest(
    repo: Optional[str] = typer.Option(None, "--repo", help="Only index this repository"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Parse and chunk files but don't index"),
    mode: Optional[str] = typer.Option(
        None, "--mode", help="'full' deletes a repository's chunks first, 'incremental' upserts"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Scan, chunk, embed and index repositories."""
    _setup_logging(verbose)
    config = _load(config_path)

    console.print(f"Repositories root: [bold]{config.repositories.root_dir}[/bold]")
    embedder = EmbeddingModel(config.embedding)
    store = None if dry_run else _open_store(config)
    pipeline = IngestionPipeline(config, store, embedder)

    try:
        result = pipeline.run(
            IngestionOptions(repo=repo, dry_run=dry_run, mode=mode, on_progress=_print_progress)
        )
    except FatalError as exc:
        console.print(f"\n[red]Ingestion failed: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        pipeline.dispose()

    if dry_run:
        console.print("\n[yellow][DRY RUN] Nothing was embedded or indexed.[/yellow]")
    _print_summary(result)


@app.command("setup-index")
def setup_index(
    force: bool = typer.Option(False, "--force", "-f", help="Recreate the index if it exists"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Create the chunk index sized for the configured embedding model."""
    _setup_logging(verbose)
    config = _load(config_path)
    store = _open_store(config)
    embedder = EmbeddingModel(config.embedding)
    try:
        if store.index_exists():
            if not force:
                console.print(
                    f"[yellow]Index '{store.index}' already exists. Use --force to recreate it.[/yellow]"
                )
                return
            console.print(f"Deleting existing index '{store.index}'...")
            store.delete_index()

        embedder.initialize()
        store.create_index(embedder.dimension)
        console.print(
            f"Created index [bold]{store.index}[/bold] with dimension {embedder.dimension}"
        )
    except CodeRagError as exc:
        console.print(f"[red]Failed to create index: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        embedder.dispose()
        store.close()


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    top_k: int = typer.Option(10, help="Number of results to display"),
    repo: Optional[str] = typer.Option(None, "--repo", help="Filter by repository"),
    language: Optional[str] = typer.Option(None, "--language", help="Filter by language"),
    symbol_type: Optional[str] = typer.Option(None, "--symbol-type", help="Filter by symbol type"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Execute a semantic search over indexed chunks."""
    _setup_logging(verbose)
    config = _load(config_path)
    store = _open_store(config, must_exist=True)
    embedder = EmbeddingModel(config.embedding)
    filters = {"repo": repo, "language": language, "symbol_type": symbol_type}

    try:
        embedder.initialize()
        results = Searcher(embedder, store).search(query, top_k=top_k, filters=filters)
    except CodeRagError as exc:
        console.print(f"[red]Search failed: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        embedder.dispose()
        store.close()

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Location")
    table.add_column("Symbol")
    table.add_column("Snippet")
    for result in results:
        snippet = result.text.replace("\n", " ")
        location = f"{result.repo}/{result.path}:{result.start_line}-{result.end_line}"
        table.add_row(f"{result.score:.4f}", location, result.symbol_name or "", snippet[:180])
    console.print(table)


@app.command()
def stats(
    repo: Optional[str] = typer.Option(None, "--repo", help="Only show this repository"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file"),
) -> None:
    """Show chunk counts per repository."""
    config = _load(config_path)
    store = _open_store(config, must_exist=True)
    try:
        if not store.index_exists():
            console.print(f"[yellow]Index '{store.index}' does not exist.[/yellow]")
            return
        repos: List[str] = [repo] if repo else store.list_repositories()
        if not repos:
            console.print("[yellow]No repositories indexed.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Repository")
        table.add_column("Chunks")
        table.add_column("Languages")
        table.add_column("Symbol types")
        table.add_column("Commit")
        for name in repos:
            info = store.repo_stats(name)
            table.add_row(
                name,
                str(info["total_chunks"]),
                ", ".join(f"{key}={value}" for key, value in info["by_language"].items()),
                ", ".join(f"{key}={value}" for key, value in info["by_symbol_type"].items()),
                (info["last_indexed_commit"] or "")[:8],
            )
        console.print(table)
    finally:
        store.close()


if __name__ == "__main__":  # pragma: no cover
    app()
