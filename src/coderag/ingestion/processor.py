"""File Processor: applies the Chunk Builder to one file, failing soft."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from coderag.errors import ParseError
from coderag.ingestion.chunker import ChunkBuilder
from coderag.ingestion.results import FileOutcome
from coderag.models import FileInfo, Repository, Symbol
from coderag.parsing.base import whole_file_symbol
from coderag.parsing.registry import ParserRegistry, default_registry
from coderag.utils.files import read_source_file

LOGGER = logging.getLogger(__name__)


class FileProcessor:
    """Parse a file with the Symbol Source for its language and build its chunks.

    Files without a Symbol Source, or whose Symbol Source raises, are chunked as a
    single whole-file symbol. Any other failure is returned in the outcome.
    """

    def __init__(self, builder: ChunkBuilder, registry: ParserRegistry | None = None) -> None:
        self.builder = builder
        self.registry = registry or default_registry()

    def process_file(self, file_info: FileInfo, repo: Repository) -> FileOutcome:
        outcome = FileOutcome(path=file_info.relative_path)
        try:
            content = read_source_file(Path(file_info.absolute_path))
            if not content.strip():
                return outcome

            symbols, outcome.fallback = self._symbols(content, file_info)
            outcome.chunks = self.builder.build_chunks(symbols, file_info, repo)
        except Exception as exc:
            LOGGER.warning("Failed to chunk %s: %s", file_info.relative_path, exc)
            outcome.error = f"{file_info.relative_path}: {exc}"
        return outcome

    def _symbols(
        self, content: str, file_info: FileInfo
    ) -> tuple[List[Symbol], Optional[ParseError]]:
        source = self.registry.get(file_info.language)
        if source is None:
            return [whole_file_symbol(content, file_info.relative_path)], None
        try:
            return source.parse(content, file_info.relative_path), None
        except Exception as exc:
            error = exc if isinstance(exc, ParseError) else ParseError(
                file_info.relative_path, file_info.language.value, str(exc)
            )
            LOGGER.warning(
                "Failed to parse %s, falling back to whole-file chunk: %s",
                file_info.relative_path,
                error.message,
            )
            return [whole_file_symbol(content, file_info.relative_path)], error
