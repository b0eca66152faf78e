"""Tests for the file processor."""

from pathlib import Path
from unittest.mock import Mock

from coderag.errors import ParseError
from coderag.ingestion.chunker import ChunkBuilder
from coderag.ingestion.processor import FileProcessor
from coderag.models import FileInfo, Language, SymbolType
from coderag.parsing import ParserRegistry


def _file(tmp_path: Path, name: str, content: str, language: Language) -> FileInfo:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return FileInfo(str(path), name, language, path.suffix)


class TestFileProcessor:
    """Per-file parsing and chunking."""

    def test_parsed_file(self, tmp_path, repo):
        info = _file(tmp_path, "mod.py", "def run():\n    return 1\n", Language.PYTHON)

        outcome = FileProcessor(ChunkBuilder()).process_file(info, repo)

        assert outcome.ok
        assert outcome.fallback is None
        assert [chunk.symbol_name for chunk in outcome.chunks] == ["run"]
        assert outcome.chunks[0].symbol_type is SymbolType.FUNCTION

    def test_language_without_source_is_whole_file(self, tmp_path, repo):
        info = _file(tmp_path, "a.ts", "export const a = 1;\n", Language.TYPESCRIPT)

        outcome = FileProcessor(ChunkBuilder(), ParserRegistry()).process_file(info, repo)

        assert len(outcome.chunks) == 1
        chunk = outcome.chunks[0]
        assert chunk.symbol_type is SymbolType.FILE
        assert chunk.symbol_name == "a.ts"
        assert (chunk.start_line, chunk.end_line) == (1, 2)

    def test_parse_error_falls_back(self, tmp_path, repo):
        info = _file(tmp_path, "bad.py", "def broken(:\n    pass\n", Language.PYTHON)

        outcome = FileProcessor(ChunkBuilder()).process_file(info, repo)

        assert outcome.ok
        assert isinstance(outcome.fallback, ParseError)
        assert len(outcome.chunks) == 1
        assert outcome.chunks[0].symbol_type is SymbolType.FILE

    def test_unexpected_source_failure_falls_back(self, tmp_path, repo):
        source = Mock()
        source.languages = (Language.SQL,)
        source.parse.side_effect = RuntimeError("grammar crashed")
        info = _file(tmp_path, "q.sql", "SELECT 1;\n", Language.SQL)

        outcome = FileProcessor(ChunkBuilder(), ParserRegistry([source])).process_file(info, repo)

        assert outcome.fallback.message == "grammar crashed"
        assert outcome.fallback.language == "sql"
        assert len(outcome.chunks) == 1

    def test_empty_file_has_no_chunks(self, tmp_path, repo):
        info = _file(tmp_path, "empty.ts", "\n\n", Language.TYPESCRIPT)
        outcome = FileProcessor(ChunkBuilder()).process_file(info, repo)
        assert outcome.ok
        assert outcome.chunks == []

    def test_unreadable_file_is_reported(self, tmp_path, repo):
        info = FileInfo(str(tmp_path / "gone.ts"), "gone.ts", Language.TYPESCRIPT, ".ts")

        outcome = FileProcessor(ChunkBuilder()).process_file(info, repo)

        assert not outcome.ok
        assert outcome.error.startswith("gone.ts: ")
        assert outcome.chunks == []
