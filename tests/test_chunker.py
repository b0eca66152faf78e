"""Tests for the chunk builder."""

import pytest

from coderag.config import ChunkingConfig
from coderag.ingestion.chunker import ChunkBuilder, build_chunks, part_name, symbol_text
from coderag.models import FileInfo, Language, Symbol, SymbolType


def _body(lines: int, width: int = 50, start: int = 1) -> str:
    return "\n".join(f"{start + i:03d}".ljust(width, "x") for i in range(lines))


def _function(text: str, **overrides) -> Symbol:
    values = dict(
        type=SymbolType.FUNCTION,
        start_line=1,
        end_line=len(text.split("\n")),
        text=text,
        name="process",
        signature="function process()",
    )
    values.update(overrides)
    return Symbol(**values)


class TestSmallSymbols:
    """Symbols that fit the budget become one chunk."""

    def test_single_chunk_keeps_name_and_lines(self, repo, ts_file):
        symbol = _function("function process() {\n  return 1;\n}", start_line=4, end_line=6)

        chunks = ChunkBuilder(max_tokens=100).symbol_to_chunks(symbol, ts_file, repo)

        assert len(chunks) == 1
        assert chunks[0].symbol_name == "process"
        assert (chunks[0].start_line, chunks[0].end_line) == (4, 6)
        assert chunks[0].text == symbol.text
        assert chunks[0].embedding is None

    def test_doc_comment_precedes_body(self, repo, ts_file):
        symbol = _function("function process() {}", doc_comment="/** Runs it. */")

        chunk = ChunkBuilder().symbol_to_chunks(symbol, ts_file, repo)[0]

        assert chunk.text == "/** Runs it. */\nfunction process() {}"

    def test_empty_symbol_produces_nothing(self, repo, ts_file):
        symbol = _function("   \n  ", start_line=1, end_line=2)
        assert ChunkBuilder().symbol_to_chunks(symbol, ts_file, repo) == []

    def test_unnamed_symbol(self, repo, ts_file):
        symbol = _function("x = 1", name=None)
        chunk = ChunkBuilder().symbol_to_chunks(symbol, ts_file, repo)[0]
        assert chunk.symbol_name is None

    def test_doc_comment_counts_towards_budget(self, repo, ts_file):
        body = "a" * 390
        symbol = _function(body, doc_comment="/* " + "d" * 40 + " */")

        chunks = ChunkBuilder(max_tokens=100).symbol_to_chunks(symbol, ts_file, repo)

        assert [chunk.text for chunk in chunks] == [body]

    def test_split_parts_omit_doc_comment(self, repo, ts_file):
        symbol = _function(_body(20), doc_comment="/** Processes rows. */")
        chunks = ChunkBuilder(max_tokens=100).symbol_to_chunks(symbol, ts_file, repo)
        assert len(chunks) > 1
        assert not any("Processes rows" in chunk.text for chunk in chunks)


class TestSplitting:
    """Oversized symbols are split into overlapping parts."""

    def test_concrete_scenario(self, repo, ts_file):
        body = _body(20)
        assert len(body) > 400
        symbol = _function(body)
        builder = ChunkBuilder(max_tokens=100, overlap_tokens=20)

        chunks = builder.symbol_to_chunks(symbol, ts_file, repo)

        assert len(chunks) >= 3
        starts = [chunk.start_line for chunk in chunks]
        assert starts == sorted(starts)
        assert len(set(starts)) == len(starts)
        for chunk in chunks:
            assert len(chunk.text) <= 400
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_line <= previous.end_line
        assert chunks[0].start_line == 1
        assert chunks[-1].end_line == 20

        again = builder.symbol_to_chunks(symbol, ts_file, repo)
        assert [chunk.id for chunk in again] == [chunk.id for chunk in chunks]

    def test_overlap_continuity(self, repo, ts_file):
        builder = ChunkBuilder(max_tokens=100, overlap_tokens=100)
        chunks = builder.symbol_to_chunks(_function(_body(20)), ts_file, repo)

        assert builder.overlap_lines == 5
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_line == previous.end_line - builder.overlap_lines + 1
            shared = previous.text.split("\n")[-builder.overlap_lines :]
            assert current.text.split("\n")[: builder.overlap_lines] == shared

    def test_part_names(self, repo, ts_file):
        chunks = ChunkBuilder(max_tokens=100, overlap_tokens=20).symbol_to_chunks(
            _function(_body(20)), ts_file, repo
        )
        assert chunks[0].symbol_name == "process"
        assert [chunk.symbol_name for chunk in chunks[1:]] == [
            f"process (part {n})" for n in range(2, len(chunks) + 1)
        ]

    def test_ids_are_distinct(self, repo, ts_file):
        chunks = ChunkBuilder(max_tokens=100).symbol_to_chunks(_function(_body(40)), ts_file, repo)
        assert len({chunk.id for chunk in chunks}) == len(chunks)

    def test_line_numbers_follow_symbol_offset(self, repo, ts_file):
        symbol = _function(_body(20, start=100), start_line=100, end_line=119)
        chunks = ChunkBuilder(max_tokens=100, overlap_tokens=20).symbol_to_chunks(
            symbol, ts_file, repo
        )
        assert chunks[0].start_line == 100
        assert chunks[-1].end_line == 119
        for chunk in chunks:
            first_line = chunk.text.split("\n")[0]
            assert first_line.startswith(f"{chunk.start_line:03d}")

    def test_zero_overlap_parts_are_disjoint(self, repo, ts_file):
        chunks = ChunkBuilder(max_tokens=100, overlap_tokens=0).symbol_to_chunks(
            _function(_body(20)), ts_file, repo
        )
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_line == previous.end_line + 1

    def test_parent_adds_context_header(self, repo):
        py_file = FileInfo("/r/a.py", "a.py", Language.PYTHON, ".py")
        symbol = _function(_body(20), type=SymbolType.METHOD, parent="Worker")

        chunks = ChunkBuilder(max_tokens=100).symbol_to_chunks(symbol, py_file, repo)

        assert len(chunks) > 1
        header = "# In class: Worker\n"
        for chunk in chunks:
            assert chunk.text.startswith(header)
            assert len(chunk.text) - len(header) <= 400

    def test_header_comment_follows_language(self, repo, ts_file):
        symbol = _function(_body(20), type=SymbolType.METHOD, parent="Worker")
        chunks = ChunkBuilder(max_tokens=100).symbol_to_chunks(symbol, ts_file, repo)
        assert chunks[0].text.startswith("// In class: Worker\n")

    def test_long_single_line_is_cut(self, repo, ts_file):
        symbol = _function("y" * 1000, start_line=7, end_line=7)

        chunks = ChunkBuilder(max_tokens=100, overlap_tokens=0).symbol_to_chunks(
            symbol, ts_file, repo
        )

        assert [len(chunk.text) for chunk in chunks] == [400, 400, 200]
        assert all(chunk.start_line == chunk.end_line == 7 for chunk in chunks)

    def test_unnamed_long_line_parts_have_distinct_ids(self, repo, ts_file):
        symbol = Symbol(type=SymbolType.BLOCK, start_line=7, end_line=7, text="y" * 1000)

        chunks = ChunkBuilder(max_tokens=100, overlap_tokens=0).symbol_to_chunks(
            symbol, ts_file, repo
        )

        assert len(chunks) == 3
        assert len({chunk.id for chunk in chunks}) == 3
        assert [chunk.symbol_name for chunk in chunks] == [None, "(part 2)", "(part 3)"]

    def test_overlap_never_exceeds_budget(self, repo, ts_file):
        text = "\n".join(["a" * 300, "b" * 300, "c" * 300, "d" * 300])
        chunks = ChunkBuilder(max_tokens=100, overlap_tokens=90).symbol_to_chunks(
            _function(text), ts_file, repo
        )
        assert all(len(chunk.text) <= 400 for chunk in chunks)


class TestBuildChunks:
    """File level helpers."""

    def test_build_chunks_keeps_symbol_order(self, repo, ts_file):
        symbols = [
            _function("function a() {}", name="a", start_line=1, end_line=1),
            _function("function b() {}", name="b", start_line=3, end_line=3),
        ]
        chunks = build_chunks(symbols, ts_file, repo, ChunkingConfig(max_tokens=50, overlap_tokens=5))
        assert [chunk.symbol_name for chunk in chunks] == ["a", "b"]

    def test_overlap_lines_uses_eighty_chars_per_line(self):
        assert ChunkBuilder(max_tokens=1000, overlap_tokens=100).overlap_lines == 5
        assert ChunkBuilder(max_tokens=100, overlap_tokens=20).overlap_lines == 1

    def test_invalid_budget(self):
        with pytest.raises(ValueError):
            ChunkBuilder(max_tokens=0)

    def test_part_name_helper(self):
        assert part_name("f", 1) == "f"
        assert part_name("f", 3) == "f (part 3)"
        assert part_name(None, 1) is None
        assert part_name(None, 2) == "(part 2)"

    def test_symbol_text_without_doc(self):
        assert symbol_text(_function("body")) == "body"
