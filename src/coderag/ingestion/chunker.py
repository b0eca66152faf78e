"""Chunk Builder: converts parsed symbols into token-budget-respecting chunks.

Sizes are approximate: one token is counted as four characters. A symbol whose
text (doc comment included) fits the budget becomes one chunk; a larger symbol
is walked line by line into parts that overlap by a fixed number of lines.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from coderag.config import ChunkingConfig
from coderag.models import Chunk, FileInfo, Repository, Symbol, create_chunk
from coderag.utils.languages import line_comment
from coderag.utils.text import estimate_tokens, split_lines, tokens_to_chars

LOGGER = logging.getLogger(__name__)

# Overlap is converted from characters to lines assuming 80 characters per line,
# whatever the real line lengths are.
ASSUMED_CHARS_PER_LINE = 80


@dataclass(frozen=True, slots=True)
class _Line:
    number: int
    text: str


def symbol_text(symbol: Symbol) -> str:
    """Doc comment (if any) followed by the symbol body."""
    if symbol.doc_comment:
        return f"{symbol.doc_comment}\n{symbol.text}"
    return symbol.text


def part_name(name: Optional[str], part: int) -> Optional[str]:
    """Name of a split part. Later parts of an unnamed symbol still get a suffix
    so two parts starting on the same line never share an id."""
    if part == 1:
        return name
    return f"{name} (part {part})" if name else f"(part {part})"


class ChunkBuilder:
    """Build chunks for the symbols of one file."""

    def __init__(self, max_tokens: int = 1000, overlap_tokens: int = 100) -> None:
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if overlap_tokens < 0:
            raise ValueError("overlap_tokens must not be negative")
        self.max_tokens = max_tokens
        self.overlap_tokens = overlap_tokens

    @classmethod
    def from_config(cls, config: ChunkingConfig) -> "ChunkBuilder":
        return cls(max_tokens=config.max_tokens, overlap_tokens=config.overlap_tokens)

    @property
    def max_chars(self) -> int:
        return tokens_to_chars(self.max_tokens)

    @property
    def overlap_chars(self) -> int:
        return tokens_to_chars(self.overlap_tokens)

    @property
    def overlap_lines(self) -> int:
        return math.ceil(self.overlap_chars / ASSUMED_CHARS_PER_LINE)

    def build_chunks(
        self, symbols: Iterable[Symbol], file_info: FileInfo, repo: Repository
    ) -> List[Chunk]:
        chunks: List[Chunk] = []
        for symbol in symbols:
            chunks.extend(self.symbol_to_chunks(symbol, file_info, repo))
        return chunks

    def symbol_to_chunks(self, symbol: Symbol, file_info: FileInfo, repo: Repository) -> List[Chunk]:
        if not symbol.text.strip():
            LOGGER.debug(
                "Skipping empty %s %s in %s", symbol.type.value, symbol.name, file_info.relative_path
            )
            return []

        text = symbol_text(symbol)
        if estimate_tokens(text) <= self.max_tokens:
            return [
                create_chunk(
                    repo=repo,
                    file_info=file_info,
                    symbol=symbol,
                    symbol_name=symbol.name,
                    start_line=symbol.start_line,
                    end_line=max(symbol.end_line, symbol.start_line),
                    text=text,
                )
            ]
        return self.split_symbol(symbol, file_info, repo)

    def split_symbol(self, symbol: Symbol, file_info: FileInfo, repo: Repository) -> List[Chunk]:
        """Split an oversized symbol body into overlapping parts."""
        max_chars = self.max_chars
        header = ""
        if symbol.parent:
            header = f"{line_comment(file_info.language)} In class: {symbol.parent}\n"

        chunks: List[Chunk] = []
        buffer: List[_Line] = []
        buffer_chars = 0
        part = 1

        def emit(lines: Sequence[_Line], end_line: int) -> None:
            chunks.append(
                create_chunk(
                    repo=repo,
                    file_info=file_info,
                    symbol=symbol,
                    symbol_name=part_name(symbol.name, part),
                    start_line=lines[0].number,
                    end_line=max(end_line, lines[0].number),
                    text=header + "\n".join(line.text for line in lines),
                )
            )

        for line in self._lines(symbol):
            line_chars = len(line.text) + 1
            if buffer and buffer_chars + line_chars > max_chars:
                emit(buffer, buffer[-1].number)
                part += 1
                buffer = self._overlap(buffer, line_chars)
                buffer_chars = len("\n".join(item.text for item in buffer))
            buffer.append(line)
            buffer_chars += line_chars

        if buffer:
            emit(buffer, symbol.end_line)

        LOGGER.debug(
            "Split %s %s in %s into %d parts",
            symbol.type.value,
            symbol.name or "<anonymous>",
            file_info.relative_path,
            len(chunks),
        )
        return chunks

    def _lines(self, symbol: Symbol) -> Iterable[_Line]:
        """Number the body lines, cutting any line longer than the budget into pieces."""
        max_chars = self.max_chars
        for offset, text in enumerate(split_lines(symbol.text)):
            number = symbol.start_line + offset
            if len(text) <= max_chars:
                yield _Line(number, text)
                continue
            for start in range(0, len(text), max_chars):
                yield _Line(number, text[start : start + max_chars])

    def _overlap(self, closed: List[_Line], next_chars: int) -> List[_Line]:
        """Trailing ``overlap_lines`` of ``closed``, shortened until the next line fits.

        The first closed line is never carried over so every part starts further down.
        """
        if self.overlap_lines == 0:
            return []
        seed = closed[max(1, len(closed) - self.overlap_lines) :]
        while seed and len("\n".join(item.text for item in seed)) + next_chars > self.max_chars:
            seed = seed[1:]
        return seed


def build_chunks(
    symbols: Iterable[Symbol],
    file_info: FileInfo,
    repo: Repository,
    config: ChunkingConfig | None = None,
) -> List[Chunk]:
    """Convert ``symbols`` of one file into chunks using ``config`` budgets."""
    builder = ChunkBuilder.from_config(config or ChunkingConfig())
    return builder.build_chunks(symbols, file_info, repo)
