"""Helpers shared by the Symbol Sources."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import List

from coderag.models import Symbol, SymbolType
from coderag.utils.text import split_lines


def line_count(content: str) -> int:
    return len(split_lines(content))


def text_between_lines(lines: List[str], start_line: int, end_line: int) -> str:
    """Join ``lines[start_line - 1:end_line]`` (1-indexed, inclusive)."""
    return "\n".join(lines[start_line - 1 : end_line])


def file_name(path: str) -> str:
    return PurePosixPath(path).name


def whole_file_symbol(content: str, path: str, symbol_type: SymbolType = SymbolType.FILE) -> Symbol:
    """A single symbol spanning every line of ``content``."""
    return Symbol(
        type=symbol_type,
        name=file_name(path),
        start_line=1,
        end_line=line_count(content),
        text=content,
    )
