"""SQL Symbol Source.

Doc comments are the ``--`` comment lines directly above a ``CREATE`` statement.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from coderag.models import Language, Symbol, SymbolType
from coderag.parsing.base import text_between_lines, whole_file_symbol
from coderag.utils.text import split_lines

_CREATE = re.compile(
    r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:UNIQUE\s+)?(?:TEMP(?:ORARY)?\s+)?"
    r"(TABLE|VIEW|MATERIALIZED\s+VIEW|INDEX|FUNCTION|PROCEDURE|TRIGGER|SEQUENCE|TYPE|SCHEMA)\s+"
    r"(?:IF\s+NOT\s+EXISTS\s+)?([\w.\"`\[\]]+)",
    re.IGNORECASE,
)


class SqlSymbolSource:
    """One ``block`` symbol per ``CREATE`` statement."""

    languages: Sequence[Language] = (Language.SQL,)

    def parse(self, content: str, path: str) -> List[Symbol]:
        lines = split_lines(content)
        symbols: List[Symbol] = []
        index = 0
        while index < len(lines):
            match = _CREATE.match(lines[index])
            if not match:
                index += 1
                continue
            start = index + 1
            end = self._statement_end(lines, index)
            symbols.append(
                Symbol(
                    type=SymbolType.BLOCK,
                    name=match.group(2).strip('"`[]'),
                    signature=" ".join(lines[index].split()),
                    start_line=start,
                    end_line=end,
                    text=text_between_lines(lines, start, end),
                    doc_comment=self._leading_comment(lines, index),
                )
            )
            index = end

        if not symbols and content.strip():
            return [whole_file_symbol(content, path, SymbolType.BLOCK)]
        return symbols

    def _statement_end(self, lines: List[str], index: int) -> int:
        for position in range(index, len(lines)):
            if lines[position].rstrip().endswith(";"):
                return position + 1
        return len(lines)

    def _leading_comment(self, lines: List[str], index: int) -> Optional[str]:
        comment: List[str] = []
        position = index - 1
        while position >= 0 and lines[position].strip().startswith("--"):
            comment.insert(0, lines[position].strip())
            position -= 1
        return "\n".join(comment) or None
