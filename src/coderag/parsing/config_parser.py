"""Symbol Source for configuration files (YAML, JSON, INI/TOML/properties).

No doc comments are captured for configuration files.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List, Optional, Sequence, Tuple

import yaml

from coderag.models import Language, Symbol, SymbolType
from coderag.parsing.base import file_name, text_between_lines, whole_file_symbol
from coderag.utils.text import split_lines

LOGGER = logging.getLogger(__name__)

# Mappings with at most this many top-level keys stay a single block.
SMALL_CONFIG_KEYS = 5

_SECTION = re.compile(r"^\[+\s*([^\]]+?)\s*\]+\s*$")


class ConfigSymbolSource:
    """Split configuration files into top-level blocks."""

    languages: Sequence[Language] = (Language.YAML, Language.JSON, Language.CONFIG)

    def parse(self, content: str, path: str) -> List[Symbol]:
        lower = path.lower()
        if lower.endswith(".json"):
            keys = self._json_keys(content, path)
            pattern = r'^\s*"{key}"\s*:'
        elif lower.endswith((".yaml", ".yml")):
            keys = self._yaml_keys(content, path)
            pattern = r"^[\"']?{key}[\"']?\s*:"
        else:
            return self._sections(content, path)

        if keys is None or len(keys) <= SMALL_CONFIG_KEYS:
            return [whole_file_symbol(content, path, SymbolType.BLOCK)]

        lines = split_lines(content)
        starts = self._locate(lines, keys, pattern)
        if starts is None:
            return [whole_file_symbol(content, path, SymbolType.BLOCK)]
        return self._blocks(lines, starts, path)

    def _json_keys(self, content: str, path: str) -> Optional[List[str]]:
        try:
            parsed = json.loads(content)
        except ValueError:
            LOGGER.debug("Invalid JSON in %s, indexing as a single block", path)
            return None
        return list(parsed) if isinstance(parsed, dict) else None

    def _yaml_keys(self, content: str, path: str) -> Optional[List[str]]:
        try:
            parsed = yaml.safe_load(content)
        except yaml.YAMLError:
            LOGGER.debug("Invalid YAML in %s, indexing as a single block", path)
            return None
        return [str(key) for key in parsed] if isinstance(parsed, dict) else None

    def _locate(self, lines: List[str], keys: List[str], pattern: str) -> Optional[List[Tuple[str, int]]]:
        starts: List[Tuple[str, int]] = []
        position = 0
        for key in keys:
            regex = re.compile(pattern.format(key=re.escape(key)))
            for index in range(position, len(lines)):
                if regex.match(lines[index]):
                    starts.append((key, index + 1))
                    position = index + 1
                    break
            else:
                return None
        return starts

    def _blocks(self, lines: List[str], starts: List[Tuple[str, int]], path: str) -> List[Symbol]:
        symbols: List[Symbol] = []
        last_line = len(lines)
        while last_line > starts[-1][1] and not lines[last_line - 1].strip():
            last_line -= 1
        for position, (key, start) in enumerate(starts):
            end = starts[position + 1][1] - 1 if position + 1 < len(starts) else last_line
            symbols.append(
                Symbol(
                    type=SymbolType.BLOCK,
                    name=f"{file_name(path)}:{key}",
                    start_line=start,
                    end_line=end,
                    text=text_between_lines(lines, start, end),
                )
            )
        return symbols

    def _sections(self, content: str, path: str) -> List[Symbol]:
        lines = split_lines(content)
        starts = [
            (match.group(1), index + 1)
            for index, line in enumerate(lines)
            if (match := _SECTION.match(line.strip()))
        ]
        if len(starts) < 2:
            return [whole_file_symbol(content, path, SymbolType.BLOCK)]
        symbols = []
        if starts[0][1] > 1:
            preamble = text_between_lines(lines, 1, starts[0][1] - 1)
            if preamble.strip():
                symbols.append(
                    Symbol(
                        type=SymbolType.BLOCK,
                        name=file_name(path),
                        start_line=1,
                        end_line=starts[0][1] - 1,
                        text=preamble,
                    )
                )
        return symbols + self._blocks(lines, starts, path)
