"""Lookup of Symbol Sources by language."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from coderag.interfaces import SymbolSource
from coderag.models import Language
from coderag.parsing.config_parser import ConfigSymbolSource
from coderag.parsing.java_parser import JavaSymbolSource
from coderag.parsing.python_parser import PythonSymbolSource
from coderag.parsing.sql_parser import SqlSymbolSource
from coderag.parsing.typescript_parser import TypeScriptSymbolSource


class ParserRegistry:
    """Maps each language to at most one Symbol Source."""

    def __init__(self, sources: Iterable[SymbolSource] = ()) -> None:
        self._sources: Dict[Language, SymbolSource] = {}
        for source in sources:
            self.register(source)

    def register(self, source: SymbolSource) -> None:
        for language in source.languages:
            self._sources[language] = source

    def get(self, language: Language) -> Optional[SymbolSource]:
        return self._sources.get(language)

    def __contains__(self, language: Language) -> bool:
        return language in self._sources


def default_registry() -> ParserRegistry:
    """Registry with every built-in Symbol Source."""
    return ParserRegistry(
        [
            TypeScriptSymbolSource(),
            JavaSymbolSource(),
            PythonSymbolSource(),
            ConfigSymbolSource(),
            SqlSymbolSource(),
        ]
    )
