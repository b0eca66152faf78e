"""Extension based language detection."""

from __future__ import annotations

from typing import Dict, List

from coderag.models import Language

EXTENSION_MAP: Dict[str, Language] = {
    ".java": Language.JAVA,
    ".ts": Language.TYPESCRIPT,
    ".tsx": Language.TYPESCRIPT,
    ".mts": Language.TYPESCRIPT,
    ".cts": Language.TYPESCRIPT,
    ".js": Language.JAVASCRIPT,
    ".jsx": Language.JAVASCRIPT,
    ".mjs": Language.JAVASCRIPT,
    ".cjs": Language.JAVASCRIPT,
    ".py": Language.PYTHON,
    ".pyw": Language.PYTHON,
    ".pyi": Language.PYTHON,
    ".sql": Language.SQL,
    ".psql": Language.SQL,
    ".pgsql": Language.SQL,
    ".mysql": Language.SQL,
    ".yaml": Language.YAML,
    ".yml": Language.YAML,
    ".json": Language.JSON,
    ".properties": Language.CONFIG,
    ".toml": Language.CONFIG,
    ".ini": Language.CONFIG,
    ".env": Language.CONFIG,
}

# Comment prefix used for the context header of split chunks.
LINE_COMMENT: Dict[Language, str] = {
    Language.PYTHON: "#",
    Language.YAML: "#",
    Language.CONFIG: "#",
    Language.SQL: "--",
}


def detect_language(extension: str) -> Language:
    """Map a file extension (with leading dot) to a language."""
    return EXTENSION_MAP.get(extension.lower(), Language.UNKNOWN)


def line_comment(language: Language) -> str:
    return LINE_COMMENT.get(language, "//")


def supported_extensions() -> List[str]:
    return sorted(EXTENSION_MAP)


def supported_languages() -> List[Language]:
    return sorted(set(EXTENSION_MAP.values()), key=lambda language: language.value)
