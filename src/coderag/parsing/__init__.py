"""Symbol Sources: per-language parsers producing :class:`coderag.models.Symbol` lists."""

from coderag.parsing.registry import ParserRegistry, default_registry

__all__ = ["ParserRegistry", "default_registry"]
