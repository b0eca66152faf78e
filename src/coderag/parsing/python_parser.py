"""Python Symbol Source built on the standard library ``ast`` module.

Captured doc comments are docstrings only: the first statement of a class or
function body when it is a string literal. ``#`` comments are never captured.
"""

from __future__ import annotations

import ast
import logging
from pathlib import PurePosixPath
from typing import List, Optional, Sequence

from coderag.errors import ParseError
from coderag.models import Language, Symbol, SymbolType
from coderag.parsing.base import text_between_lines
from coderag.utils.text import split_lines

LOGGER = logging.getLogger(__name__)

_FunctionNode = (ast.FunctionDef, ast.AsyncFunctionDef)


def _is_private(name: str) -> bool:
    return name.startswith("_") and not name.startswith("__")


def module_package(path: str) -> Optional[str]:
    """Dotted module path of a file, ``src/`` prefix and ``__init__`` dropped."""
    parts = list(PurePosixPath(path).with_suffix("").parts)
    if parts and parts[0] == "src":
        parts = parts[1:]
    if parts and parts[-1] == "__init__":
        parts = parts[:-1]
    return ".".join(parts) or None


class PythonSymbolSource:
    """Extract classes, top-level functions and methods from Python source."""

    languages: Sequence[Language] = (Language.PYTHON,)

    def parse(self, content: str, path: str) -> List[Symbol]:
        try:
            tree = ast.parse(content, filename=path)
        except (SyntaxError, ValueError) as exc:
            raise ParseError(path, Language.PYTHON.value, str(exc)) from exc

        lines = split_lines(content)
        imports = self._imports(tree)
        package = module_package(path)
        symbols: List[Symbol] = []

        for node in tree.body:
            if isinstance(node, ast.ClassDef):
                symbols.append(self._class_symbol(node, lines, imports, package))
                for child in node.body:
                    if isinstance(child, _FunctionNode) and not _is_private(child.name):
                        symbols.append(
                            self._function_symbol(child, lines, package, parent=node.name)
                        )
            elif isinstance(node, _FunctionNode) and not _is_private(node.name):
                symbols.append(self._function_symbol(node, lines, package, imports=imports))

        LOGGER.debug("Parsed %d symbols from %s", len(symbols), path)
        return symbols

    def _imports(self, tree: ast.Module) -> List[str]:
        imports: List[str] = []
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                imports.extend(alias.name for alias in node.names)
            elif isinstance(node, ast.ImportFrom) and node.module:
                imports.append(node.module)
        return list(dict.fromkeys(imports))

    def _span(self, node: ast.AST) -> tuple[int, int]:
        decorators = getattr(node, "decorator_list", [])
        start = min([node.lineno] + [decorator.lineno for decorator in decorators])
        return start, node.end_lineno or node.lineno

    def _docstring(self, node: ast.AST) -> Optional[str]:
        docstring = ast.get_docstring(node, clean=False)
        if docstring is None:
            return None
        return f'"""{docstring}"""'

    def _class_symbol(
        self, node: ast.ClassDef, lines: List[str], imports: List[str], package: Optional[str]
    ) -> Symbol:
        start, end = self._span(node)
        bases = ", ".join(ast.unparse(base) for base in node.bases)
        signature = f"class {node.name}({bases}):" if bases else f"class {node.name}:"
        return Symbol(
            type=SymbolType.CLASS,
            name=node.name,
            signature=signature,
            start_line=start,
            end_line=end,
            text=text_between_lines(lines, start, end),
            doc_comment=self._docstring(node),
            package=package,
            imports=tuple(imports),
        )

    def _function_symbol(
        self,
        node: ast.FunctionDef | ast.AsyncFunctionDef,
        lines: List[str],
        package: Optional[str],
        *,
        parent: Optional[str] = None,
        imports: Sequence[str] = (),
    ) -> Symbol:
        start, end = self._span(node)
        return Symbol(
            type=SymbolType.METHOD if parent else SymbolType.FUNCTION,
            name=node.name,
            signature=self._signature(node),
            start_line=start,
            end_line=end,
            text=text_between_lines(lines, start, end),
            doc_comment=self._docstring(node),
            parent=parent,
            package=package,
            imports=tuple(imports),
            calls=tuple(self._calls(node)),
        )

    def _signature(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> str:
        parts = [f"@{ast.unparse(decorator)}" for decorator in node.decorator_list]
        keyword = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
        header = f"{keyword} {node.name}({ast.unparse(node.args)})"
        if node.returns is not None:
            header += f" -> {ast.unparse(node.returns)}"
        parts.append(header + ":")
        return " ".join(parts)

    def _calls(self, node: ast.AST) -> List[str]:
        calls: List[str] = []
        for child in ast.walk(node):
            if not isinstance(child, ast.Call):
                continue
            func = child.func
            if isinstance(func, ast.Attribute):
                calls.append(func.attr)
            elif isinstance(func, ast.Name):
                calls.append(func.id)
        return list(dict.fromkeys(calls))
