"""TypeScript and JavaScript Symbol Source built on tree-sitter.

Captured doc comments are the comment nodes directly above a declaration (or
above the ``export`` wrapping it): ``/** JSDoc */`` blocks, ``/* */`` blocks and
runs of ``//`` lines, kept verbatim. A blank line ends the run.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import tree_sitter
from tree_sitter_javascript import language as javascript_language
from tree_sitter_typescript import language_tsx, language_typescript

from coderag.models import Language, Symbol, SymbolType
from coderag.parsing.base import text_between_lines
from coderag.parsing.syntax_tree import (
    leading_comments,
    lines_of,
    node_text,
    parse_tree,
    signature_before,
)
from coderag.utils.text import split_lines

LOGGER = logging.getLogger(__name__)

COMMENT_TYPES = ("comment",)

_CLASS_TYPES = {"class_declaration", "abstract_class_declaration"}
_VARIABLE_TYPES = {"lexical_declaration", "variable_declaration"}
_FUNCTION_VALUES = {"arrow_function", "function_expression", "function"}
_DECLARATIONS = {
    "interface_declaration": SymbolType.INTERFACE,
    "enum_declaration": SymbolType.ENUM,
    "function_declaration": SymbolType.FUNCTION,
    "generator_function_declaration": SymbolType.FUNCTION,
    "method_definition": SymbolType.METHOD,
}


class TypeScriptSymbolSource:
    """Classes, interfaces, enums, functions, methods and arrow-function constants.

    ``.tsx`` files use the TSX grammar and JavaScript files the JavaScript one.
    Function and method bodies are not searched for nested declarations.
    """

    languages: Sequence[Language] = (Language.TYPESCRIPT, Language.JAVASCRIPT)

    def __init__(self) -> None:
        self.ts_language = tree_sitter.Language(language_typescript())
        self.tsx_language = tree_sitter.Language(language_tsx())
        self.js_language = tree_sitter.Language(javascript_language())

    def _grammar(self, path: str) -> tuple[tree_sitter.Language, Language]:
        lowered = path.lower()
        if lowered.endswith(".tsx"):
            return self.tsx_language, Language.TYPESCRIPT
        if lowered.endswith((".js", ".jsx", ".mjs", ".cjs")):
            return self.js_language, Language.JAVASCRIPT
        return self.ts_language, Language.TYPESCRIPT

    def parse(self, content: str, path: str) -> List[Symbol]:
        grammar, language = self._grammar(path)
        tree = parse_tree(grammar, content, path, language.value)
        walker = _Walker(content)
        walker.walk(tree.root_node, parent=None)
        LOGGER.debug("Parsed %d symbols from %s", len(walker.symbols), path)
        return walker.symbols


class _Walker:
    def __init__(self, content: str) -> None:
        self.source = content.encode("utf-8")
        self.lines = split_lines(content)
        self.symbols: List[Symbol] = []

    def walk(self, node: tree_sitter.Node, parent: Optional[str]) -> None:
        kind = node.type
        if kind in _CLASS_TYPES or kind == "class":
            name = node_text(node.child_by_field_name("name"))
            if kind != "class":
                self._declaration(node, SymbolType.CLASS)
            body = node.child_by_field_name("body")
            if body is not None and name:
                for child in body.children:
                    self.walk(child, parent=name)
        elif kind in _DECLARATIONS:
            owner = parent if kind == "method_definition" else None
            self._declaration(node, _DECLARATIONS[kind], owner)
        elif kind in _VARIABLE_TYPES:
            self._arrow_functions(node)
        else:
            for child in node.children:
                self.walk(child, parent)

    def _declaration(
        self, node: tree_sitter.Node, symbol_type: SymbolType, parent: Optional[str] = None
    ) -> None:
        name = node_text(node.child_by_field_name("name"))
        self._add(node, symbol_type, name, node.child_by_field_name("body"), parent=parent)

    def _arrow_functions(self, node: tree_sitter.Node) -> None:
        for declarator in node.children:
            if declarator.type != "variable_declarator":
                continue
            value = declarator.child_by_field_name("value")
            name = node_text(declarator.child_by_field_name("name"))
            if value is None or value.type not in _FUNCTION_VALUES or not name:
                continue
            self._add(node, SymbolType.FUNCTION, name, value.child_by_field_name("body"))

    def _add(
        self,
        node: tree_sitter.Node,
        symbol_type: SymbolType,
        name: Optional[str],
        body: Optional[tree_sitter.Node],
        *,
        parent: Optional[str] = None,
    ) -> None:
        outer = node
        if node.parent is not None and node.parent.type == "export_statement":
            outer = node.parent
        start, end = lines_of(outer)
        self.symbols.append(
            Symbol(
                type=symbol_type,
                name=name,
                signature=signature_before(self.source, node, body),
                start_line=start,
                end_line=end,
                text=text_between_lines(self.lines, start, end),
                doc_comment=leading_comments(outer, COMMENT_TYPES),
                parent=parent,
            )
        )
