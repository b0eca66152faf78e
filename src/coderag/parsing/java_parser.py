"""Java Symbol Source built on tree-sitter.

Captured doc comments are the comment nodes directly above a declaration:
``/** Javadoc */`` blocks, ``/* */`` blocks and runs of ``//`` lines, kept
verbatim. Annotations belong to the declaration, so a Javadoc above them is
still found. A blank line ends the run.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import tree_sitter
from tree_sitter_java import language as java_language

from coderag.models import Language, Symbol, SymbolType
from coderag.parsing.base import text_between_lines
from coderag.parsing.syntax_tree import (
    child_of_type,
    leading_comments,
    lines_of,
    node_text,
    parse_tree,
    signature_before,
)
from coderag.utils.text import split_lines

LOGGER = logging.getLogger(__name__)

COMMENT_TYPES = ("line_comment", "block_comment", "comment")

_TYPE_DECLARATIONS = {
    "class_declaration": SymbolType.CLASS,
    "record_declaration": SymbolType.CLASS,
    "interface_declaration": SymbolType.INTERFACE,
    "annotation_type_declaration": SymbolType.INTERFACE,
    "enum_declaration": SymbolType.ENUM,
}
_CLASS_TYPES = {"class_declaration", "record_declaration"}


def java_package(root: tree_sitter.Node) -> Optional[str]:
    declaration = child_of_type(root, "package_declaration")
    if declaration is None:
        return None
    return node_text(child_of_type(declaration, "scoped_identifier", "identifier"))


def java_imports(root: tree_sitter.Node) -> List[str]:
    imports: List[str] = []
    for child in root.children:
        if child.type != "import_declaration":
            continue
        name = node_text(child_of_type(child, "scoped_identifier", "identifier"))
        if name:
            imports.append(name)
    return imports


def method_calls(node: tree_sitter.Node) -> List[str]:
    """Names of the methods invoked anywhere below ``node``, first occurrence first."""
    calls: List[str] = []
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "method_invocation":
            name = node_text(current.child_by_field_name("name"))
            if name:
                calls.append(name)
        stack.extend(reversed(current.children))
    return list(dict.fromkeys(calls))


class JavaSymbolSource:
    """Classes, records, interfaces, enums, methods and constructors.

    Type symbols carry the file's package and imports; members carry the
    package, their enclosing type and, for methods, the invoked method names.
    """

    languages: Sequence[Language] = (Language.JAVA,)

    def __init__(self) -> None:
        self.java_language = tree_sitter.Language(java_language())

    def parse(self, content: str, path: str) -> List[Symbol]:
        tree = parse_tree(self.java_language, content, path, Language.JAVA.value)
        root = tree.root_node
        walker = _Walker(content, java_package(root), java_imports(root))
        walker.walk(root, parent=None)
        LOGGER.debug("Parsed %d symbols from %s", len(walker.symbols), path)
        return walker.symbols


class _Walker:
    def __init__(self, content: str, package: Optional[str], imports: List[str]) -> None:
        self.source = content.encode("utf-8")
        self.lines = split_lines(content)
        self.package = package
        self.imports = tuple(imports)
        self.symbols: List[Symbol] = []

    def walk(self, node: tree_sitter.Node, parent: Optional[str]) -> None:
        kind = node.type
        if kind in _TYPE_DECLARATIONS:
            name = node_text(node.child_by_field_name("name"))
            body = node.child_by_field_name("body")
            self._add(
                node,
                _TYPE_DECLARATIONS[kind],
                name,
                body,
                imports=self.imports if kind in _CLASS_TYPES else (),
            )
            if body is not None and name:
                for child in body.children:
                    self.walk(child, parent=name)
        elif kind == "method_declaration":
            self._add(
                node,
                SymbolType.METHOD,
                node_text(node.child_by_field_name("name")),
                node.child_by_field_name("body"),
                parent=parent,
                calls=method_calls(node),
            )
        elif kind == "constructor_declaration":
            name = node_text(node.child_by_field_name("name"))
            self._add(
                node,
                SymbolType.METHOD,
                f"{name} (constructor)" if name else None,
                node.child_by_field_name("body"),
                parent=parent,
                calls=method_calls(node),
            )
        else:
            for child in node.children:
                self.walk(child, parent)

    def _add(
        self,
        node: tree_sitter.Node,
        symbol_type: SymbolType,
        name: Optional[str],
        body: Optional[tree_sitter.Node],
        *,
        parent: Optional[str] = None,
        imports: Sequence[str] = (),
        calls: Sequence[str] = (),
    ) -> None:
        start, end = lines_of(node)
        self.symbols.append(
            Symbol(
                type=symbol_type,
                name=name,
                signature=signature_before(self.source, node, body),
                start_line=start,
                end_line=end,
                text=text_between_lines(self.lines, start, end),
                doc_comment=leading_comments(node, COMMENT_TYPES),
                parent=parent,
                package=self.package,
                imports=tuple(imports),
                calls=tuple(calls),
            )
        )
