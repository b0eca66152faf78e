"""Helpers shared by the tree-sitter based Symbol Sources."""

from __future__ import annotations

from typing import Iterable, List, Optional

import tree_sitter

from coderag.errors import ParseError


def parse_tree(
    language: tree_sitter.Language, content: str, path: str, name: str
) -> tree_sitter.Tree:
    """Parse ``content``; a tree containing error or missing nodes raises :class:`ParseError`."""
    parser = tree_sitter.Parser(language)
    tree = parser.parse(content.encode("utf-8"))
    if tree.root_node.has_error:
        line = first_error_line(tree.root_node)
        raise ParseError(path, name, f"syntax error near line {line}")
    return tree


def first_error_line(root: tree_sitter.Node) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed(node.children))
    return root.start_point[0] + 1


def node_text(node: Optional[tree_sitter.Node]) -> Optional[str]:
    if node is None or node.text is None:
        return None
    return node.text.decode("utf-8", errors="replace")


def child_of_type(node: tree_sitter.Node, *types: str) -> Optional[tree_sitter.Node]:
    for child in node.children:
        if child.type in types:
            return child
    return None


def lines_of(node: tree_sitter.Node) -> tuple[int, int]:
    """1-indexed inclusive line span of ``node``."""
    return node.start_point[0] + 1, node.end_point[0] + 1


def signature_before(
    source: bytes, node: tree_sitter.Node, body: Optional[tree_sitter.Node]
) -> str:
    """Declaration text up to its body with whitespace collapsed."""
    if body is None:
        text = source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")
        return " ".join(text.split("\n", 1)[0].split()).rstrip(";")
    text = source[node.start_byte : body.start_byte].decode("utf-8", errors="replace")
    return " ".join(text.split())


def leading_comments(node: tree_sitter.Node, comment_types: Iterable[str]) -> Optional[str]:
    """Comment siblings directly above ``node``, joined in source order.

    The run stops at the first non-comment sibling or at a blank line between
    two comments, so a licence header separated from a declaration is skipped.
    """
    types = set(comment_types)
    comments: List[str] = []
    expected_row = node.start_point[0]
    sibling = node.prev_sibling
    while sibling is not None and sibling.type in types:
        if sibling.end_point[0] < expected_row - 1:
            break
        comments.insert(0, node_text(sibling) or "")
        expected_row = sibling.start_point[0]
        sibling = sibling.prev_sibling
    return "\n".join(comments) or None
