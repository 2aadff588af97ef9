"""Shared utilities for Tree-sitter parsing and node helpers."""

from __future__ import annotations

from typing import Iterator, Optional

import tree_sitter
import tree_sitter_java


def create_java_parser() -> tree_sitter.Parser:
    """
    Create a Tree-sitter parser configured for Java.

    Supports the bindings that take the language in the constructor as well
    as releases that expect ``set_language``.
    """

    language = tree_sitter.Language(tree_sitter_java.language())
    try:
        parser = tree_sitter.Parser(language)
    except TypeError:
        parser = tree_sitter.Parser()
        parser.set_language(language)
    return parser


def node_text(node: tree_sitter.Node, source_bytes: bytes) -> str:
    """Decode the bytes that correspond to a node."""
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def field_text(node: tree_sitter.Node, name: str, source_bytes: bytes) -> Optional[str]:
    """Text of the child stored under field ``name``, if any."""
    child = node.child_by_field_name(name)
    if child is None:
        return None
    return node_text(child, source_bytes)


def iter_nodes(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Iterative preorder traversal of the syntax tree."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))
