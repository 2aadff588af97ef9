"""
Tree-sitter backed Java source tree.

Each ``.java`` file below the source root is parsed once. Class nodes record
edits (byte-range deletions and comment insertions) against the original
bytes; the edits are applied when the file is rendered, so the syntax tree
seen by every callback stays the one that was parsed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

import tree_sitter

from covprune.errors import SourceTreeError
from covprune.source.base import ClassCallback
from covprune.source.utils import create_java_parser, field_text, iter_nodes, node_text

log = logging.getLogger(__name__)

# Declarations compiled to a class with methods.
CLASS_TYPES = ("class_declaration", "enum_declaration", "record_declaration")
# Declarations that contribute a segment to nested class names.
TYPE_TYPES = CLASS_TYPES + ("interface_declaration", "annotation_type_declaration")
COMMENT_TYPES = ("block_comment", "line_comment")


@dataclass(frozen=True)
class JavaMethodNode:
    """A method declaration inside a class body."""
    name: str
    start_line: int
    node: tree_sitter.Node


class JavaSourceFile:
    """One parsed compilation unit plus its pending edits."""

    def __init__(self, relative_path: Path, source: bytes, tree: tree_sitter.Tree):
        self.relative_path = relative_path
        self.source = source
        self.tree = tree
        self.package = self._find_package()
        self.newline = b"\r\n" if b"\r\n" in source else b"\n"
        self.deletions: List[Tuple[int, int]] = []
        self.insertions: List[Tuple[int, int, bytes]] = []
        self.removed: Set[Tuple[int, int]] = set()

    @property
    def modified(self) -> bool:
        return bool(self.deletions or self.insertions)

    def text(self, node: Optional[tree_sitter.Node]) -> str:
        return node_text(node, self.source) if node is not None else ""

    def classes(self) -> List[JavaClassNode]:
        """Every class, enum and record declaration, outer before inner."""
        return [
            JavaClassNode(self, node)
            for node in iter_nodes(self.tree.root_node)
            if node.type in CLASS_TYPES
        ]

    def _find_package(self) -> str:
        for child in self.tree.root_node.named_children:
            if child.type == "package_declaration":
                for part in child.named_children:
                    if part.type in ("scoped_identifier", "identifier"):
                        return self.text(part)
        return ""

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    def inside_removed(self, node: tree_sitter.Node) -> bool:
        """True when ``node`` sits within a declaration already deleted in this pass."""
        return any(
            start <= node.start_byte and node.end_byte <= end
            for start, end in self.removed
        )

    def delete(self, node: tree_sitter.Node) -> None:
        self.removed.add((node.start_byte, node.end_byte))
        self.deletions.append(self._deletion_span(node))

    def insert_before(self, node: tree_sitter.Node, text: str) -> None:
        """Insert ``text`` as its own line above ``node``, using the node's indentation."""
        start = node.start_byte
        line_start = self.source.rfind(b"\n", 0, start) + 1
        indent = self.source[line_start:start]
        if indent.strip():
            payload = text.encode("utf-8") + b" "
        else:
            payload = indent + text.encode("utf-8") + self.newline
            start = line_start
        self.insertions.append((start, len(self.insertions), payload))

    def _deletion_span(self, node: tree_sitter.Node) -> Tuple[int, int]:
        """Byte range covering ``node``, its attached leading comments and its whole lines."""
        first = node
        prev = node.prev_sibling
        while prev is not None and prev.type in COMMENT_TYPES and self._attached(prev, first):
            first = prev
            prev = prev.prev_sibling

        begin, end = first.start_byte, node.end_byte
        line_start = self.source.rfind(b"\n", 0, begin) + 1
        line_end = self.source.find(b"\n", end)
        if line_end == -1:
            line_end = len(self.source)
        own_first_line = not self.source[line_start:begin].strip()
        own_last_line = not self.source[end:line_end].strip()

        if own_first_line and own_last_line:
            begin = line_start
            # swallow one blank separator line above the declaration
            prev_start = self.source.rfind(b"\n", 0, max(line_start - 1, 0)) + 1
            if line_start > 0 and not self.source[prev_start:line_start].strip():
                begin = prev_start
            end = min(line_end + 1, len(self.source))
        elif own_first_line:
            # a later member shares the last line and keeps the indentation
            while end < line_end and self.source[end] in b" \t":
                end += 1
        else:
            while begin > line_start and self.source[begin - 1] in b" \t":
                begin -= 1
        return begin, end

    def _attached(self, comment: tree_sitter.Node, following: tree_sitter.Node) -> bool:
        # a comment on its own line directly above the declaration
        if following.start_point[0] - comment.end_point[0] > 1:
            return False
        line_start = self.source.rfind(b"\n", 0, comment.start_byte) + 1
        return not self.source[line_start:comment.start_byte].strip()

    def render(self) -> bytes:
        """The source with every pending edit applied."""
        spans = _merge_spans(self.deletions)
        events = [(start, 1, 0, end) for start, end in spans]
        for pos, seq, payload in self.insertions:
            if any(start < pos < end for start, end in spans):
                continue
            events.append((pos, 0, seq, payload))

        out = bytearray()
        cursor = 0
        for pos, kind, _, payload in sorted(events, key=lambda e: e[:3]):
            out += self.source[cursor:pos]
            cursor = pos
            if kind == 0:
                out += payload
            else:
                cursor = payload
        out += self.source[cursor:]
        return bytes(out)


def _merge_spans(spans: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


class JavaClassNode:
    """SourceClassNode over a tree-sitter class, enum or record declaration."""

    def __init__(self, source_file: JavaSourceFile, node: tree_sitter.Node):
        self.file = source_file
        self.node = node
        self.name = field_text(node, "name", source_file.source) or ""
        self.qualified_name = self._qualified_name()

    def __repr__(self):
        return f"JavaClassNode({self.qualified_name})"

    def _qualified_name(self) -> str:
        names = [self.name]
        parent = self.node.parent
        while parent is not None:
            if parent.type in TYPE_TYPES:
                names.append(field_text(parent, "name", self.file.source) or "")
            parent = parent.parent
        binary = "$".join(reversed(names))
        return f"{self.file.package}.{binary}" if self.file.package else binary

    def _declarations(self) -> Iterator[tree_sitter.Node]:
        body = self.node.child_by_field_name("body")
        if body is None:
            return
        for child in body.named_children:
            if child.type == "method_declaration":
                yield child
            elif child.type == "enum_body_declarations":
                yield from (c for c in child.named_children if c.type == "method_declaration")

    def methods(self) -> List[JavaMethodNode]:
        """Method declarations still present (not removed in this pass)."""
        methods = []
        for decl in self._declarations():
            if (decl.start_byte, decl.end_byte) in self.file.removed:
                continue
            methods.append(JavaMethodNode(
                name=field_text(decl, "name", self.file.source) or "",
                start_line=decl.start_point[0] + 1,
                node=decl,
            ))
        return methods

    def method_names(self) -> List[str]:
        return list(dict.fromkeys(m.name for m in self.methods()))

    def remove_method(self, name: str) -> int:
        removed = 0
        for method in self.methods():
            if method.name == name:
                log.debug("%s: deleting %s at %s:%d", self.qualified_name, name,
                          self.file.relative_path, method.start_line)
                self.file.delete(method.node)
                removed += 1
        return removed

    def add_comment(self, text: str) -> None:
        self.file.insert_before(self.node, f"/* {text} */")


class JavaSourceTree:
    """Parses every ``.java`` file below ``source_root`` and drives class callbacks."""

    def __init__(self, source_root: str | Path):
        self.source_root = Path(source_root)
        if not self.source_root.is_dir():
            raise SourceTreeError(f"Source root not found: {self.source_root.absolute()}")
        self._files: Optional[List[JavaSourceFile]] = None

    @property
    def files(self) -> List[JavaSourceFile]:
        if self._files is None:
            self._files = self._parse_all()
        return self._files

    def _parse_all(self) -> List[JavaSourceFile]:
        parser = create_java_parser()
        files = []
        for path in sorted(self.source_root.rglob("*.java")):
            try:
                source = path.read_bytes()
            except OSError as e:
                raise SourceTreeError(f"Cannot read {path}: {e}") from e
            tree = parser.parse(source)
            if tree.root_node.has_error:
                log.warning("Syntax errors in %s; edits may be incomplete", path)
            files.append(JavaSourceFile(path.relative_to(self.source_root), source, tree))
        log.info("Parsed %d source files under %s", len(files), self.source_root)
        return files

    def for_each_class(self, callback: ClassCallback) -> int:
        visited = 0
        for source_file in self.files:
            for class_node in source_file.classes():
                # outer classes come first, so a local class of a removed method is already gone
                if source_file.inside_removed(class_node.node):
                    log.debug("skip %s: enclosing method removed", class_node.qualified_name)
                    continue
                callback(class_node)
                visited += 1
        return visited

    def classes(self) -> Dict[str, JavaClassNode]:
        """Class nodes keyed by qualified name."""
        nodes: Dict[str, JavaClassNode] = {}
        self.for_each_class(lambda node: nodes.setdefault(node.qualified_name, node))
        return nodes

    def write(self, output_root: str | Path) -> List[Path]:
        """Emit every parsed file under ``output_root``, mirroring relative paths."""
        output_root = Path(output_root)
        written = []
        for source_file in self.files:
            target = output_root / source_file.relative_path
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(source_file.render())
            except OSError as e:
                raise SourceTreeError(f"Cannot write {target}: {e}") from e
            written.append(target)
        log.info("Wrote %d files to %s", len(written), output_root)
        return written
