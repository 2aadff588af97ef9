"""Plain-data SourceTree, for exercising the pipeline without parsing Java."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from covprune.source.base import ClassCallback


@dataclass
class InMemoryClassNode:
    qualified_name: str
    methods: List[str] = field(default_factory=list)
    comments: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    def method_names(self) -> List[str]:
        return list(dict.fromkeys(self.methods))

    def remove_method(self, name: str) -> int:
        count = self.methods.count(name)
        self.methods = [m for m in self.methods if m != name]
        self.removed.extend([name] * count)
        return count

    def add_comment(self, text: str) -> None:
        self.comments.append(text)

    @property
    def touched(self) -> bool:
        return bool(self.removed or self.comments)


class InMemorySourceTree:
    """Classes visited in insertion order."""

    def __init__(self, classes: Mapping[str, Iterable[str]] = None):
        self.nodes: Dict[str, InMemoryClassNode] = {}
        for name, methods in (classes or {}).items():
            self.add_class(name, methods)

    def add_class(self, name: str, methods: Iterable[str]) -> InMemoryClassNode:
        node = InMemoryClassNode(name, list(methods))
        self.nodes[name] = node
        return node

    def __getitem__(self, name: str) -> InMemoryClassNode:
        return self.nodes[name]

    def for_each_class(self, callback: ClassCallback) -> int:
        for node in self.nodes.values():
            callback(node)
        return len(self.nodes)
