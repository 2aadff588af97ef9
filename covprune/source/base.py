"""Capability interfaces between the pipeline and a source-tree framework."""

from __future__ import annotations

from typing import Any, Callable, List, Protocol


class SourceClassNode(Protocol):
    """Mutable view of one class declaration."""

    qualified_name: str

    def method_names(self) -> List[str]:
        """Simple names of the declared methods, in source order, without duplicates."""
        ...

    def remove_method(self, name: str) -> int:
        """Delete every method declaration called ``name``; returns how many were deleted."""
        ...

    def add_comment(self, text: str) -> None:
        """Append a comment in front of the class declaration."""
        ...


ClassCallback = Callable[[SourceClassNode], Any]


class SourceTree(Protocol):
    """Drives the per-class traversal."""

    def for_each_class(self, callback: ClassCallback) -> int:
        """Invoke ``callback`` once per class; returns the number of classes visited."""
        ...
