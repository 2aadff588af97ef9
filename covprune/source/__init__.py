"""
Source-tree framework adapters.

The pipeline only talks to the ``SourceTree`` / ``SourceClassNode``
capabilities; ``JavaSourceTree`` implements them on top of tree-sitter and
``InMemorySourceTree`` on plain lists.
"""

from covprune.source.base import ClassCallback, SourceClassNode, SourceTree
from covprune.source.java import JavaClassNode, JavaMethodNode, JavaSourceFile, JavaSourceTree
from covprune.source.memory import InMemoryClassNode, InMemorySourceTree

__all__ = [
    "ClassCallback",
    "SourceClassNode",
    "SourceTree",
    "JavaClassNode",
    "JavaMethodNode",
    "JavaSourceFile",
    "JavaSourceTree",
    "InMemoryClassNode",
    "InMemorySourceTree",
]
