"""Pruning Decision Engine: decision map + class inventory -> remove-set."""

from __future__ import annotations

from typing import FrozenSet, Iterable

from covprune.model import DecisionMap, GlobalBlacklist, Granularity, KeepSets
from covprune.source.base import SourceClassNode


def removal_set(decision_map: DecisionMap, class_name: str, inventory: Iterable[str]) -> FrozenSet[str]:
    """
    Names from ``inventory`` that must be removed.

    Method identity is the simple name, so one verdict covers every overload.
    A class without evidence in a keep-set map is never touched.
    """
    names = frozenset(inventory)
    if isinstance(decision_map, GlobalBlacklist):
        return names & decision_map.names
    if isinstance(decision_map, KeepSets):
        if class_name not in decision_map:
            return frozenset()
        if decision_map.granularity is Granularity.CLASS:
            # an exercised class is kept whole
            return frozenset()
        return names - decision_map.get(class_name)
    raise TypeError(f"Unsupported decision map: {type(decision_map).__name__}")


class PruningDecisionEngine:
    """Stateless apart from the read-only decision map."""

    def __init__(self, decision_map: DecisionMap):
        self.decision_map = decision_map

    def removals_for(self, node: SourceClassNode) -> FrozenSet[str]:
        return removal_set(self.decision_map, node.qualified_name, node.method_names())
