"""Source Tree Mutator: removes uncovered methods and leaves provenance comments."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from covprune.decision import PruningDecisionEngine
from covprune.source.base import SourceClassNode

log = logging.getLogger(__name__)


def provenance_comment(method_name: str) -> str:
    return f'method "{method_name}" was removed from this class because it was not covered by the test suite'


@dataclass
class MutationStats:
    classes_visited: int = 0
    classes_modified: int = 0
    methods_removed: int = 0
    declarations_removed: int = 0
    removed_by_class: Dict[str, List[str]] = field(default_factory=dict)


class PruningProcessor:
    """
    Per-class callback handed to the source tree traversal.

    Every name of the class's remove-set is processed in source order: all
    declarations carrying that name are deleted and exactly one comment is
    appended for it. Nothing is checked about remaining call sites.
    """

    def __init__(self, engine: PruningDecisionEngine):
        self.engine = engine
        self.stats = MutationStats()

    def __call__(self, node: SourceClassNode) -> List[str]:
        return self.process(node)

    def process(self, node: SourceClassNode) -> List[str]:
        self.stats.classes_visited += 1
        removals = self.engine.removals_for(node)
        if not removals:
            return []

        removed = []
        for name in node.method_names():
            if name not in removals:
                continue
            count = node.remove_method(name)
            node.add_comment(provenance_comment(name))
            removed.append(name)
            self.stats.declarations_removed += count
            log.info("%s: removed %s (%d declaration%s)", node.qualified_name, name, count, "" if count == 1 else "s")

        self.stats.classes_modified += 1
        self.stats.methods_removed += len(removed)
        self.stats.removed_by_class[node.qualified_name] = removed
        return removed
