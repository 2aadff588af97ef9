"""
Coverage Aggregator.

Folds the per-class reports of every trace into one decision map. Three
policies are available and all of them share the same folding protocol:

    A  global blacklist   names NOT_COVERED anywhere, removed from every class
    B  method keep-sets   per class, the methods covered in any trace
    C  class keep-sets    per class, kept whole if any instruction was covered

Reports are folded in trace order. The last report seen for a class is
kept for diagnostics; counters of different traces are never merged.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, Set

from covprune.errors import ConfigError
from covprune.model import (
    ClassCoverageReport,
    DecisionMap,
    GlobalBlacklist,
    Granularity,
    KeepSets,
    freeze_keep_sets,
)

log = logging.getLogger(__name__)


class AggregationPolicy(str, Enum):
    GLOBAL_BLACKLIST = "A"
    METHOD_KEEP_SETS = "B"
    CLASS_KEEP_SETS = "C"

    @classmethod
    def parse(cls, value: str) -> AggregationPolicy:
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigError(f"Unknown aggregation policy {value!r} (expected A, B or C)") from None


class MergeRule(str, Enum):
    """How traces covering the same class are combined."""
    # One store per trace file, reports folded file by file.
    LAST_WINS = "last-wins"
    # Every trace merged into one store before analysis: covered if covered in any trace.
    ANY_TRACE = "any-trace"

    @classmethod
    def parse(cls, value: str) -> MergeRule:
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigError(f"Unknown merge rule {value!r} (expected last-wins or any-trace)") from None


class CoverageAggregator:
    """Base class: collects reports and produces a decision map."""

    policy: AggregationPolicy

    def __init__(self):
        self.latest_reports: Dict[str, ClassCoverageReport] = {}
        self.traces_folded = 0

    def add_reports(self, reports: Iterable[ClassCoverageReport]) -> None:
        """Fold the reports of one trace."""
        self.traces_folded += 1
        for report in reports:
            self.latest_reports[report.name] = report
            self._fold(report)

    def _fold(self, report: ClassCoverageReport) -> None:
        raise NotImplementedError

    def decision_map(self) -> DecisionMap:
        raise NotImplementedError


class GlobalBlacklistAggregator(CoverageAggregator):
    """
    Policy A. Class-agnostic: a name NOT_COVERED in any class of any trace is
    blacklisted everywhere, collisions between unrelated classes included.
    EMPTY methods count as not covered and are blacklisted too; JaCoCo never
    reports a method without instructions, so this only matters for hand-built
    reports.
    """

    policy = AggregationPolicy.GLOBAL_BLACKLIST

    def __init__(self):
        super().__init__()
        self.names: Set[str] = set()

    def _fold(self, report: ClassCoverageReport) -> None:
        self.names.update(report.not_covered_methods)

    def decision_map(self) -> GlobalBlacklist:
        log.info("Blacklist: %d method names", len(self.names))
        return GlobalBlacklist(frozenset(self.names))


class MethodKeepSetAggregator(CoverageAggregator):
    """Policy B. Classes without a single covered method are omitted."""

    policy = AggregationPolicy.METHOD_KEEP_SETS

    def __init__(self):
        super().__init__()
        self.keep: Dict[str, Set[str]] = {}

    def _fold(self, report: ClassCoverageReport) -> None:
        covered = report.covered_methods
        if covered:
            self.keep.setdefault(report.name, set()).update(covered)

    def decision_map(self) -> KeepSets:
        log.info("Method keep-sets for %d classes", len(self.keep))
        return freeze_keep_sets(Granularity.METHOD, self.keep)


class ClassKeepSetAggregator(CoverageAggregator):
    """Policy C. Answers "was this class exercised at all"."""

    policy = AggregationPolicy.CLASS_KEEP_SETS

    def __init__(self):
        super().__init__()
        self.keep: Dict[str, Set[str]] = {}

    def _fold(self, report: ClassCoverageReport) -> None:
        if report.instructions.covered > 0:
            self.keep.setdefault(report.name, set()).add(report.name)

    def decision_map(self) -> KeepSets:
        log.info("Exercised classes: %d", len(self.keep))
        return freeze_keep_sets(Granularity.CLASS, self.keep)


AGGREGATORS = {
    AggregationPolicy.GLOBAL_BLACKLIST: GlobalBlacklistAggregator,
    AggregationPolicy.METHOD_KEEP_SETS: MethodKeepSetAggregator,
    AggregationPolicy.CLASS_KEEP_SETS: ClassKeepSetAggregator,
}


def make_aggregator(policy: AggregationPolicy | str) -> CoverageAggregator:
    if not isinstance(policy, AggregationPolicy):
        policy = AggregationPolicy.parse(policy)
    return AGGREGATORS[policy]()
