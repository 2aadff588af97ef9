"""
Coverage data model shared by the analyzer, the aggregators and the
decision engine.

Counter semantics follow JaCoCo: every counter is a (missed, covered) pair
and the status of a counter is derived from those two numbers only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, FrozenSet, List, Mapping, Tuple, Union


class CoverageStatus(IntEnum):
    """Coverage status of a counter (values mirror JaCoCo's ICounter)."""
    EMPTY = 0
    NOT_COVERED = 1
    FULLY_COVERED = 2
    PARTLY_COVERED = 3

    @property
    def covered(self) -> bool:
        """True when at least one instruction was executed."""
        return self in (CoverageStatus.PARTLY_COVERED, CoverageStatus.FULLY_COVERED)


@dataclass(frozen=True)
class Counter:
    """A missed/covered counter pair."""
    missed: int = 0
    covered: int = 0

    @property
    def total(self) -> int:
        return self.missed + self.covered

    @property
    def status(self) -> CoverageStatus:
        if self.total == 0:
            return CoverageStatus.EMPTY
        if self.covered == 0:
            return CoverageStatus.NOT_COVERED
        if self.missed == 0:
            return CoverageStatus.FULLY_COVERED
        return CoverageStatus.PARTLY_COVERED


EMPTY_COUNTER = Counter()

# Counter units reported per class, in report order.
COUNTER_UNITS: Tuple[str, ...] = ("instructions", "branches", "lines", "methods", "complexity")


@dataclass(frozen=True)
class MethodCoverageReport:
    """Coverage of one method, identified by its simple name."""
    name: str
    status: CoverageStatus
    descriptor: str = ""
    line: int = 0

    @property
    def covered(self) -> bool:
        return self.status.covered


@dataclass(frozen=True)
class ClassCoverageReport:
    """Coverage of one class, keyed by its fully-qualified name."""
    name: str
    instructions: Counter = EMPTY_COUNTER
    branches: Counter = EMPTY_COUNTER
    lines: Counter = EMPTY_COUNTER
    methods: Counter = EMPTY_COUNTER
    complexity: Counter = EMPTY_COUNTER
    method_reports: Tuple[MethodCoverageReport, ...] = ()

    def counters(self) -> List[Tuple[str, Counter]]:
        """The five counters paired with their unit names."""
        return [(unit, getattr(self, unit)) for unit in COUNTER_UNITS]

    @property
    def covered_methods(self) -> FrozenSet[str]:
        return frozenset(m.name for m in self.method_reports if m.covered)

    @property
    def not_covered_methods(self) -> FrozenSet[str]:
        return frozenset(m.name for m in self.method_reports if not m.covered)


def vm_to_class_name(vm_name: str) -> str:
    """Convert a VM class name (``org/example/Foo$Bar``) to ``org.example.Foo$Bar``."""
    return vm_name.replace("/", ".")


# =============================================================================
# Decision maps
# =============================================================================

class Granularity(Enum):
    """What a keep-set entry names."""
    METHOD = "method"
    CLASS = "class"


@dataclass(frozen=True)
class GlobalBlacklist:
    """Method names to remove from every class in which they occur."""
    names: FrozenSet[str] = frozenset()

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class KeepSets:
    """Per-class keep-sets. Classes missing from ``keep`` are left untouched."""
    granularity: Granularity
    keep: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.keep)

    def __contains__(self, class_name: object) -> bool:
        return class_name in self.keep

    def get(self, class_name: str) -> FrozenSet[str]:
        return self.keep.get(class_name, frozenset())


DecisionMap = Union[GlobalBlacklist, KeepSets]


def freeze_keep_sets(granularity: Granularity, keep: Dict[str, set]) -> KeepSets:
    """Build an immutable KeepSets from a mutable accumulation."""
    return KeepSets(
        granularity=granularity,
        keep={name: frozenset(values) for name, values in keep.items()},
    )
