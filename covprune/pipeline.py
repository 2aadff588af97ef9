"""
Pipeline orchestrator.

A run has two phases and a single transition between them:

    ANALYZING --(decision map complete)--> MUTATING

Phase A loads every trace, analyzes it and folds the reports into the
decision map. Only when that has finished for the whole trace directory does
the pipeline enter MUTATING, where the source tree visits each class once.
A failure during Phase A leaves the pipeline in ANALYZING, so no class can
be mutated on partial evidence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from covprune.aggregator import AggregationPolicy, CoverageAggregator, MergeRule, make_aggregator
from covprune.analyzer import CoverageAnalyzer, JacocoCliAnalyzer
from covprune.config import PruneConfig
from covprune.decision import PruningDecisionEngine
from covprune.errors import PhaseError
from covprune.model import DecisionMap
from covprune.mutator import MutationStats, PruningProcessor
from covprune.report import log_reports
from covprune.source.base import SourceTree
from covprune.source.java import JavaSourceTree
from covprune.trace_loader import TraceLoader

log = logging.getLogger(__name__)


class Phase(Enum):
    ANALYZING = "analyzing"
    MUTATING = "mutating"


@dataclass
class RunResult:
    decision_map: DecisionMap
    stats: MutationStats
    written: List[Path]


class PruningPipeline:
    """Runs Phase A to completion, then hands the decision map to Phase B."""

    def __init__(
        self,
        trace_dir: str | Path,
        classes_dir: str | Path,
        analyzer: CoverageAnalyzer,
        policy: AggregationPolicy | str = AggregationPolicy.GLOBAL_BLACKLIST,
        merge_rule: MergeRule = MergeRule.LAST_WINS,
        trace_suffix: str = ".exec",
    ):
        self.trace_dir = Path(trace_dir)
        self.classes_dir = Path(classes_dir)
        self.analyzer = analyzer
        self.aggregator: CoverageAggregator = make_aggregator(policy)
        self.merge_rule = merge_rule
        self.trace_suffix = trace_suffix
        self.phase = Phase.ANALYZING
        self._decision_map: Optional[DecisionMap] = None

    @property
    def policy(self) -> AggregationPolicy:
        return self.aggregator.policy

    @property
    def decision_map(self) -> DecisionMap:
        if self.phase is not Phase.MUTATING:
            raise PhaseError("Decision map is not available before analysis has completed")
        return self._decision_map

    def _require(self, phase: Phase, action: str):
        if self.phase is not phase:
            raise PhaseError(f"Cannot {action} while {self.phase.value}")

    # -------------------------------------------------------------------------
    # Phase A
    # -------------------------------------------------------------------------

    def analyze(self) -> DecisionMap:
        """Load, analyze and aggregate every trace; then switch to MUTATING."""
        self._require(Phase.ANALYZING, "analyze")
        loader = TraceLoader(self.trace_dir, self.trace_suffix)

        if self.merge_rule is MergeRule.ANY_TRACE:
            traces = list(loader.iter_trace_files())
            if traces:
                self._fold(f"{len(traces)} merged traces", loader.load_merged())
        else:
            for path, store in loader.load_each():
                self._fold(path.name, store)

        if self.aggregator.traces_folded == 0:
            log.warning("No trace files in %s; nothing will be removed", self.trace_dir)

        self._decision_map = self.aggregator.decision_map()
        self.phase = Phase.MUTATING
        return self._decision_map

    def _fold(self, label: str, store):
        log.info("Analyzing %s against %s", label, self.classes_dir)
        reports = self.analyzer.analyze(store, self.classes_dir)
        log_reports(reports)
        self.aggregator.add_reports(reports)

    # -------------------------------------------------------------------------
    # Phase B
    # -------------------------------------------------------------------------

    def mutate(self, tree: SourceTree) -> MutationStats:
        """Visit every class of ``tree`` once with the finished decision map."""
        self._require(Phase.MUTATING, "mutate")
        processor = PruningProcessor(PruningDecisionEngine(self._decision_map))
        tree.for_each_class(processor)
        stats = processor.stats
        log.info(
            "Visited %d classes, modified %d, removed %d methods",
            stats.classes_visited, stats.classes_modified, stats.methods_removed,
        )
        return stats


def run(config: PruneConfig, analyzer: Optional[CoverageAnalyzer] = None) -> RunResult:
    """
    Execute a complete pruning run described by ``config``.

    The source tree is only opened once the decision map is final; nothing
    is written when ``config.dry_run`` is set.
    """
    config.validate()
    if analyzer is None:
        analyzer = JacocoCliAnalyzer(config.jacoco_cli, java=config.java, timeout=config.timeout)

    pipeline = PruningPipeline(
        config.trace_dir,
        config.classes_dir,
        analyzer,
        policy=config.policy,
        merge_rule=config.merge_rule,
        trace_suffix=config.trace_suffix,
    )
    decision_map = pipeline.analyze()

    tree = JavaSourceTree(config.source_root)
    stats = pipeline.mutate(tree)

    written: List[Path] = []
    if config.dry_run:
        log.info("Dry run: no files written")
    else:
        written = tree.write(config.output_dir)
    return RunResult(decision_map=decision_map, stats=stats, written=written)
