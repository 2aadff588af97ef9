"""
covprune: coverage-driven dead method pruning for Java sources.

Phase A reads JaCoCo execution traces, analyzes them against the compiled
classes and aggregates a decision map; Phase B walks the source tree and
removes the methods the decision map condemns, leaving a comment behind.
"""

from covprune.aggregator import AggregationPolicy, MergeRule, make_aggregator
from covprune.analyzer import CoverageAnalyzer, JacocoCliAnalyzer, parse_jacoco_xml
from covprune.config import PruneConfig, load_config
from covprune.decision import PruningDecisionEngine, removal_set
from covprune.model import (
    ClassCoverageReport,
    CoverageStatus,
    Counter,
    GlobalBlacklist,
    Granularity,
    KeepSets,
    MethodCoverageReport,
)
from covprune.mutator import PruningProcessor, provenance_comment
from covprune.pipeline import Phase, PruningPipeline, run
from covprune.trace_loader import TraceLoader

__version__ = "0.1.0"

__all__ = [
    "AggregationPolicy",
    "MergeRule",
    "make_aggregator",
    "CoverageAnalyzer",
    "JacocoCliAnalyzer",
    "parse_jacoco_xml",
    "PruneConfig",
    "load_config",
    "PruningDecisionEngine",
    "removal_set",
    "ClassCoverageReport",
    "CoverageStatus",
    "Counter",
    "GlobalBlacklist",
    "Granularity",
    "KeepSets",
    "MethodCoverageReport",
    "PruningProcessor",
    "provenance_comment",
    "Phase",
    "PruningPipeline",
    "run",
    "TraceLoader",
]
