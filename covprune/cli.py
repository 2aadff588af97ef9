#!/usr/bin/env python3
"""Command line entry point for coverage-driven method pruning."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from loguru import logger

from covprune.aggregator import AggregationPolicy, MergeRule
from covprune.config import PruneConfig, load_config
from covprune.errors import PruneError
from covprune.pipeline import run

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="covprune",
        description="Remove Java methods that the test suite never executed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Policies:
  A  remove every method name reported NOT_COVERED, in every class
  B  per class, keep only the methods covered by some trace
  C  report exercised classes; no method is removed

Examples:
  # Maven layout, per-test traces dumped by Junco
  covprune --traces target/site/junco --classes target/classes \\
           --source src/main/java --output output --policy A

  # Settings from a file, one CLI override
  covprune --config covprune.yaml --merge any-trace
        """,
    )
    parser.add_argument("--config", metavar="FILE", help="YAML file with PruneConfig fields")
    parser.add_argument("--traces", dest="trace_dir", metavar="DIR", help="Directory of .exec trace files")
    parser.add_argument("--classes", dest="classes_dir", metavar="DIR", help="Compiled classes directory")
    parser.add_argument("--source", dest="source_root", metavar="DIR", help="Java source root")
    parser.add_argument("--output", dest="output_dir", metavar="DIR", help="Where the pruned sources are written")
    parser.add_argument("--policy", choices=[p.value for p in AggregationPolicy], type=str.upper,
                        help="Aggregation policy (default: A)")
    parser.add_argument("--merge", dest="merge_rule", choices=[m.value for m in MergeRule],
                        help="How traces of the same class are combined (default: last-wins)")
    parser.add_argument("--suffix", dest="trace_suffix", help="Trace file suffix (default: .exec)")
    parser.add_argument("--jacoco-cli", metavar="JAR", help="Path to jacococli.jar")
    parser.add_argument("--java", help="Java executable (default: java)")
    parser.add_argument("--timeout", type=float, help="Seconds allowed per JaCoCo report")
    parser.add_argument("--dry-run", action="store_true", default=None,
                        help="Analyze and decide, but write nothing")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only warnings and errors")
    parser.add_argument("--verbose", "-v", action="store_true", help="Per-class coverage diagnostics")
    return parser


def configure_logging(quiet: bool = False, verbose: bool = False):
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(message)s")

    logger.remove()
    logger.add(sys.stderr, format="[{level}] {message}", level=logging.getLevelName(level))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.quiet, args.verbose)

    try:
        config = load_config(args.config) if args.config else PruneConfig()
        config = config.with_overrides(
            trace_dir=args.trace_dir,
            classes_dir=args.classes_dir,
            source_root=args.source_root,
            output_dir=args.output_dir,
            policy=args.policy,
            merge_rule=args.merge_rule,
            trace_suffix=args.trace_suffix,
            jacoco_cli=args.jacoco_cli,
            java=args.java,
            timeout=args.timeout,
            dry_run=args.dry_run,
        )
        result = run(config)
    except PruneError as e:
        log.error(f"Error: {e}")
        return 1

    stats = result.stats
    print(f"Classes visited:  {stats.classes_visited}")
    print(f"Classes modified: {stats.classes_modified}")
    print(f"Methods removed:  {stats.methods_removed}")
    if result.written:
        print(f"Output written to {config.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
