"""Human-readable coverage diagnostics, emitted through loguru."""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from covprune.model import ClassCoverageReport


def format_counter(unit: str, missed: int, total: int) -> str:
    return f"{missed} of {total} {unit} missed"


def log_class_report(report: ClassCoverageReport) -> None:
    """Per-method status followed by the five counter pairs."""
    logger.debug("Analyzing class: {}", report.name)
    for method in report.method_reports:
        logger.debug("Analyzing method: {}", method.name)
        logger.debug("  ===> {}", method.status.name)

    logger.debug("=== SUMMARY === {}", report.name)
    for unit, counter in report.counters():
        logger.debug(format_counter(unit, counter.missed, counter.total))


def log_reports(reports: Iterable[ClassCoverageReport]) -> None:
    for report in reports:
        log_class_report(report)
