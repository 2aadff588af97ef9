"""Shared fixtures: trace writers and a probe-table analyzer standing in for JaCoCo."""

import zlib
from pathlib import Path
from typing import Dict, List

import pytest

from covprune.exec_file import ExecutionData, ExecutionDataStore, SessionInfo, write_exec_file
from covprune.model import (
    ClassCoverageReport,
    Counter,
    CoverageStatus,
    MethodCoverageReport,
    vm_to_class_name,
)


def class_id(vm_name: str) -> int:
    return zlib.crc32(vm_name.encode())


class ProbeTableAnalyzer:
    """
    Reports coverage from a fixed table ``{vm class name: {method: probe index}}``.

    A method is FULLY_COVERED when its probe was hit, NOT_COVERED otherwise.
    Every class in the table is reported, hit or not, like JaCoCo does.
    """

    def __init__(self, table: Dict[str, Dict[str, int]]):
        self.table = table
        self.calls: List[Path] = []

    def analyze(self, store, classes_path):
        self.calls.append(Path(classes_path))
        by_name = {data.name: data for data in store}
        reports = []
        for vm_name, methods in self.table.items():
            data = by_name.get(vm_name)
            method_reports = []
            covered = 0
            for method, probe in methods.items():
                hit = data is not None and probe < len(data.probes) and data.probes[probe]
                covered += 1 if hit else 0
                status = CoverageStatus.FULLY_COVERED if hit else CoverageStatus.NOT_COVERED
                method_reports.append(MethodCoverageReport(method, status))
            missed = len(methods) - covered
            reports.append(ClassCoverageReport(
                name=vm_to_class_name(vm_name),
                instructions=Counter(missed * 3, covered * 3),
                methods=Counter(missed, covered),
                method_reports=tuple(method_reports),
            ))
        return reports


@pytest.fixture
def write_trace():
    """Write an .exec file from ``{vm class name: [probe, ...]}``."""

    def _write(path: Path, classes: Dict[str, List[bool]], session: str = "test") -> Path:
        store = ExecutionDataStore()
        store.add_session(SessionInfo(session, 1_000, 2_000))
        for vm_name, probes in classes.items():
            store.put(ExecutionData(class_id(vm_name), vm_name, list(probes)))
        write_exec_file(path, store)
        return path

    return _write


@pytest.fixture
def probe_analyzer():
    return ProbeTableAnalyzer


@pytest.fixture
def calculator_table():
    """Probe table for a calculator class and an unrelated helper class."""
    return {
        "classes/Calculator": {"add": 0, "substract": 1, "multiply": 2, "divide": 3},
        "classes/Helper": {"add": 0, "format": 1},
    }
