"""
Coverage Analyzer boundary.

The analyzer turns one execution-data store plus the compiled classes into
per-class coverage reports. ``JacocoCliAnalyzer`` delegates the bytecode work
to the JaCoCo command line tool and reads back its XML report.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Union

from covprune.errors import AnalyzerError
from covprune.exec_file import ExecutionDataStore, write_exec_file
from covprune.model import (
    EMPTY_COUNTER,
    ClassCoverageReport,
    Counter,
    MethodCoverageReport,
    vm_to_class_name,
)

log = logging.getLogger(__name__)

# XML counter type -> ClassCoverageReport field
COUNTER_TYPES = {
    "INSTRUCTION": "instructions",
    "BRANCH": "branches",
    "LINE": "lines",
    "METHOD": "methods",
    "COMPLEXITY": "complexity",
}


class CoverageAnalyzer(Protocol):
    """Anything that can analyze a store against a compiled-classes directory."""

    def analyze(self, store: ExecutionDataStore, classes_path: Path) -> List[ClassCoverageReport]:
        ...


def _read_counters(element: ET.Element) -> Dict[str, Counter]:
    """Direct ``<counter>`` children of ``element``; absent types count as empty."""
    counters = {name: EMPTY_COUNTER for name in COUNTER_TYPES.values()}
    for counter in element.findall("counter"):
        unit = COUNTER_TYPES.get(counter.get("type", ""))
        if unit is None:
            continue
        try:
            counters[unit] = Counter(int(counter.get("missed", 0)), int(counter.get("covered", 0)))
        except ValueError as e:
            raise AnalyzerError(f"Malformed counter in coverage report: {ET.tostring(counter)!r}") from e
    return counters


def _parse_method(element: ET.Element) -> MethodCoverageReport:
    counters = _read_counters(element)
    line = element.get("line")
    return MethodCoverageReport(
        name=element.get("name", ""),
        status=counters["instructions"].status,
        descriptor=element.get("desc", ""),
        line=int(line) if line and line.isdigit() else 0,
    )


def _parse_class(element: ET.Element) -> ClassCoverageReport:
    counters = _read_counters(element)
    return ClassCoverageReport(
        name=vm_to_class_name(element.get("name", "")),
        method_reports=tuple(_parse_method(m) for m in element.findall("method")),
        **counters,
    )


def parse_jacoco_xml(source: Union[str, Path, bytes]) -> List[ClassCoverageReport]:
    """
    Parse a JaCoCo XML report.

    Args:
        source: Path to the report, or the report content as bytes

    Returns:
        One ClassCoverageReport per ``<class>`` element, in document order
    """
    try:
        if isinstance(source, bytes):
            root = ET.fromstring(source)
        else:
            root = ET.parse(source).getroot()
    except (ET.ParseError, OSError) as e:
        raise AnalyzerError(f"Cannot read coverage report: {e}") from e

    if root.tag != "report":
        raise AnalyzerError(f"Not a JaCoCo report (root element <{root.tag}>)")
    return [_parse_class(c) for c in root.iter("class")]


class JacocoCliAnalyzer:
    """
    Runs ``jacococli.jar report`` on a temporary dump of the store.

    Every class found below ``classes_path`` is reported, touched by the
    trace or not, which is what lets untouched classes show up as
    NOT_COVERED.
    """

    def __init__(self, jacoco_cli: str | Path, java: str = "java", timeout: Optional[float] = None):
        self.jacoco_cli = Path(jacoco_cli)
        self.java = java
        self.timeout = timeout

    def command(self, exec_file: Path, classes_path: Path, xml_file: Path) -> Sequence[str]:
        return [
            self.java, "-jar", str(self.jacoco_cli),
            "report", str(exec_file),
            "--classfiles", str(classes_path),
            "--xml", str(xml_file),
            "--quiet",
        ]

    def analyze(self, store: ExecutionDataStore, classes_path: Path) -> List[ClassCoverageReport]:
        classes_path = Path(classes_path)
        if not classes_path.is_dir():
            raise AnalyzerError(f"Compiled classes directory not found: {classes_path.absolute()}")
        if not self.jacoco_cli.is_file():
            raise AnalyzerError(f"JaCoCo CLI jar not found: {self.jacoco_cli}")

        with tempfile.TemporaryDirectory(prefix="covprune-") as tmp:
            exec_file = Path(tmp) / "merged.exec"
            xml_file = Path(tmp) / "report.xml"
            write_exec_file(exec_file, store)

            cmd = self.command(exec_file, classes_path, xml_file)
            log.debug("run %s", " ".join(cmd))
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
            except FileNotFoundError as e:
                raise AnalyzerError(f"Java executable not found: {self.java}") from e
            except subprocess.TimeoutExpired as e:
                raise AnalyzerError(f"JaCoCo report timed out after {self.timeout}s") from e

            if result.returncode != 0:
                raise AnalyzerError(
                    f"JaCoCo report failed with exit code {result.returncode}: {result.stderr.strip()}"
                )
            return parse_jacoco_xml(xml_file)
