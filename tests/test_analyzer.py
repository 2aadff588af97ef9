"""Tests for the JaCoCo XML report parser and the CLI-backed analyzer."""

import subprocess
from pathlib import Path

import pytest

from covprune.analyzer import JacocoCliAnalyzer, parse_jacoco_xml
from covprune.errors import AnalyzerError
from covprune.exec_file import ExecutionData, ExecutionDataStore, read_exec_file
from covprune.model import Counter, CoverageStatus

REPORT = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<!DOCTYPE report PUBLIC "-//JACOCO//DTD Report 1.1//EN" "report.dtd">
<report name="JaCoCo Coverage Report">
  <sessioninfo id="host-1" start="1000" dump="2000"/>
  <package name="classes">
    <class name="classes/Calculator" sourcefilename="Calculator.java">
      <method name="&lt;init&gt;" desc="()V" line="3">
        <counter type="INSTRUCTION" missed="0" covered="3"/>
        <counter type="LINE" missed="0" covered="1"/>
        <counter type="COMPLEXITY" missed="0" covered="1"/>
        <counter type="METHOD" missed="0" covered="1"/>
      </method>
      <method name="add" desc="(DD)D" line="6">
        <counter type="INSTRUCTION" missed="0" covered="4"/>
        <counter type="METHOD" missed="0" covered="1"/>
      </method>
      <method name="divide" desc="(DD)D" line="10">
        <counter type="INSTRUCTION" missed="4" covered="0"/>
        <counter type="METHOD" missed="1" covered="0"/>
      </method>
      <method name="abs" desc="(D)D" line="14">
        <counter type="INSTRUCTION" missed="3" covered="5"/>
        <counter type="BRANCH" missed="1" covered="1"/>
        <counter type="METHOD" missed="0" covered="1"/>
      </method>
      <counter type="INSTRUCTION" missed="7" covered="12"/>
      <counter type="BRANCH" missed="1" covered="1"/>
      <counter type="LINE" missed="2" covered="4"/>
      <counter type="COMPLEXITY" missed="2" covered="3"/>
      <counter type="METHOD" missed="1" covered="3"/>
      <counter type="CLASS" missed="0" covered="1"/>
    </class>
    <class name="classes/Calculator$Memory" sourcefilename="Calculator.java">
      <method name="clear" desc="()V" line="20">
        <counter type="INSTRUCTION" missed="2" covered="0"/>
      </method>
      <counter type="INSTRUCTION" missed="2" covered="0"/>
    </class>
    <sourcefile name="Calculator.java">
      <line nr="6" mi="0" ci="4" mb="0" cb="0"/>
    </sourcefile>
  </package>
</report>
"""


class TestParseJacocoXml:

    def test_classes_in_document_order(self):
        reports = parse_jacoco_xml(REPORT)
        assert [r.name for r in reports] == ["classes.Calculator", "classes.Calculator$Memory"]

    def test_method_status_from_instruction_counter(self):
        calculator = parse_jacoco_xml(REPORT)[0]
        statuses = {m.name: m.status for m in calculator.method_reports}
        assert statuses == {
            "<init>": CoverageStatus.FULLY_COVERED,
            "add": CoverageStatus.FULLY_COVERED,
            "divide": CoverageStatus.NOT_COVERED,
            "abs": CoverageStatus.PARTLY_COVERED,
        }
        assert calculator.not_covered_methods == {"divide"}
        assert calculator.covered_methods == {"<init>", "add", "abs"}

    def test_method_descriptor_and_line(self):
        add = parse_jacoco_xml(REPORT)[0].method_reports[1]
        assert add.descriptor == "(DD)D"
        assert add.line == 6

    def test_class_counters(self):
        calculator = parse_jacoco_xml(REPORT)[0]
        assert calculator.instructions == Counter(7, 12)
        assert calculator.branches == Counter(1, 1)
        assert calculator.lines == Counter(2, 4)
        assert calculator.methods == Counter(1, 3)
        assert calculator.complexity == Counter(2, 3)

    def test_missing_counters_are_empty(self):
        memory = parse_jacoco_xml(REPORT)[1]
        assert memory.branches == Counter(0, 0)
        assert memory.branches.status is CoverageStatus.EMPTY
        assert memory.methods.total == 0

    def test_reads_from_path(self, tmp_path):
        path = tmp_path / "report.xml"
        path.write_bytes(REPORT)
        assert len(parse_jacoco_xml(path)) == 2

    def test_malformed_xml(self):
        with pytest.raises(AnalyzerError, match="Cannot read coverage report"):
            parse_jacoco_xml(b"<report><class>")

    def test_wrong_root(self):
        with pytest.raises(AnalyzerError, match="Not a JaCoCo report"):
            parse_jacoco_xml(b"<coverage/>")

    def test_missing_file(self, tmp_path):
        with pytest.raises(AnalyzerError):
            parse_jacoco_xml(tmp_path / "absent.xml")


class TestCounterStatus:

    @pytest.mark.parametrize("missed, covered, status", [
        (0, 0, CoverageStatus.EMPTY),
        (3, 0, CoverageStatus.NOT_COVERED),
        (0, 3, CoverageStatus.FULLY_COVERED),
        (1, 2, CoverageStatus.PARTLY_COVERED),
    ])
    def test_status(self, missed, covered, status):
        assert Counter(missed, covered).status is status

    def test_covered_flag(self):
        assert CoverageStatus.PARTLY_COVERED.covered
        assert CoverageStatus.FULLY_COVERED.covered
        assert not CoverageStatus.NOT_COVERED.covered
        assert not CoverageStatus.EMPTY.covered


@pytest.fixture
def classes_dir(tmp_path):
    path = tmp_path / "classes"
    path.mkdir()
    return path


@pytest.fixture
def cli_jar(tmp_path):
    path = tmp_path / "jacococli.jar"
    path.write_bytes(b"PK")
    return path


@pytest.fixture
def store():
    store = ExecutionDataStore()
    store.put(ExecutionData(1, "classes/Calculator", [True, False]))
    return store


class TestJacocoCliAnalyzer:

    def test_runs_report_and_parses_xml(self, monkeypatch, classes_dir, cli_jar, store):
        seen = {}

        def fake_run(cmd, capture_output, text, timeout):
            seen["cmd"] = cmd
            seen["timeout"] = timeout
            seen["store"] = read_exec_file(Path(cmd[4]))
            Path(cmd[cmd.index("--xml") + 1]).write_bytes(REPORT)
            return subprocess.CompletedProcess(cmd, 0, "", "")

        monkeypatch.setattr(subprocess, "run", fake_run)
        reports = JacocoCliAnalyzer(cli_jar, java="/opt/java", timeout=30).analyze(store, classes_dir)

        cmd = seen["cmd"]
        assert cmd[:4] == ["/opt/java", "-jar", str(cli_jar), "report"]
        assert cmd[cmd.index("--classfiles") + 1] == str(classes_dir)
        assert "--quiet" in cmd
        assert seen["timeout"] == 30
        assert seen["store"].get(1).probes == [True, False]
        assert [r.name for r in reports] == ["classes.Calculator", "classes.Calculator$Memory"]

    def test_nonzero_exit(self, monkeypatch, classes_dir, cli_jar, store):
        monkeypatch.setattr(
            subprocess, "run",
            lambda cmd, **kw: subprocess.CompletedProcess(cmd, 1, "", "Invalid class file\n"),
        )
        with pytest.raises(AnalyzerError, match="exit code 1: Invalid class file"):
            JacocoCliAnalyzer(cli_jar).analyze(store, classes_dir)

    def test_java_not_found(self, monkeypatch, classes_dir, cli_jar, store):
        def fake_run(cmd, **kw):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(subprocess, "run", fake_run)
        with pytest.raises(AnalyzerError, match="Java executable not found"):
            JacocoCliAnalyzer(cli_jar, java="no-such-java").analyze(store, classes_dir)

    def test_timeout(self, monkeypatch, classes_dir, cli_jar, store):
        def fake_run(cmd, **kw):
            raise subprocess.TimeoutExpired(cmd, kw["timeout"])

        monkeypatch.setattr(subprocess, "run", fake_run)
        with pytest.raises(AnalyzerError, match="timed out"):
            JacocoCliAnalyzer(cli_jar, timeout=1).analyze(store, classes_dir)

    def test_missing_classes_dir(self, tmp_path, cli_jar, store):
        with pytest.raises(AnalyzerError, match="Compiled classes directory not found"):
            JacocoCliAnalyzer(cli_jar).analyze(store, tmp_path / "missing")

    def test_missing_cli_jar(self, tmp_path, classes_dir, store):
        with pytest.raises(AnalyzerError, match="JaCoCo CLI jar not found"):
            JacocoCliAnalyzer(tmp_path / "missing.jar").analyze(store, classes_dir)
