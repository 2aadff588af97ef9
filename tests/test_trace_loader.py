"""Tests for trace directory enumeration and loading."""

import pytest

from covprune.errors import PruneError, TraceDirectoryNotFoundError
from covprune.trace_loader import TraceLoader


class TestTraceLoader:

    def test_missing_directory_fails_fast(self, tmp_path):
        with pytest.raises(TraceDirectoryNotFoundError) as excinfo:
            TraceLoader(tmp_path / "nope")
        assert isinstance(excinfo.value, FileNotFoundError)
        assert isinstance(excinfo.value, PruneError)

    def test_file_instead_of_directory(self, tmp_path):
        path = tmp_path / "file.exec"
        path.write_bytes(b"")
        with pytest.raises(TraceDirectoryNotFoundError, match="not a directory"):
            TraceLoader(path)

    def test_skips_non_matching_entries(self, tmp_path, write_trace):
        write_trace(tmp_path / "b.exec", {"A": [True]})
        write_trace(tmp_path / "a.exec", {"A": [False]})
        (tmp_path / "notes.txt").write_text("ignore me")
        (tmp_path / "nested.exec").mkdir()

        names = [p.name for p in TraceLoader(tmp_path).iter_trace_files()]

        assert names == ["a.exec", "b.exec"]

    def test_custom_suffix(self, tmp_path, write_trace):
        write_trace(tmp_path / "run.cov", {"A": [True]})
        write_trace(tmp_path / "run.exec", {"A": [True]})
        names = [p.name for p in TraceLoader(tmp_path, suffix=".cov").iter_trace_files()]
        assert names == ["run.cov"]

    def test_empty_directory(self, tmp_path):
        loader = TraceLoader(tmp_path)
        assert loader.load_each() == []
        assert len(loader.load_merged()) == 0

    def test_load_each_gives_one_store_per_file(self, tmp_path, write_trace):
        write_trace(tmp_path / "t1.exec", {"A": [True, False]})
        write_trace(tmp_path / "t2.exec", {"A": [False, True], "B": [True]})

        loaded = TraceLoader(tmp_path).load_each()

        assert [p.name for p, _ in loaded] == ["t1.exec", "t2.exec"]
        first, second = (store for _, store in loaded)
        assert first is not second
        assert first.names() == ["A"]
        assert second.names() == ["A", "B"]

    def test_load_merged_ors_probes(self, tmp_path, write_trace):
        write_trace(tmp_path / "t1.exec", {"A": [True, False]})
        write_trace(tmp_path / "t2.exec", {"A": [False, True]})

        merged = TraceLoader(tmp_path).load_merged()

        (data,) = list(merged)
        assert data.probes == [True, True]
        assert len(merged.sessions) == 2
