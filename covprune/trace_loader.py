"""Trace Loader: turns a directory of .exec files into execution-data stores."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Tuple

from covprune.errors import TraceDirectoryNotFoundError
from covprune.exec_file import ExecutionDataStore, read_exec_file, summarize

log = logging.getLogger(__name__)

DEFAULT_TRACE_SUFFIX = ".exec"


class TraceLoader:
    """
    Enumerates the trace files of one directory.

    The directory is checked on construction so a missing path fails before
    any analysis starts; an empty coverage view would otherwise authorize the
    removal of everything.
    """

    def __init__(self, trace_dir: str | Path, suffix: str = DEFAULT_TRACE_SUFFIX):
        self.trace_dir = Path(trace_dir)
        self.suffix = suffix
        if not self.trace_dir.exists():
            raise TraceDirectoryNotFoundError(f"Trace directory not found: {self.trace_dir.absolute()}")
        if not self.trace_dir.is_dir():
            raise TraceDirectoryNotFoundError(f"Trace path is not a directory: {self.trace_dir.absolute()}")

    def iter_trace_files(self) -> Iterator[Path]:
        """Yield matching regular files in name order; everything else is skipped."""
        for entry in sorted(self.trace_dir.iterdir()):
            if not entry.is_file() or not entry.name.endswith(self.suffix):
                log.debug("skip %s", entry.name)
                continue
            yield entry

    def load(self, path: Path) -> ExecutionDataStore:
        store = read_exec_file(path)
        classes, hit = summarize(store)
        log.info("Loaded %s: %d classes, %d with probe hits", path.name, classes, hit)
        log.debug("%s: %s", path.name, ", ".join(store.names()))
        return store

    def load_each(self) -> List[Tuple[Path, ExecutionDataStore]]:
        """One fresh store per trace file."""
        return [(path, self.load(path)) for path in self.iter_trace_files()]

    def load_merged(self) -> ExecutionDataStore:
        """A single store holding every trace file, probes OR-ed together."""
        merged = ExecutionDataStore()
        for path in self.iter_trace_files():
            merged.update(self.load(path))
        return merged
