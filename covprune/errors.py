"""Exception hierarchy for the pruning pipeline."""

from __future__ import annotations


class PruneError(Exception):
    """Base class for every error raised by covprune."""


class TraceDirectoryNotFoundError(PruneError, FileNotFoundError):
    """The trace directory is missing, so no coverage evidence can be read."""


class TraceFormatError(PruneError, ValueError):
    """A trace file is malformed or incompatible with earlier traces."""


class AnalyzerError(PruneError):
    """The coverage analyzer could not produce a report."""


class PhaseError(PruneError, RuntimeError):
    """An operation was requested in the wrong pipeline phase."""


class ConfigError(PruneError, ValueError):
    """Invalid configuration value or file."""


class SourceTreeError(PruneError):
    """The source tree cannot be read or written."""
