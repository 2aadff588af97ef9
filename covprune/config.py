"""Run configuration: defaults, YAML loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from covprune.aggregator import AggregationPolicy, MergeRule
from covprune.errors import ConfigError
from covprune.trace_loader import DEFAULT_TRACE_SUFFIX

PATH_FIELDS = ("trace_dir", "classes_dir", "source_root", "output_dir", "jacoco_cli")


@dataclass(frozen=True)
class PruneConfig:
    """Everything one pruning run needs to know."""
    trace_dir: Path = Path("target/site/junco")
    classes_dir: Path = Path("target/classes")
    source_root: Path = Path("src/main/java")
    output_dir: Path = Path("output")
    policy: AggregationPolicy = AggregationPolicy.GLOBAL_BLACKLIST
    merge_rule: MergeRule = MergeRule.LAST_WINS
    trace_suffix: str = DEFAULT_TRACE_SUFFIX
    jacoco_cli: Path = Path("lib/jacococli.jar")
    java: str = "java"
    timeout: Optional[float] = None
    dry_run: bool = False

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> PruneConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls().with_overrides(**data)

    def with_overrides(self, **overrides: Any) -> PruneConfig:
        """Copy with every non-None override applied and values coerced."""
        values = {k: v for k, v in overrides.items() if v is not None}
        for name in PATH_FIELDS:
            if name in values:
                values[name] = Path(values[name])
        if "policy" in values:
            values["policy"] = AggregationPolicy.parse(values["policy"])
        if "merge_rule" in values:
            values["merge_rule"] = MergeRule.parse(values["merge_rule"])
        if "timeout" in values:
            try:
                values["timeout"] = float(values["timeout"])
            except (TypeError, ValueError):
                raise ConfigError(f"Invalid timeout: {values['timeout']!r}") from None
        return replace(self, **values)

    def validate(self) -> PruneConfig:
        if not self.trace_suffix:
            raise ConfigError("trace_suffix must not be empty")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.output_dir.resolve() == self.source_root.resolve():
            raise ConfigError("output_dir must differ from source_root")
        return self


def load_config(path: str | Path) -> PruneConfig:
    """
    Load a configuration file.

    Args:
        path: YAML file whose top-level keys are PruneConfig field names

    Raises:
        ConfigError: if the file is missing, malformed or has unknown keys
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_bytes())
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed config {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")
    return PruneConfig.from_mapping(data)
