"""Configuration loading and management."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml


@dataclass
class MatcherConfig:
    """Weights and thresholds for ranking single commands."""

    command_type_prefix_weight: int = 50
    command_type_contains_weight: int = 25
    action_weight: int = 30
    keyword_weight: int = 10
    fuzzy_max_bonus: int = 5
    fuzzy_max_distance: int = 2
    recency_window_days: int = 7
    recency_max_bonus: int = 5
    min_score: int = 5
    strong_match_score: int = 80
    strong_match_ratio: float = 0.6


@dataclass
class ChainConfig:
    """Time window and scoring constants for chain detection."""

    lookback: int = 10
    max_gap_ms: int = 5 * 60 * 1000
    window_sizes: tuple[int, ...] = (3, 2)
    fetch_limit: int = 50
    min_count: int = 2
    strict_match_score: int = 100
    loose_match_score: int = 50
    count_weight: int = 10
    outcome_bonus: int = 20


@dataclass
class Config:
    db_path: Path = field(default_factory=lambda: Path.home() / ".repty" / "history.db")
    log_dir: Path = field(default_factory=lambda: Path.home() / ".repty" / "logs")
    max_results: int = 50
    exclude_patterns: list[str] = field(
        default_factory=lambda: [
            # Sensitive data
            "password",
            "token",
            "secret",
            "api_key",
            "apikey",
            # repty itself
            "repty ",
        ]
    )
    matcher: MatcherConfig = field(default_factory=MatcherConfig)
    chains: ChainConfig = field(default_factory=ChainConfig)


def expand_path(path_str: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expandvars(os.path.expanduser(path_str)))


def _load_section(cls: type, data: dict[str, Any] | None) -> Any:
    """Build a config dataclass from a YAML mapping, ignoring unknown keys."""
    data = data or {}
    known = {f.name for f in fields(cls)}
    values = {key: value for key, value in data.items() if key in known}
    if "window_sizes" in values:
        values["window_sizes"] = tuple(values["window_sizes"])
    return cls(**values)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config in standard locations
        search_paths = [
            Path.cwd() / "repty.yaml",
            Path.home() / ".config" / "repty" / "config.yaml",
            Path.home() / ".repty" / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = path
                break

    if config_path is None or not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    defaults = Config()
    exclude_patterns = data.get("exclude_patterns")
    if exclude_patterns is None:
        exclude_patterns = defaults.exclude_patterns

    return Config(
        db_path=expand_path(data["db_path"]) if "db_path" in data else defaults.db_path,
        log_dir=expand_path(data["log_dir"]) if "log_dir" in data else defaults.log_dir,
        max_results=data.get("max_results", defaults.max_results),
        exclude_patterns=list(exclude_patterns),
        matcher=_load_section(MatcherConfig, data.get("matcher")),
        chains=_load_section(ChainConfig, data.get("chains")),
    )


def should_exclude_command(command: str, config: Config) -> bool:
    """Check whether a command matches any exclude pattern (case-insensitive)."""
    cmd_lower = command.lower()
    return any(pattern.lower() in cmd_lower for pattern in config.exclude_patterns)
