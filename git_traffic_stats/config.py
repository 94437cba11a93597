#!/usr/bin/env python3
"""
Configuration loading from a TOML file.

The GitHub token may also come from the GITHUB_TOKEN environment variable,
which takes precedence over the file.
"""

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional

from .chart import DEFAULT_DAYS
from .errors import ConfigError

DEFAULT_CONFIG_PATH = "config.toml"


@dataclass(frozen=True)
class Config:
    github_token: str
    github_user: Optional[str] = None
    # None means "discover from github_user"; an empty list tracks nothing
    repositories: Optional[List[str]] = None
    db_path: str = "github_stats.db"
    charts_dir: str = "stats"
    cache_dir: str = "cache"
    days: int = DEFAULT_DAYS

    def qualify(self, repo: str) -> str:
        """Turn a short repository name into 'owner/name' using the configured user."""
        repo = repo.strip()
        if "/" in repo:
            return repo
        if not self.github_user:
            raise ConfigError(f"Repository '{repo}' has no owner and github.user is not set")
        return f"{self.github_user}/{repo}"


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _typed(section: dict, section_name: str, key: str, expected: type, default=None):
    value = section.get(key, default)
    if value is not None and not isinstance(value, expected):
        raise ConfigError(f"{section_name}.{key} must be of type {expected.__name__}")
    return value


def load_config(path=DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate configuration; any problem is a ConfigError."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Couldn't find config file {path}")
    if path.is_dir():
        raise ConfigError(f"Config {path} must be a file")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Config file error in {path}: {e}") from e

    github = _section(data, "github")
    database = _section(data, "database")
    output = _section(data, "output")
    chart = _section(data, "chart")

    token = os.environ.get("GITHUB_TOKEN", "").strip() or _typed(github, "github", "token", str, "").strip()
    if not token:
        raise ConfigError("No GitHub token: set github.token or the GITHUB_TOKEN environment variable")

    user = _typed(github, "github", "user", str) or None
    repositories = _typed(github, "github", "repositories", list)
    if repositories is not None and not all(isinstance(r, str) and r.strip() for r in repositories):
        raise ConfigError("github.repositories must be a list of non-empty strings")

    days = _typed(chart, "chart", "days", int, DEFAULT_DAYS)
    if days < 1:
        raise ConfigError("chart.days must be at least 1")

    config = Config(
        github_token=token,
        github_user=user,
        db_path=_typed(database, "database", "filename", str, "github_stats.db"),
        charts_dir=_typed(output, "output", "charts_dir", str, "stats"),
        cache_dir=_typed(output, "output", "cache_dir", str, "cache"),
        days=days,
    )
    if repositories is not None:
        # Qualify eagerly so a short name without a user fails at startup
        qualified = dict.fromkeys(config.qualify(r) for r in repositories)
        config = replace(config, repositories=list(qualified))
    return config
