#!/usr/bin/env python3
"""
Data models for GitHub repository traffic statistics.

Contains the core data classes used throughout the application.
"""

import warnings
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from .errors import DataQualityWarning


class MetricKind(Enum):
    """The two traffic counters GitHub exposes per repository."""
    VIEWS = "views"
    CLONES = "clones"

    @property
    def title(self) -> str:
        return self.value.capitalize()


def parse_github_date(timestamp: str) -> date:
    """Parse a GitHub traffic timestamp such as '2023-03-26T00:00:00Z' into a UTC day."""
    return datetime.strptime(timestamp, "%Y-%m-%dT%H:%M:%SZ").date()


@dataclass(frozen=True)
class DailyMetric:
    """One day of traffic for a repository and metric kind."""
    repo: str
    kind: MetricKind
    day: date
    count: int
    uniques: int

    def __post_init__(self):
        if self.count < 0 or self.uniques < 0:
            raise ValueError(f"negative counter for {self.repo} {self.kind.value} {self.day}")
        if self.uniques > self.count:
            raise ValueError(
                f"uniques ({self.uniques}) exceed count ({self.count}) "
                f"for {self.repo} {self.kind.value} {self.day}"
            )

    def __str__(self) -> str:
        return f"{self.day.isoformat()} {self.count} {self.uniques}"

    @classmethod
    def from_github_entry(cls, repo: str, kind: MetricKind, entry: Dict) -> 'DailyMetric':
        """
        Create a DailyMetric from a GitHub API response entry.

        A day reporting more unique visitors than events is clamped to the
        event count and a DataQualityWarning is emitted.
        """
        day = parse_github_date(entry["timestamp"])
        count = int(entry["count"])
        uniques = int(entry["uniques"])

        if uniques > count:
            warnings.warn(
                f"{repo} {kind.value} {day.isoformat()}: uniques {uniques} > count {count}, "
                f"clamping uniques to {count}",
                DataQualityWarning,
                stacklevel=2,
            )
            uniques = count

        return cls(repo=repo, kind=kind, day=day, count=count, uniques=uniques)


@dataclass
class ChartSeries:
    """Per-day totals for one repository and kind; None marks a day with no stored record."""
    repo: str
    kind: MetricKind
    days: List[date] = field(default_factory=list)
    counts: List[Optional[int]] = field(default_factory=list)
    uniques: List[Optional[int]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return all(value is None for value in self.counts)

    def max_value(self) -> int:
        observed = [v for v in self.counts + self.uniques if v is not None]
        return max(observed) if observed else 0

    def total(self, values: List[Optional[int]]) -> int:
        return sum(v for v in values if v is not None)
