#!/usr/bin/env python3
"""
Batch chart generation for every repository in the database.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from .chart import ChartRenderer
from .errors import NoDataError, StoreError
from .models import MetricKind

logger = logging.getLogger(__name__)


@dataclass
class RenderFailure:
    repo: str
    kind: MetricKind
    reason: str

    def __str__(self) -> str:
        return f"{self.repo} {self.kind.value}: {self.reason}"


@dataclass
class GenerateSummary:
    """Files written and failures collected over a batch of renders."""
    written: List[Path] = field(default_factory=list)
    failures: List[RenderFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def render_repository(renderer: ChartRenderer, repo: str, days: Optional[int] = None,
                      summary: Optional[GenerateSummary] = None) -> GenerateSummary:
    """Render both metric kinds for one repository, recording failures instead of raising."""
    summary = summary if summary is not None else GenerateSummary()
    for kind in MetricKind:
        try:
            summary.written.append(renderer.render(repo, kind, days))
        except (NoDataError, StoreError, OSError) as e:
            logger.error(f"Error generating {kind.value} chart for {repo}: {e}")
            summary.failures.append(RenderFailure(repo, kind, str(e)))
    return summary


def generate_all(renderer: ChartRenderer, days: Optional[int] = None,
                 repos: Optional[Iterable[str]] = None) -> GenerateSummary:
    """
    Render charts for every repository known to the database.

    A failing repository is recorded and the batch moves on to the next one.
    """
    if repos is None:
        repos = renderer.db_manager.list_repositories()

    summary = GenerateSummary()
    for repo in sorted(repos):
        render_repository(renderer, repo, days, summary)

    logger.info(f"Generated {len(summary.written)} charts, {len(summary.failures)} failures")
    return summary
