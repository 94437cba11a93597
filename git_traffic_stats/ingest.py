#!/usr/bin/env python3
"""
Ingestion of GitHub traffic into the local history database.

Each configured repository is fetched for every metric kind and merged into
the store by upsert. One repository failing never stops the others; the
outcome of every repository is collected into an IngestReport.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .database import DatabaseManager
from .errors import FetchError, StoreError
from .github import GitHubTrafficClient
from .models import DailyMetric, MetricKind


class OutcomeStatus(Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass
class RepoOutcome:
    """Result of ingesting one repository."""
    status: OutcomeStatus
    written: int = 0
    reason: Optional[str] = None

    def __str__(self) -> str:
        if self.status is OutcomeStatus.UPDATED:
            return f"updated ({self.written} records)"
        if self.status is OutcomeStatus.FAILED:
            return f"failed: {self.reason}"
        return "unchanged"


@dataclass
class IngestReport:
    """Outcome per repository, in processing order."""
    outcomes: Dict[str, RepoOutcome] = field(default_factory=dict)

    @property
    def failures(self) -> Dict[str, RepoOutcome]:
        return {repo: outcome for repo, outcome in self.outcomes.items()
                if outcome.status is OutcomeStatus.FAILED}

    @property
    def ok(self) -> bool:
        return not self.failures


class IngestionEngine:
    """Fetches traffic for repositories and merges it into the database."""

    def __init__(self, client: GitHubTrafficClient, db_manager: DatabaseManager,
                 kinds: Iterable[MetricKind] = tuple(MetricKind)):
        self.client = client
        self.db_manager = db_manager
        self.kinds = list(kinds)
        self.logger = logging.getLogger(__name__)

    def _fetch_repository(self, repo: str) -> List[DailyMetric]:
        """Fetch every metric kind; all must succeed before anything is written."""
        metrics = []
        for kind in self.kinds:
            self.logger.info(f"Fetching {kind.value} for {repo}...")
            fetched = self.client.fetch(repo, kind)
            self.logger.debug(f"GitHub returned {len(fetched)} days of {kind.value} for {repo}")
            metrics.extend(fetched)
        return metrics

    def ingest_repository(self, repo: str) -> RepoOutcome:
        """Update the stored history for a single repository."""
        try:
            metrics = self._fetch_repository(repo)
        except FetchError as e:
            self.logger.error(f"Failed to fetch {repo}: {e}")
            return RepoOutcome(OutcomeStatus.FAILED, reason=str(e))

        if not metrics:
            self.logger.info(f"No traffic reported for {repo}")
            return RepoOutcome(OutcomeStatus.UNCHANGED)

        for metric in metrics:
            self.logger.debug(f"{repo} {metric.kind.value}: {metric}")

        # Days already stored are overwritten too; upsert makes that idempotent
        try:
            written = self.db_manager.upsert_many(metrics)
        except StoreError as e:
            self.logger.error(f"Failed to store {repo}: {e}")
            return RepoOutcome(OutcomeStatus.FAILED, reason=str(e))

        self.logger.info(f"Update for {repo} completed: {written} records written")
        return RepoOutcome(OutcomeStatus.UPDATED, written=written)

    def ingest(self, repos: Iterable[str]) -> IngestReport:
        """Update all repositories in the given order, each one once."""
        report = IngestReport()
        for repo in dict.fromkeys(repos):
            report.outcomes[repo] = self.ingest_repository(repo)

        self.logger.info(
            f"Finished updating {len(report.outcomes)} repositories, "
            f"{len(report.failures)} failed"
        )
        return report
