"""
GitHub Repository Traffic Statistics

Tracks GitHub repository views and clones. GitHub only keeps the last 14 days
of traffic, so this tool stores every fetched day in a SQLite database and
renders SVG charts from the accumulated history.
"""

__version__ = "1.0.0"

from .database import DatabaseManager
from .github import GitHubTrafficClient
from .ingest import IngestionEngine, IngestReport, OutcomeStatus, RepoOutcome
from .models import DailyMetric, MetricKind

__all__ = [
    "DatabaseManager",
    "GitHubTrafficClient",
    "IngestionEngine",
    "IngestReport",
    "OutcomeStatus",
    "RepoOutcome",
    "DailyMetric",
    "MetricKind",
]
