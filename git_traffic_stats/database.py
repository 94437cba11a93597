#!/usr/bin/env python3
"""
SQLite storage for accumulated daily traffic history.

One row per (repository, metric kind, day). Re-ingesting a day overwrites
the stored counters, so running a fetch any number of times is safe.
"""

import logging
import sqlite3
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Set

from .errors import StoreError
from .models import DailyMetric, MetricKind

SCHEMA_VERSION = "1.0"

UPSERT_SQL = """
    INSERT INTO traffic_history (repo, kind, day, count, uniques)
    VALUES (?, ?, ?, ?, ?)
    ON CONFLICT (repo, kind, day) DO UPDATE SET
        count = excluded.count,
        uniques = excluded.uniques
"""


class DatabaseManager:
    """Handles all database operations for traffic statistics."""

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self.conn = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        try:
            self.conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.conn:
            self.conn.close()
            self.conn = None

    def setup_database(self):
        """Create the necessary tables if they don't exist."""
        try:
            with self.conn:
                self.conn.execute("""
                    CREATE TABLE IF NOT EXISTS traffic_history (
                        repo TEXT NOT NULL,
                        kind TEXT NOT NULL,
                        day TEXT NOT NULL,
                        count INTEGER NOT NULL,
                        uniques INTEGER NOT NULL,
                        PRIMARY KEY (repo, kind, day)
                    )
                """)
            self.logger.debug("Database setup complete.")
        except sqlite3.Error as e:
            self.logger.error(f"Database setup failed: {e}")
            raise StoreError(f"Database setup failed: {e}") from e

    def _execute_query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute a read query, surfacing failures as StoreError."""
        if self.conn is None:
            raise StoreError("Database is not open")
        try:
            return self.conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Database query failed: {e}")
            raise StoreError(f"Database query failed: {e}") from e

    @staticmethod
    def _row_params(metric: DailyMetric) -> tuple:
        return (metric.repo, metric.kind.value, metric.day.isoformat(), metric.count, metric.uniques)

    def upsert(self, metric: DailyMetric) -> None:
        """Insert or overwrite the record for (repo, kind, day)."""
        self.upsert_many([metric])

    def upsert_many(self, metrics: Iterable[DailyMetric]) -> int:
        """
        Upsert records in a single transaction.

        Either every record is written or, on error, none is.

        Returns:
            Number of records written.
        """
        if self.conn is None:
            raise StoreError("Database is not open")

        rows = [self._row_params(metric) for metric in metrics]
        if not rows:
            return 0

        try:
            with self.conn:
                self.conn.executemany(UPSERT_SQL, rows)
        except sqlite3.Error as e:
            self.logger.error(f"Failed to write traffic records: {e}")
            raise StoreError(f"Failed to write traffic records: {e}") from e

        self.logger.debug(f"Upserted {len(rows)} records.")
        return len(rows)

    def range_query(self, repo: str, kind: MetricKind, from_day: date, to_day: date) -> List[DailyMetric]:
        """Get the records for repo and kind between two days inclusive, ascending by day."""
        rows = self._execute_query(
            "SELECT repo, kind, day, count, uniques FROM traffic_history "
            "WHERE repo = ? AND kind = ? AND day >= ? AND day <= ? ORDER BY day ASC",
            (repo, kind.value, from_day.isoformat(), to_day.isoformat())
        )
        try:
            return [
                DailyMetric(
                    repo=row["repo"],
                    kind=MetricKind(row["kind"]),
                    day=date.fromisoformat(row["day"]),
                    count=row["count"],
                    uniques=row["uniques"],
                )
                for row in rows
            ]
        except (ValueError, KeyError, TypeError) as e:
            self.logger.error(f"Corrupt traffic record for {repo} {kind.value}: {e}")
            raise StoreError(f"Corrupt traffic record for {repo} {kind.value}: {e}") from e

    def list_repositories(self) -> Set[str]:
        """Get every repository that has at least one stored record."""
        rows = self._execute_query("SELECT DISTINCT repo FROM traffic_history")
        return {row["repo"] for row in rows}

    def repo_exists(self, repo: str) -> bool:
        rows = self._execute_query(
            "SELECT 1 FROM traffic_history WHERE repo = ? LIMIT 1",
            (repo,)
        )
        return bool(rows)

    def export_database(self) -> Dict:
        """Export the complete traffic history to a dictionary."""
        rows = self._execute_query(
            "SELECT repo, kind, day, count, uniques FROM traffic_history ORDER BY repo, kind, day"
        )
        export_data = {
            "export_timestamp": datetime.now(timezone.utc).isoformat(),
            "version": SCHEMA_VERSION,
            "traffic_history": [
                {
                    "repo": row["repo"],
                    "kind": row["kind"],
                    "day": row["day"],
                    "count": row["count"],
                    "uniques": row["uniques"],
                }
                for row in rows
            ],
        }
        self.logger.info(f"Database exported with {len(export_data['traffic_history'])} traffic records")
        return export_data
