from datetime import date

import pytest

from git_traffic_stats.database import DatabaseManager
from git_traffic_stats.models import DailyMetric, MetricKind


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "github_stats.db")


@pytest.fixture
def db_manager(db_path):
    with DatabaseManager(db_path) as db:
        db.setup_database()
        yield db


@pytest.fixture
def make_metric():
    def _make(day, count=5, uniques=3, repo="acme/widget", kind=MetricKind.VIEWS):
        if isinstance(day, str):
            day = date.fromisoformat(day)
        return DailyMetric(repo=repo, kind=kind, day=day, count=count, uniques=uniques)
    return _make


@pytest.fixture
def views_payload():
    return {
        "count": 5,
        "uniques": 3,
        "views": [
            {"timestamp": "2023-01-01T00:00:00Z", "count": 5, "uniques": 3},
            {"timestamp": "2023-01-02T00:00:00Z", "count": 0, "uniques": 0},
        ],
    }


@pytest.fixture
def clones_payload():
    return {
        "count": 2,
        "uniques": 1,
        "clones": [
            {"timestamp": "2023-01-02T00:00:00Z", "count": 2, "uniques": 1},
        ],
    }
