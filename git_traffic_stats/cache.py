#!/usr/bin/env python3
"""
On-disk cache for raw GitHub traffic responses.

Each (repository, metric kind) pair owns one JSON file holding the raw
response body and the UTC time it was fetched. Entries older than
MAX_AGE are ignored and refetched. The cache is never authoritative: the
whole directory can be deleted at any time.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from .models import MetricKind

MAX_AGE = timedelta(hours=1)

logger = logging.getLogger(__name__)


def is_fresh(cached_at: datetime, now: datetime, max_age: timedelta = MAX_AGE) -> bool:
    """Return True if an entry fetched at cached_at may still be served at now."""
    age = now - cached_at
    return timedelta(0) <= age < max_age


def atomic_write(target: Path, data: bytes) -> None:
    """Write data to a temporary file beside target, then move it into place."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=".tmp.", suffix=target.suffix, dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise


class ResponseCache:
    """Retrieve-or-fetch store for raw API response bodies."""

    def __init__(self, cache_dir, max_age: timedelta = MAX_AGE):
        self.cache_dir = Path(cache_dir)
        self.max_age = max_age

    def path_for(self, repo: str, kind: MetricKind) -> Path:
        owner, _, name = repo.partition("/")
        return self.cache_dir / "repos" / owner / f"{name or owner}_{kind.value}.json"

    def load(self, repo: str, kind: MetricKind, now: Optional[datetime] = None) -> Optional[str]:
        """Return the cached response body, or None on a miss or stale entry."""
        path = self.path_for(repo, kind)
        if not path.exists():
            return None

        now = now or datetime.now(timezone.utc)
        try:
            with open(path, "r", encoding="utf-8") as f:
                entry = json.load(f)
            cached_at = datetime.fromisoformat(entry["fetched_at"])
            body = entry["body"]
            # a naive timestamp can't be compared with now
            fresh = is_fresh(cached_at, now, self.max_age)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cache entry {path}: {e}")
            return None

        if not fresh:
            logger.debug(f"Cache entry {path} is stale (fetched {cached_at.isoformat()})")
            return None

        logger.debug(f"Cache hit for {repo} {kind.value}")
        return body

    def store(self, repo: str, kind: MetricKind, body: str, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        entry = {"fetched_at": now.isoformat(), "body": body}
        atomic_write(self.path_for(repo, kind), json.dumps(entry).encode("utf-8"))
