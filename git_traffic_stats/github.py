#!/usr/bin/env python3
"""
GitHub REST API client for repository traffic statistics.

GitHub only exposes the last 14 days of traffic, so every response is
cached for an hour and handed to the ingestion engine for permanent storage.
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

import requests

from .cache import ResponseCache
from .errors import FetchError
from .models import DailyMetric, MetricKind

API_BASE = "https://api.github.com"


class GitHubTrafficClient:
    """Fetches daily views and clones for repositories."""

    # Pause before every network request so the API is not flooded
    RATE_LIMIT = 0.3

    HTTP_TIMEOUT = 30

    # Repositories per page when listing a user's repositories
    PER_PAGE = 100

    def __init__(self, github_token: str, cache: Optional[ResponseCache] = None,
                 rate_limit: float = RATE_LIMIT, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the API client.

        Args:
            github_token: GitHub Personal Access Token
            cache: Response cache consulted before the network; None disables caching
            rate_limit: Seconds to sleep before each request
            clock: Returns the current UTC time; injectable for tests
        """
        self.cache = cache
        self.rate_limit = rate_limit
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {github_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "git-traffic-stats",
        })
        self.logger = logging.getLogger(__name__)

    def _get(self, url: str, **kwargs) -> requests.Response:
        if self.rate_limit:
            time.sleep(self.rate_limit)
        response = self.session.get(url, timeout=self.HTTP_TIMEOUT, **kwargs)
        response.raise_for_status()
        return response

    def _fetch_traffic_body(self, repo: str, kind: MetricKind) -> str:
        """Return the raw traffic response body, from the cache when it is fresh."""
        now = self.clock()
        if self.cache is not None:
            body = self.cache.load(repo, kind, now)
            if body is not None:
                return body

        url = f"{API_BASE}/repos/{repo}/traffic/{kind.value}"
        self.logger.debug(f"Requesting {url}")
        try:
            response = self._get(url, params={"per": "day"})
        except requests.RequestException as e:
            raise FetchError(repo, e, kind) from e

        body = response.text
        if not body:
            raise FetchError(repo, "empty response body", kind)

        if self.cache is not None:
            try:
                self.cache.store(repo, kind, body, now)
            except OSError as e:
                self.logger.warning(f"Could not cache {kind.value} for {repo}: {e}")
        return body

    def fetch(self, repo: str, kind: MetricKind) -> List[DailyMetric]:
        """
        Fetch the daily counters GitHub reports for the trailing 14 days.

        Args:
            repo: Repository in 'owner/name' form
            kind: Views or clones

        Raises:
            FetchError: on network, authentication or payload errors
        """
        body = self._fetch_traffic_body(repo, kind)
        try:
            payload = json.loads(body)
            entries = payload[kind.value]
            return [DailyMetric.from_github_entry(repo, kind, entry) for entry in entries]
        except (ValueError, KeyError, TypeError) as e:
            raise FetchError(repo, f"malformed response: {e}", kind) from e

    def list_user_repositories(self, user: str) -> List[str]:
        """List 'owner/name' for every repository of a user, following pagination."""
        repos = []
        url = f"{API_BASE}/users/{user}/repos"
        params = {"type": "all", "sort": "created", "direction": "asc", "per_page": self.PER_PAGE}

        while url:
            try:
                response = self._get(url, params=params)
                page = response.json()
                repos.extend(item["full_name"] for item in page)
            except requests.RequestException as e:
                raise FetchError(user, e) from e
            except (ValueError, KeyError, TypeError) as e:
                raise FetchError(user, f"malformed repository listing: {e}") from e

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None

        self.logger.info(f"Found {len(repos)} repositories for {user}")
        return repos
