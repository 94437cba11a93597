#!/usr/bin/env python3
"""
Exception types shared across the fetch, store and chart layers.
"""

from typing import Optional


class ConfigError(Exception):
    """Configuration could not be loaded or is incomplete."""


class FetchError(Exception):
    """Traffic data for a repository could not be retrieved from GitHub."""

    def __init__(self, repo: str, cause, kind=None):
        self.repo = repo
        self.kind = kind
        self.cause = cause
        what = f"{kind.value} for {repo}" if kind is not None else repo
        super().__init__(f"Error fetching {what}: {cause}")


class StoreError(Exception):
    """The local statistics database failed a read or write."""


class NoDataError(Exception):
    """A chart window contains no stored records at all."""

    def __init__(self, repo: str, kind, message: Optional[str] = None):
        self.repo = repo
        self.kind = kind
        super().__init__(message or f"No {kind.value} data for {repo} in the requested window")


class DataQualityWarning(UserWarning):
    """GitHub returned values that had to be sanitized before storing."""
