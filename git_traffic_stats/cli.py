#!/usr/bin/env python3
"""
Command-line interface for git-traffic-stats.
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from .cache import ResponseCache
from .chart import ChartRenderer
from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .database import DatabaseManager
from .errors import ConfigError, FetchError, StoreError
from .github import GitHubTrafficClient
from .ingest import IngestionEngine
from .report import generate_all, render_repository

logger = logging.getLogger(__name__)


def setup_logging(verbosity: int = 0) -> None:
    """Quiet by default, -v for progress, -vv for per-record detail."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )
    logging.captureWarnings(True)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="git-traffic-stats",
        description="Collect GitHub repository traffic into a local database and chart it"
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Be verbose (repeat for debug output)")
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH,
                        help=f"Config file (default: {DEFAULT_CONFIG_PATH})")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("fetch", help="Fetch traffic statistics from GitHub to the local database")
    subparsers.add_parser("list-repos", help="List repositories found in the local database")

    stats_parser = subparsers.add_parser("stats", help="Generate charts for one repository")
    stats_parser.add_argument("repo", help="Repository, 'owner/name' or a name owned by github.user")
    stats_parser.add_argument("-d", "--days", type=int, default=None,
                              help="Days to chart (default: chart.days from config)")

    generate_parser = subparsers.add_parser("generate", help="Generate charts for all repositories")
    generate_parser.add_argument("-d", "--days", type=int, default=None,
                                 help="Days to chart (default: chart.days from config)")

    export_parser = subparsers.add_parser("export", help="Export the traffic history as JSON")
    export_parser.add_argument("-o", "--output", default=None,
                               help="Output file (default: stdout)")

    return parser


def _print_failures(failures: Iterable[str]) -> None:
    print("Failures:", file=sys.stderr)
    for failure in failures:
        print(f"  {failure}", file=sys.stderr)


def _require_database(config: Config) -> bool:
    if not Path(config.db_path).exists():
        print(f"Missing database file {config.db_path}, run 'fetch' first", file=sys.stderr)
        return False
    return True


def run_fetch(config: Config) -> int:
    """Fetch traffic for the configured repositories into the database."""
    client = GitHubTrafficClient(config.github_token, cache=ResponseCache(config.cache_dir))
    Path(config.db_path).parent.mkdir(parents=True, exist_ok=True)

    with DatabaseManager(config.db_path) as db_manager:
        db_manager.setup_database()

        repos = config.repositories
        if repos is None:
            if not config.github_user:
                print("No repositories configured: set github.repositories or github.user", file=sys.stderr)
                return 1
            logger.info(f"Fetching repository list for https://github.com/{config.github_user}")
            try:
                repos = client.list_user_repositories(config.github_user)
            except FetchError as e:
                print(f"Error listing repositories: {e}", file=sys.stderr)
                return 1

        report = IngestionEngine(client, db_manager).ingest(repos)

    for repo, outcome in report.outcomes.items():
        logger.info(f"{repo}: {outcome}")

    if not report.ok:
        _print_failures(f"{repo}: {outcome.reason}" for repo, outcome in report.failures.items())
        return 1
    return 0


def format_repo_table(repos: Iterable[str]) -> List[str]:
    """Aligned owner, name and URL columns, one line per repository."""
    rows = []
    for repo in sorted(repos):
        owner, _, name = repo.rpartition("/")
        rows.append([owner, name, f"https://github.com/{repo}"])

    if not rows:
        return []

    widths = [max(len(row[i]) for row in rows) for i in range(3)]
    return [
        f"{row[0]:<{widths[0]}} {row[1]:>{widths[1]}} {row[2]}"
        for row in rows
    ]


def run_list_repos(config: Config) -> int:
    if not _require_database(config):
        return 1
    with DatabaseManager(config.db_path) as db_manager:
        repos = db_manager.list_repositories()
    for line in format_repo_table(repos):
        print(line)
    return 0


def run_stats(config: Config, repo: str, days: Optional[int], today: date) -> int:
    """Render both charts for a single repository."""
    if not _require_database(config):
        return 1
    try:
        repo = config.qualify(repo)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 1

    with DatabaseManager(config.db_path) as db_manager:
        if not db_manager.repo_exists(repo):
            print(f"Repository {repo} doesn't exist in local database", file=sys.stderr)
            return 1
        renderer = ChartRenderer(db_manager, config.charts_dir, days=config.days, today=today)
        summary = render_repository(renderer, repo, days)

    if not summary.ok:
        _print_failures(str(failure) for failure in summary.failures)
        return 1
    return 0


def run_generate(config: Config, days: Optional[int], today: date) -> int:
    """Render charts for every repository in the database."""
    if not _require_database(config):
        return 1
    with DatabaseManager(config.db_path) as db_manager:
        renderer = ChartRenderer(db_manager, config.charts_dir, days=config.days, today=today)
        summary = generate_all(renderer, days)

    if not summary.ok:
        _print_failures(str(failure) for failure in summary.failures)
        return 1
    return 0


def run_export(config: Config, output: Optional[str]) -> int:
    if not _require_database(config):
        return 1
    with DatabaseManager(config.db_path) as db_manager:
        export_data = db_manager.export_database()

    text = json.dumps(export_data, indent=2)
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logger.info(f"Exported {len(export_data['traffic_history'])} records to {output}")
    else:
        print(text)
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if getattr(args, "days", None) is not None and args.days < 1:
        parser.error("--days must be at least 1")

    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    # One reference day for the whole run, even if it crosses midnight
    today = datetime.now(timezone.utc).date()

    try:
        if args.command == "fetch":
            return run_fetch(config)
        elif args.command == "list-repos":
            return run_list_repos(config)
        elif args.command == "stats":
            return run_stats(config, args.repo, args.days, today)
        elif args.command == "generate":
            return run_generate(config, args.days, today)
        elif args.command == "export":
            return run_export(config, args.output)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except StoreError as e:
        print(f"Database error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
