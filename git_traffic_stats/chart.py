#!/usr/bin/env python3
"""
SVG charts of daily traffic history.

A chart covers a trailing window of days ending today (UTC) and plots the
total and unique counters of one metric kind. Days without a stored record
are drawn as gaps, never as zero.
"""

import io
import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import matplotlib
matplotlib.use("Agg")  # headless
import matplotlib.pyplot as plt
from matplotlib.dates import DateFormatter
from matplotlib.ticker import FuncFormatter, MaxNLocator

from .cache import atomic_write
from .database import DatabaseManager
from .errors import NoDataError
from .models import ChartSeries, DailyMetric, MetricKind

DEFAULT_DAYS = 30

# Canvas size in pixels
WIDTH = 640
HEIGHT = 480

TOTAL_COLOR = "#2E86C1"
UNIQUE_COLOR = "#E67E22"

SUFFIXES = ["", "k", "M", "G", "T"]


def chart_window(today: date, days: int = DEFAULT_DAYS) -> Tuple[date, date]:
    """Return the first and last day of a trailing window ending today."""
    if days < 1:
        raise ValueError(f"Chart window must cover at least one day, got {days}")
    return today - timedelta(days=days - 1), today


def build_series(repo: str, kind: MetricKind, metrics: List[DailyMetric],
                 start: date, end: date) -> ChartSeries:
    """Lay stored records out over every day of the window, leaving missing days as None."""
    by_day = {metric.day: metric for metric in metrics}
    series = ChartSeries(repo=repo, kind=kind)

    day = start
    while day <= end:
        metric = by_day.get(day)
        series.days.append(day)
        series.counts.append(metric.count if metric else None)
        series.uniques.append(metric.uniques if metric else None)
        day += timedelta(days=1)

    return series


def nice_upper_bound(max_value: float, headroom: float = 1.1, minimum: int = 10) -> int:
    """
    Return the y-axis upper bound for a chart whose largest value is max_value.

    The value plus headroom is rounded up to a multiple of its power of ten
    (a fifth of it when the leading digit is 1), so 47 becomes 60 and
    470 becomes 600. Small charts never go below minimum.
    """
    target = round(max_value * headroom, 6)
    if target <= minimum:
        return minimum

    magnitude = 10 ** math.floor(math.log10(target))
    step = magnitude // 5 if target < 2 * magnitude else magnitude
    return int(math.ceil(target / step) * step)


def abbreviate_number(value: float) -> str:
    """Format a count for display: 999, 1.5k, 12.3k, 4M."""
    if abs(value) < 1000:
        return f"{value:g}"

    index = 0
    while abs(value) >= 1000 and index < len(SUFFIXES) - 1:
        value /= 1000
        index += 1

    text = f"{value:.1f}"
    # 999.95k rounds to 1000.0k
    if abs(float(text)) >= 1000 and index < len(SUFFIXES) - 1:
        value /= 1000
        index += 1
        text = f"{value:.1f}"

    if text.endswith(".0"):
        text = text[:-2]
    return text + SUFFIXES[index]


def tick_days(start: date, end: date, interval: int = 7) -> List[date]:
    """X-axis tick days: every interval days counting back from the last day."""
    ticks = []
    day = end
    while day >= start:
        ticks.append(day)
        day -= timedelta(days=interval)
    return sorted(ticks)


def chart_filename(repo: str, kind: MetricKind) -> str:
    return f"{repo.replace('/', '_')}_{kind.value}.svg"


def _with_gaps(values: List[Optional[int]]) -> List[float]:
    # NaN breaks the line instead of dropping to zero
    return [float("nan") if v is None else float(v) for v in values]


class ChartRenderer:
    """Renders traffic charts for repositories stored in the database."""

    def __init__(self, db_manager: DatabaseManager, output_dir, days: int = DEFAULT_DAYS,
                 today: Optional[date] = None):
        """
        Initialize the renderer.

        Args:
            db_manager: Open database manager to read history from
            output_dir: Directory the SVG files are written to
            days: Default trailing window length
            today: Last day of every window; defaults to the current UTC day
        """
        self.db_manager = db_manager
        self.output_dir = Path(output_dir)
        self.days = days
        # Fixed per renderer so a batch crossing midnight keeps one window
        self.today = today or datetime.now(timezone.utc).date()
        self.logger = logging.getLogger(__name__)

    def load_series(self, repo: str, kind: MetricKind, days: Optional[int] = None) -> ChartSeries:
        start, end = chart_window(self.today, days or self.days)
        metrics = self.db_manager.range_query(repo, kind, start, end)
        return build_series(repo, kind, metrics, start, end)

    def draw(self, series: ChartSeries) -> bytes:
        """Draw a series and return the SVG document."""
        start, end = series.days[0], series.days[-1]
        counts = _with_gaps(series.counts)
        uniques = _with_gaps(series.uniques)

        with plt.rc_context({"svg.fonttype": "none", "font.family": "sans-serif"}):
            fig, ax = plt.subplots(figsize=(WIDTH / 100, HEIGHT / 100), dpi=100)
            try:
                ax.plot(series.days, counts, marker="o", linewidth=2, markersize=4, color=TOTAL_COLOR,
                        label=f"Total ({abbreviate_number(series.total(series.counts))})")
                ax.fill_between(series.days, counts, alpha=0.15, color=TOTAL_COLOR)
                ax.plot(series.days, uniques, marker="s", linewidth=2, markersize=4, color=UNIQUE_COLOR,
                        label=f"Unique ({abbreviate_number(series.total(series.uniques))})")
                ax.fill_between(series.days, uniques, alpha=0.15, color=UNIQUE_COLOR)

                ax.set_title(f"GitHub {series.kind.value} for {series.repo}", fontsize=14, fontweight="bold")
                ax.set_xlabel(f"Dates {start.isoformat()} - {end.isoformat()}")
                ax.set_ylabel("Count")

                ax.set_ylim(0, nice_upper_bound(series.max_value()))
                ax.yaxis.set_major_locator(MaxNLocator(nbins=10, integer=True))
                ax.yaxis.set_major_formatter(FuncFormatter(lambda y, _: abbreviate_number(y)))

                # half a day of padding on both sides
                ax.set_xlim(datetime.combine(start, time()) - timedelta(hours=12),
                            datetime.combine(end, time()) + timedelta(hours=12))
                ax.set_xticks(tick_days(start, end))
                ax.xaxis.set_major_formatter(DateFormatter("%Y-%m-%d"))
                ax.tick_params(axis="x", rotation=45)

                ax.grid(True, alpha=0.3)
                ax.legend(loc="upper right")
                fig.tight_layout()

                buf = io.BytesIO()
                fig.savefig(buf, format="svg")
            finally:
                plt.close(fig)
        return buf.getvalue()

    def render(self, repo: str, kind: MetricKind, days: Optional[int] = None) -> Path:
        """
        Render the chart for one repository and metric kind.

        Returns:
            Path of the written SVG file.

        Raises:
            NoDataError: if no day in the window has a stored record; nothing is written
            StoreError: if the history cannot be read or holds a corrupt record
            OSError: if the SVG file cannot be written
        """
        series = self.load_series(repo, kind, days)
        if series.is_empty():
            raise NoDataError(repo, kind)

        path = self.output_dir / chart_filename(repo, kind)
        atomic_write(path, self.draw(series))
        self.logger.info(f"Generated {kind.value} chart for {repo} as {path}")
        return path
