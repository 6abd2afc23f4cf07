"""UTC clock helpers for run ids, output directories and error entries.

Everything the auditor stamps uses now_utc, so run_metadata.json, errors.csv
and the out/<date>/<timestamp>/ directory always agree.
"""

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Current time, timezone-aware, in UTC."""
    return datetime.now(timezone.utc)


def timestamp_str(dt: Optional[datetime] = None) -> str:
    """Run id used as the innermost output directory.

    Returns: YYYYMMDD_HHMMSS (filesystem-safe)
    """
    return (dt or now_utc()).strftime("%Y%m%d_%H%M%S")


def date_str(dt: Optional[datetime] = None) -> str:
    """Day directory grouping the runs of one date.

    Returns: YYYY-MM-DD
    """
    return (dt or now_utc()).strftime("%Y-%m-%d")


def elapsed_seconds(start: datetime, end: Optional[datetime] = None) -> float:
    """Run duration in seconds, rounded to 2 decimals.

    end defaults to now, which is what the runner wants when it finishes.
    """
    delta = (end or now_utc()) - start
    return round(delta.total_seconds(), 2)
