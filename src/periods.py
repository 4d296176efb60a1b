"""Period bucketing for timeline reports (day / ISO week / month)."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from .errors import InvalidParameterError


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


def parse_granularity(value) -> Granularity:
    """
    Resolve a granularity name ("day", "week", "month", any case).

    Raises:
        InvalidParameterError: For any other value
    """
    if isinstance(value, Granularity):
        return value
    if isinstance(value, str):
        try:
            return Granularity(value.strip().lower())
        except ValueError:
            pass
    allowed = ", ".join(g.value for g in Granularity)
    raise InvalidParameterError("granularity", f"expected one of {allowed}, got {value!r}")


def period_label(timestamp: datetime, granularity: Granularity) -> str:
    """
    Label the bucket a UTC timestamp falls in.

    Labels sort chronologically as strings:
    day "2024-01-31", week "2024-W05" (ISO year and week), month "2024-01".
    """
    ts = timestamp.astimezone(timezone.utc)
    if granularity is Granularity.DAY:
        return ts.strftime("%Y-%m-%d")
    if granularity is Granularity.WEEK:
        iso_year, iso_week, _ = ts.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    return ts.strftime("%Y-%m")


def default_granularity(start: Optional[datetime], end: Optional[datetime]) -> Granularity:
    """
    Pick a granularity from the length of the query range.

    Unbounded ranges use week; up to 31 days uses day; up to a year
    uses week; anything longer uses month.
    """
    if start is None or end is None:
        return Granularity.WEEK
    span = end - start
    if span <= timedelta(days=31):
        return Granularity.DAY
    if span <= timedelta(days=366):
        return Granularity.WEEK
    return Granularity.MONTH
