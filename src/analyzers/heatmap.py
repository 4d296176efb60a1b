"""
Heatmap Builder - Bucket listens into a weekday x hour activity matrix.

Timestamps are converted to the caller's IANA timezone using the zone's
rules for each event's own date, so DST shifts land in the right hour.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..models import ListenEvent

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


def resolve_timezone(name: Optional[str]) -> ZoneInfo:
    """
    Look up an IANA zone, falling back to UTC for unknown or malformed names.

    Args:
        name: Zone identifier such as "Europe/Lisbon"

    Returns:
        ZoneInfo for the zone, or UTC
    """
    if not name or not isinstance(name, str):
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return ZoneInfo("UTC")


def weeks_in_range(start: Optional[datetime], end: Optional[datetime]) -> int:
    """Whole weeks covered by a query range, never less than 1."""
    if start is None or end is None:
        return 1
    span = end - start
    if span <= timedelta(0):
        return 1
    return max(1, math.ceil(span / timedelta(days=7)))


def build_heatmap(
    events: list[ListenEvent],
    timezone: str = "UTC",
    normalize: bool = False,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> dict:
    """
    Count listens per (weekday, hour) in local time.

    Args:
        events: Listen events
        timezone: IANA zone the matrix is expressed in
        normalize: Divide counts by weeks in the query range
        start: Query range start, used for normalization
        end: Query range end, used for normalization

    Returns:
        Dictionary with the 168 cells, a 7x24 grid, weekday and hour
        totals, peak cell/day/hour, and a summary block
    """
    zone = resolve_timezone(timezone)
    weeks = weeks_in_range(start, end) if normalize else 1

    matrix = [[0] * 24 for _ in range(7)]
    for event in events:
        local = event.timestamp.astimezone(zone)
        matrix[local.weekday()][local.hour] += 1

    cells = []
    for weekday in range(7):
        for hour in range(24):
            count = matrix[weekday][hour]
            cells.append({
                "weekday": weekday,
                "hour": hour,
                "count": count,
                "normalized": round(count / weeks, 4) if normalize else float(count),
            })

    # Cells are ordered by weekday then hour, so strict > keeps the lowest index on ties
    peak_cell = cells[0]
    for cell in cells:
        if cell["count"] > peak_cell["count"]:
            peak_cell = cell

    weekday_totals = [
        {"weekday": d, "name": WEEKDAY_NAMES[d], "count": sum(matrix[d])}
        for d in range(7)
    ]
    hour_totals = [
        {"hour": h, "count": sum(matrix[d][h] for d in range(7))}
        for h in range(24)
    ]

    peak_day = _first_max(weekday_totals)
    peak_hour = _first_max(hour_totals)

    total = len(events)

    return {
        "timezone": zone.key,
        "is_normalized": normalize,
        "cells": cells,
        "grid": [{"day_of_week": d, "hours": list(matrix[d])} for d in range(7)],
        "weekday_totals": weekday_totals,
        "hour_totals": hour_totals,
        "peak_day": {"day_of_week": peak_day["weekday"], "name": peak_day["name"],
                     "count": peak_day["count"]},
        "peak_hour": {"hour": peak_hour["hour"], "count": peak_hour["count"]},
        "summary": {
            "total_events": total,
            "weeks_in_range": weeks,
            "peak_weekday": peak_cell["weekday"],
            "peak_hour": peak_cell["hour"],
            "peak_count": peak_cell["count"],
        },
    }


def _first_max(rows: list[dict]) -> dict:
    best = rows[0]
    for row in rows[1:]:
        if row["count"] > best["count"]:
            best = row
    return best


def format_hour_timeline(hour_totals: list, width: int = 30) -> str:
    """
    Generate an ASCII 24-hour timeline.

    Args:
        hour_totals: 24 counts, or the heatmap's hour_totals rows
        width: Maximum bar width in characters

    Returns:
        Multi-line string, one row per hour, with the peak marked
    """
    if not hour_totals or len(hour_totals) != 24:
        return ""

    counts = [h["count"] if isinstance(h, dict) else h for h in hour_totals]
    max_count = max(counts) or 1
    peak = counts.index(max(counts)) if any(counts) else None

    lines = []
    for hour, count in enumerate(counts):
        bar = "=" * int((count / max_count) * width)
        marker = "  << peak" if hour == peak else ""
        lines.append(f"{hour:02d}:00 |{bar}{marker}")

    return "\n".join(lines)
