"""
Yearly Review - A calendar year of listening in one report.

Overview, top content, listening personality, discoveries, diversity and
milestones for one UTC calendar year, plus a comparison between two years.
Built on the other analyzers so every figure agrees with the standalone
reports for the same slice.
"""

import calendar
from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from ..models import ListenEvent
from .diversity import compute_diversity_point
from .heatmap import build_heatmap
from .novelty import first_occurrences
from .sessions import build_sessions_report
from .top import compute_top_content

# Listens carry no duration, so listening time is estimated per track
AVG_TRACK_MINUTES = 3.5

NIGHT_HOURS = set(range(20, 24)) | set(range(0, 6))
MORNING_HOURS = set(range(6, 12))
WEEKEND_DAYS = {5, 6}

PERSONALITY_THRESHOLD = 60.0
MARATHON_SESSION_MINUTES = 180
COMPARISON_TOP_ARTISTS = 10


def year_bounds(year: int) -> tuple[datetime, datetime]:
    """First and last second of a UTC calendar year."""
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
    return start, end


def _busiest(counts: Counter) -> str:
    # Earliest label wins ties
    if not counts:
        return ""
    return min(counts, key=lambda label: (-counts[label], label))


def _share(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0.0


def compute_overview(events: list[ListenEvent], year: int) -> dict:
    total = len(events)
    days_in_year = 366 if calendar.isleap(year) else 365
    utc = [e.timestamp.astimezone(timezone.utc) for e in events]

    return {
        "total_listens": total,
        "total_artists": len({e.artist for e in events}),
        "total_tracks": len({(e.artist, e.track) for e in events}),
        "total_albums": len({(e.artist, e.album) for e in events if e.album}),
        "estimated_minutes": int(total * AVG_TRACK_MINUTES),
        "average_per_day": round(total / days_in_year, 2),
        "most_active_month": _busiest(Counter(ts.strftime("%Y-%m") for ts in utc)),
        "most_active_day": _busiest(Counter(ts.strftime("%Y-%m-%d") for ts in utc)),
    }


def compute_listening_patterns(
    events: list[ListenEvent],
    tz_name: str = "UTC",
    gap_threshold_minutes: int = 45,
    min_tracks: int = 2,
) -> dict:
    """
    Peak times, session lengths and listening personality scores.

    Scores are the percentage of listens at night (20:00-05:59), in the
    morning (06:00-11:59) and on Saturday or Sunday, in local time.
    """
    heatmap = build_heatmap(events, tz_name)
    sessions = build_sessions_report(events, gap_threshold_minutes, min_tracks)["summary"]
    total = len(events)

    hours = {row["hour"]: row["count"] for row in heatmap["hour_totals"]}
    days = {row["weekday"]: row["count"] for row in heatmap["weekday_totals"]}

    return {
        "timezone": heatmap["timezone"],
        "peak_hour": heatmap["peak_hour"]["hour"],
        "peak_day": heatmap["peak_day"]["day_of_week"],
        "peak_day_name": heatmap["peak_day"]["name"],
        "longest_session_minutes": sessions["longest_session_minutes"],
        "avg_session_minutes": sessions["avg_duration_minutes"],
        "night_owl_score": _share(sum(hours[h] for h in NIGHT_HOURS), total),
        "early_bird_score": _share(sum(hours[h] for h in MORNING_HOURS), total),
        "weekend_warrior_score": _share(sum(days[d] for d in WEEKEND_DAYS), total),
    }


def compute_discoveries(events: list[ListenEvent], year: int, history: Optional[list] = None) -> dict:
    """
    Artists and tracks first heard during the year.

    Args:
        events: Listens inside the year
        year: Calendar year
        history: Listens up to the end of the year; defaults to events,
            in which case everything heard is a discovery
    """
    year_start, _ = year_bounds(year)
    track_first, artist_first = first_occurrences(history if history is not None else events)
    for event in events:
        key = (event.artist, event.track)
        if key not in track_first or event.timestamp < track_first[key]:
            track_first[key] = event.timestamp
        if event.artist not in artist_first or event.timestamp < artist_first[event.artist]:
            artist_first[event.artist] = event.timestamp

    new_artists = {a for a, ts in artist_first.items() if ts >= year_start}
    new_tracks = {key for key, ts in track_first.items() if ts >= year_start}

    ordered = sorted(events, key=lambda e: e.timestamp)
    first_artist = None
    for event in ordered:
        if event.artist in new_artists and event.timestamp == artist_first[event.artist]:
            first_artist = {
                "artist": event.artist,
                "track": event.track,
                "timestamp": event.timestamp,
            }
            break

    plays = Counter(e.artist for e in events if e.artist in new_artists)
    top_discovery = None
    if plays:
        artist = min(plays, key=lambda a: (-plays[a], artist_first[a], a))
        top_discovery = {
            "artist": artist,
            "first_heard": artist_first[artist],
            "plays_this_year": plays[artist],
        }

    return {
        "new_artists": len(new_artists & {e.artist for e in events}),
        "new_tracks": len(new_tracks & {(e.artist, e.track) for e in events}),
        "first_artist": first_artist,
        "top_discovery": top_discovery,
    }


def compute_diversity_stats(events: list[ListenEvent], year: int) -> dict:
    """Year-level diversity score plus how much the top artist dominates."""
    point = compute_diversity_point(str(year), events)
    loyalty = _share(point["top_artist_plays"], point["total_events"])
    return {
        "diversity_score": point["diversity_score"],
        "label": point["label"],
        "shannon_entropy": point["shannon_entropy"],
        "gini_coefficient": point["gini_coefficient"],
        "artist_loyalty": loyalty,
        "exploration_score": round(100.0 - loyalty, 2),
    }


def compute_milestones(overview: dict, top_content: dict, patterns: dict, discoveries: dict) -> list[dict]:
    hours = overview["estimated_minutes"] // 60
    milestones = [{
        "title": "Music Marathon",
        "description": f"You listened to about {hours} hours of music",
        "value": f"{hours} hours",
    }]

    if top_content["top_artists"]:
        top = top_content["top_artists"][0]
        milestones.append({
            "title": "Your #1 Artist",
            "description": f"You played {top['play_count']} songs",
            "value": top["artist"],
        })

    milestones.append({
        "title": "Explorer",
        "description": f"You discovered {discoveries['new_artists']} new artists",
        "value": f"{discoveries['new_artists']} artists",
    })

    if patterns["night_owl_score"] > PERSONALITY_THRESHOLD:
        milestones.append({
            "title": "Night Owl",
            "description": "Most of your listening happens after 8 PM",
            "value": f"{int(patterns['night_owl_score'])}% night listening",
        })
    elif patterns["early_bird_score"] > PERSONALITY_THRESHOLD:
        milestones.append({
            "title": "Early Bird",
            "description": "You love morning music sessions",
            "value": f"{int(patterns['early_bird_score'])}% morning listening",
        })

    if patterns["longest_session_minutes"] > MARATHON_SESSION_MINUTES:
        milestones.append({
            "title": "Marathon Listener",
            "description": "Your longest listening session",
            "value": f"{patterns['longest_session_minutes']} minutes",
        })

    return milestones


def _empty_report(year: int, tz_name: str) -> dict:
    return {
        "year": year,
        "overview": {
            "total_listens": 0,
            "total_artists": 0,
            "total_tracks": 0,
            "total_albums": 0,
            "estimated_minutes": 0,
            "average_per_day": 0.0,
            "most_active_month": "",
            "most_active_day": "",
        },
        "top_content": {"top_artists": [], "top_tracks": [], "top_albums": []},
        "listening_patterns": {
            "timezone": build_heatmap([], tz_name)["timezone"],
            "peak_hour": 0,
            "peak_day": 0,
            "peak_day_name": "",
            "longest_session_minutes": 0,
            "avg_session_minutes": 0.0,
            "night_owl_score": 0.0,
            "early_bird_score": 0.0,
            "weekend_warrior_score": 0.0,
        },
        "discoveries": {
            "new_artists": 0,
            "new_tracks": 0,
            "first_artist": None,
            "top_discovery": None,
        },
        "diversity": {
            "diversity_score": 0.0,
            "label": "",
            "shannon_entropy": 0.0,
            "gini_coefficient": 0.0,
            "artist_loyalty": 0.0,
            "exploration_score": 0.0,
        },
        "milestones": [],
    }


def build_yearly_report(
    events: list[ListenEvent],
    year: int,
    history: Optional[list] = None,
    tz_name: str = "UTC",
    gap_threshold_minutes: int = 45,
    min_tracks: int = 2,
) -> dict:
    """
    Build the review for one calendar year.

    Args:
        events: Listens inside the year (others are ignored)
        year: Calendar year, UTC
        history: Listens up to the end of the year, for discoveries
        tz_name: Timezone for peak hour/day and personality scores
        gap_threshold_minutes: Session gap for session figures
        min_tracks: Minimum tracks for a session to count

    Returns:
        Dictionary with year, overview, top_content, listening_patterns,
        discoveries, diversity and milestones
    """
    start, end = year_bounds(year)
    in_year = [e for e in events if start <= e.timestamp <= end]
    if not in_year:
        return _empty_report(year, tz_name)

    overview = compute_overview(in_year, year)
    top_content = compute_top_content(in_year)
    patterns = compute_listening_patterns(in_year, tz_name, gap_threshold_minutes, min_tracks)
    discoveries = compute_discoveries(in_year, year, history)

    return {
        "year": year,
        "overview": overview,
        "top_content": top_content,
        "listening_patterns": patterns,
        "discoveries": discoveries,
        "diversity": compute_diversity_stats(in_year, year),
        "milestones": compute_milestones(overview, top_content, patterns, discoveries),
    }


def _change(current: float, previous: float) -> float:
    if not previous:
        return 0.0
    return round((current - previous) / previous * 100, 2)


def compare_years(current: dict, previous: dict) -> dict:
    """
    Compare two yearly reports.

    Percentages are relative to the previous year and 0.0 when it has no
    listens. new_favorites are current top-10 artists missing from the
    previous top 10.
    """
    cur_overview = current["overview"]
    prev_overview = previous["overview"]

    cur_top = [a["artist"] for a in current["top_content"]["top_artists"][:COMPARISON_TOP_ARTISTS]]
    prev_top = {a["artist"] for a in previous["top_content"]["top_artists"][:COMPARISON_TOP_ARTISTS]}

    return {
        "current_year": current["year"],
        "previous_year": previous["year"],
        "listens_change": cur_overview["total_listens"] - prev_overview["total_listens"],
        "listens_change_percent": _change(cur_overview["total_listens"], prev_overview["total_listens"]),
        "artists_change": cur_overview["total_artists"] - prev_overview["total_artists"],
        "artists_change_percent": _change(cur_overview["total_artists"], prev_overview["total_artists"]),
        "diversity_change": round(
            current["diversity"]["diversity_score"] - previous["diversity"]["diversity_score"], 2
        ),
        "top_artists_overlap": [a for a in cur_top if a in prev_top],
        "new_favorites": [a for a in cur_top if a not in prev_top],
    }
