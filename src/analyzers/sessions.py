"""
Session Segmenter - Split a listening history into continuous sessions.

A new session starts whenever the gap between two consecutive listens is
strictly greater than the inactivity threshold.
"""

from collections import Counter
from datetime import timedelta, timezone
from typing import Optional

from ..models import ListenEvent

DURATION_BUCKETS = [
    ("0-30", 0, 29),
    ("30-60", 30, 59),
    ("60-120", 60, 119),
    ("120-180", 120, 179),
    ("180+", 180, None),
]

TRACK_COUNT_BUCKETS = [
    ("1-10", 1, 10),
    ("11-20", 11, 20),
    ("21-30", 21, 30),
    ("31-50", 31, 50),
    ("50+", 51, None),
]


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def segment_sessions(events: list[ListenEvent], gap_threshold_minutes: int) -> list[dict]:
    """
    Partition listen events into sessions using an inactivity gap.

    Args:
        events: Listen events in any order (sorted here before segmenting)
        gap_threshold_minutes: Maximum gap allowed inside one session

    Returns:
        List of session dicts in chronological order
    """
    if not events:
        return []

    ordered = sorted(events, key=lambda e: e.timestamp)
    threshold = timedelta(minutes=gap_threshold_minutes)

    sessions = []
    current = [ordered[0]]

    for event in ordered[1:]:
        if event.timestamp - current[-1].timestamp > threshold:
            sessions.append(_build_session(current))
            current = [event]
        else:
            current.append(event)

    sessions.append(_build_session(current))
    return sessions


def _build_session(events: list[ListenEvent]) -> dict:
    start = events[0].timestamp
    end = events[-1].timestamp

    tracks = []
    for i, event in enumerate(events):
        gap_after: Optional[int] = None
        if i < len(events) - 1:
            gap_after = _whole_minutes(events[i + 1].timestamp - event.timestamp)
        tracks.append({
            "artist": event.artist,
            "album": event.album,
            "track": event.track,
            "timestamp": event.timestamp,
            "gap_after_minutes": gap_after,
        })

    return {
        "id": f"session_{int(start.timestamp())}",
        "start": start,
        "end": end,
        "duration_minutes": max(0, _whole_minutes(end - start)),
        "track_count": len(events),
        "unique_artists": len({e.artist for e in events}),
        "tracks": tracks,
    }


def _bucket_label(value: int, buckets: list) -> str:
    for label, low, high in buckets:
        if value >= low and (high is None or value <= high):
            return label
    return buckets[0][0]


def compute_distribution(sessions: list[dict]) -> dict:
    """Count sessions per duration bucket and per track-count bucket."""
    by_duration = {label: 0 for label, _, _ in DURATION_BUCKETS}
    by_track_count = {label: 0 for label, _, _ in TRACK_COUNT_BUCKETS}

    for session in sessions:
        by_duration[_bucket_label(session["duration_minutes"], DURATION_BUCKETS)] += 1
        by_track_count[_bucket_label(session["track_count"], TRACK_COUNT_BUCKETS)] += 1

    return {"by_duration": by_duration, "by_track_count": by_track_count}


def compute_sessions_per_day(sessions: list[dict]) -> list[dict]:
    """Number of sessions started on each UTC calendar day, ascending."""
    counts = Counter(
        s["start"].astimezone(timezone.utc).strftime("%Y-%m-%d") for s in sessions
    )
    return [{"date": day, "count": counts[day]} for day in sorted(counts)]


def summarize_sessions(sessions: list[dict]) -> dict:
    total = len(sessions)
    if total == 0:
        return {
            "total_sessions": 0,
            "total_tracks": 0,
            "avg_duration_minutes": 0.0,
            "avg_tracks_per_session": 0.0,
            "longest_session_minutes": 0,
            "total_listening_hours": 0.0,
        }

    total_minutes = sum(s["duration_minutes"] for s in sessions)
    total_tracks = sum(s["track_count"] for s in sessions)

    return {
        "total_sessions": total,
        "total_tracks": total_tracks,
        "avg_duration_minutes": round(total_minutes / total, 2),
        "avg_tracks_per_session": round(total_tracks / total, 2),
        "longest_session_minutes": max(s["duration_minutes"] for s in sessions),
        "total_listening_hours": round(total_minutes / 60, 2),
    }


def build_sessions_report(
    events: list[ListenEvent],
    gap_threshold_minutes: int = 45,
    min_tracks: int = 2,
) -> dict:
    """
    Segment events and summarize the resulting sessions.

    Sessions shorter than min_tracks are dropped from the list and are
    not part of any summary figure.

    Args:
        events: Listen events in any order
        gap_threshold_minutes: Inactivity gap that closes a session
        min_tracks: Minimum tracks for a session to be reported

    Returns:
        Dictionary with sessions, summary, distribution and sessions_per_day
    """
    segmented = segment_sessions(events, gap_threshold_minutes)
    sessions = [s for s in segmented if s["track_count"] >= min_tracks]

    summary = summarize_sessions(sessions)
    summary["short_sessions_dropped"] = len(segmented) - len(sessions)
    summary["gap_threshold_minutes"] = gap_threshold_minutes

    return {
        "sessions": sessions,
        "summary": summary,
        "distribution": compute_distribution(sessions),
        "sessions_per_day": compute_sessions_per_day(sessions),
    }
