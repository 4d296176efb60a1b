"""
Novelty Analyzer - How much of each period is first-ever listening.

First occurrences are a property of the whole history, so the analyzer
accepts the history separately from the windowed events it reports on.
"""

from collections import Counter
from datetime import datetime
from typing import Optional

from ..models import ListenEvent
from ..periods import Granularity, period_label

COMFORT_TRACK_LIMIT = 10


def first_occurrences(events: list[ListenEvent]) -> tuple[dict, dict]:
    """
    Find the first timestamp of every (artist, track) pair and every artist.

    Args:
        events: Listen events in any order

    Returns:
        (track_first_seen, artist_first_seen) dicts keyed by
        (artist, track) tuples and artist names
    """
    track_first: dict[tuple[str, str], datetime] = {}
    artist_first: dict[str, datetime] = {}

    for event in sorted(events, key=lambda e: e.timestamp):
        track_first.setdefault((event.artist, event.track), event.timestamp)
        artist_first.setdefault(event.artist, event.timestamp)

    return track_first, artist_first


def _group_by_period(events: list[ListenEvent], granularity: Granularity) -> list:
    groups: list[tuple[str, list[ListenEvent]]] = []
    for event in events:
        label = period_label(event.timestamp, granularity)
        if not groups or groups[-1][0] != label:
            groups.append((label, []))
        groups[-1][1].append(event)
    return groups


def _novelty_point(period: str, events: list, track_first: dict, artist_first: dict) -> dict:
    total = len(events)
    new_tracks = 0
    new_artists = set()

    for event in events:
        if event.timestamp == track_first[(event.artist, event.track)]:
            new_tracks += 1
        if event.timestamp == artist_first[event.artist]:
            new_artists.add(event.artist)

    distinct_artists = len({e.artist for e in events})

    return {
        "period": period,
        "total_events": total,
        "new_tracks": new_tracks,
        "repeat_tracks": total - new_tracks,
        "new_artists": len(new_artists),
        "repeat_artists": distinct_artists - len(new_artists),
        "novelty_ratio": round(new_tracks / total, 4) if total else 0.0,
    }


def _extreme_period(timeline: list[dict], highest: bool) -> str:
    # Timeline is chronological; strict comparison keeps the earliest on ties
    best = None
    for point in timeline:
        if best is None:
            best = point
        elif highest and point["novelty_ratio"] > best["novelty_ratio"]:
            best = point
        elif not highest and point["novelty_ratio"] < best["novelty_ratio"]:
            best = point
    return best["period"] if best else ""


def find_top_comfort_tracks(events: list[ListenEvent], limit: int = COMFORT_TRACK_LIMIT) -> list[dict]:
    """Most replayed (artist, track) pairs in the window."""
    counts = Counter((e.artist, e.track) for e in events)
    first_heard: dict[tuple[str, str], datetime] = {}
    for event in events:
        key = (event.artist, event.track)
        if key not in first_heard or event.timestamp < first_heard[key]:
            first_heard[key] = event.timestamp

    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], first_heard[kv[0]], kv[0]))
    return [
        {
            "artist": artist,
            "track": track,
            "play_count": count,
            "first_heard": first_heard[(artist, track)],
        }
        for (artist, track), count in ranked[:limit]
    ]


def analyze_novelty(
    events: list[ListenEvent],
    granularity: Granularity = Granularity.WEEK,
    history: Optional[list[ListenEvent]] = None,
) -> dict:
    """
    Classify each listen as new or repeat and aggregate per period.

    Args:
        events: Listen events inside the query window
        granularity: Bucket size for the timeline
        history: Listening history used to decide first occurrences
            (defaults to events). Should include everything before the
            window as well as the window itself.

    Returns:
        Dictionary with timeline, summary, new_artists_discovered and
        top_comfort_tracks
    """
    ordered = sorted(events, key=lambda e: e.timestamp)
    track_first, artist_first = first_occurrences(history if history is not None else ordered)

    # Events missing from the supplied history count from their own first play
    for event in ordered:
        key = (event.artist, event.track)
        if key not in track_first or event.timestamp < track_first[key]:
            track_first[key] = event.timestamp
        if event.artist not in artist_first or event.timestamp < artist_first[event.artist]:
            artist_first[event.artist] = event.timestamp

    timeline = [
        _novelty_point(period, group, track_first, artist_first)
        for period, group in _group_by_period(ordered, granularity)
    ]

    artist_plays = Counter(e.artist for e in ordered)
    discoveries = []
    discovered = set()
    for event in ordered:
        if event.artist in discovered:
            continue
        if event.timestamp == artist_first[event.artist]:
            discovered.add(event.artist)
            discoveries.append({
                "artist": event.artist,
                "first_heard": event.timestamp,
                "period": period_label(event.timestamp, granularity),
                "total_plays": artist_plays[event.artist],
            })

    summary = {
        "granularity": granularity.value,
        "total_events": len(ordered),
        "total_unique_tracks": len({(e.artist, e.track) for e in ordered}),
        "total_unique_artists": len(artist_plays),
        "total_new_tracks": sum(p["new_tracks"] for p in timeline),
        "total_new_artists": len(discoveries),
        "avg_novelty_ratio": (
            round(sum(p["novelty_ratio"] for p in timeline) / len(timeline), 4)
            if timeline else 0.0
        ),
        "most_exploratory_period": _extreme_period(timeline, highest=True),
        "least_exploratory_period": _extreme_period(timeline, highest=False),
    }

    return {
        "timeline": timeline,
        "summary": summary,
        "new_artists_discovered": discoveries,
        "top_comfort_tracks": find_top_comfort_tracks(ordered),
    }
