"""
Top Content - Most played artists, tracks and albums in a slice of history.
"""

from collections import Counter

from ..models import ListenEvent

TOP_CONTENT_LIMIT = 50
STATS_LIMIT = 10


def _ranked(counts: Counter, limit: int) -> list:
    # Highest count first; ties fall back to name order so output is stable
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]


def top_artists(events: list[ListenEvent], limit: int = TOP_CONTENT_LIMIT) -> list[dict]:
    """
    Rank artists by play count.

    Returns:
        List of {artist, play_count, percentage, rank}, percentage of all
        plays in the slice rounded to 2 places
    """
    total = len(events)
    counts = Counter(e.artist for e in events)
    return [
        {
            "artist": artist,
            "play_count": count,
            "percentage": round(count / total * 100, 2),
            "rank": rank,
        }
        for rank, (artist, count) in enumerate(_ranked(counts, limit), 1)
    ]


def top_tracks(events: list[ListenEvent], limit: int = TOP_CONTENT_LIMIT) -> list[dict]:
    counts = Counter((e.artist, e.track) for e in events)
    return [
        {"artist": artist, "track": track, "play_count": count, "rank": rank}
        for rank, ((artist, track), count) in enumerate(_ranked(counts, limit), 1)
    ]


def top_albums(events: list[ListenEvent], limit: int = TOP_CONTENT_LIMIT) -> list[dict]:
    """Rank (artist, album) pairs; listens without an album are skipped."""
    counts = Counter((e.artist, e.album) for e in events if e.album)
    return [
        {"artist": artist, "album": album, "play_count": count, "rank": rank}
        for rank, ((artist, album), count) in enumerate(_ranked(counts, limit), 1)
    ]


def compute_top_content(events: list[ListenEvent], limit: int = TOP_CONTENT_LIMIT) -> dict:
    return {
        "top_artists": top_artists(events, limit),
        "top_tracks": top_tracks(events, limit),
        "top_albums": top_albums(events, limit),
    }


def build_stats(events: list[ListenEvent], limit: int = STATS_LIMIT) -> dict:
    """
    Library-wide totals plus the top artists, tracks and albums.

    Args:
        events: Listen events in the requested range
        limit: Entries per top list

    Returns:
        Dictionary with totals and top_artists, top_tracks, top_albums
    """
    stats = {
        "total_listens": len(events),
        "unique_artists": len({e.artist for e in events}),
        "unique_tracks": len({(e.artist, e.track) for e in events}),
        "unique_albums": len({(e.artist, e.album) for e in events if e.album}),
    }
    stats.update(compute_top_content(events, limit))
    return stats
