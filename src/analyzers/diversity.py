"""
Diversity Analyzer - How spread out listening is across artists per period.

Combines Shannon entropy (evenness), unique artist count (richness) and the
Gini coefficient (concentration) into a 0-100 display score.
"""

import math
from collections import Counter
from typing import Iterable

from ..models import ListenEvent
from ..periods import Granularity, period_label

# Artist count at which richness saturates in the display score
RICHNESS_CEILING_ARTISTS = 100

ENTROPY_WEIGHT = 0.6
RICHNESS_WEIGHT = 0.4


def shannon_entropy(counts: Iterable[int]) -> float:
    """
    Shannon entropy in bits: H = -sum(p * log2(p)).

    Args:
        counts: Play count per artist

    Returns:
        Entropy, 0.0 for a single artist or no plays
    """
    values = [c for c in counts if c > 0]
    total = sum(values)
    if total == 0:
        return 0.0

    entropy = 0.0
    for count in values:
        p = count / total
        entropy -= p * math.log2(p)
    return max(0.0, entropy)


def gini_coefficient(counts: Iterable[int]) -> float:
    """
    Gini coefficient of a play-count distribution.

    G = 2 * sum(i * x_i) / (n * S) - (n + 1) / n over ascending counts with
    1-based rank i. 0 means every artist got the same number of plays.
    """
    values = sorted(counts)
    n = len(values)
    total = sum(values)
    if n <= 1 or total == 0:
        return 0.0

    weighted = sum(rank * value for rank, value in enumerate(values, 1))
    gini = (2 * weighted) / (n * total) - (n + 1) / n
    return min(1.0, max(0.0, gini))


def diversity_score(entropy: float, unique_artists: int, gini: float) -> float:
    """
    Blend entropy, artist count and Gini into a 0-100 score.

    evenness = H / log2(n), richness = log2(n) / log2(ceiling) capped at 1;
    the weighted blend is then scaled down by concentration (1 - G).
    """
    if unique_artists <= 1:
        return 0.0

    max_entropy = math.log2(unique_artists)
    evenness = min(1.0, entropy / max_entropy)
    richness = min(1.0, max_entropy / math.log2(RICHNESS_CEILING_ARTISTS))

    score = (ENTROPY_WEIGHT * evenness + RICHNESS_WEIGHT * richness) * (1 - gini) * 100
    return round(min(100.0, max(0.0, score)), 2)


def classify_diversity(score: float) -> str:
    """Human-readable label for a diversity score."""
    if score < 30:
        return "Focused"
    elif score < 50:
        return "Consistent"
    elif score < 65:
        return "Balanced"
    elif score < 80:
        return "Eclectic"
    else:
        return "Wildly Eclectic"


def compute_diversity_point(period: str, events: list[ListenEvent]) -> dict:
    """Diversity metrics for one non-empty period."""
    artist_counts = Counter(e.artist for e in events)
    entropy = shannon_entropy(artist_counts.values())
    gini = gini_coefficient(artist_counts.values())
    score = diversity_score(entropy, len(artist_counts), gini)
    top_artist, top_plays = artist_counts.most_common(1)[0]

    return {
        "period": period,
        "total_events": len(events),
        "unique_artists": len(artist_counts),
        "unique_tracks": len({(e.artist, e.track) for e in events}),
        "shannon_entropy": round(entropy, 4),
        "gini_coefficient": round(gini, 4),
        "diversity_score": score,
        "label": classify_diversity(score),
        "top_artist": top_artist,
        "top_artist_plays": top_plays,
    }


def _extreme_period(timeline: list[dict], highest: bool) -> str:
    best = None
    for point in timeline:
        if best is None:
            best = point
        elif highest and point["diversity_score"] > best["diversity_score"]:
            best = point
        elif not highest and point["diversity_score"] < best["diversity_score"]:
            best = point
    return best["period"] if best else ""


def _mean(values: list[float]) -> float:
    return round(sum(values) / len(values), 4) if values else 0.0


def analyze_diversity(
    events: list[ListenEvent],
    granularity: Granularity = Granularity.WEEK,
) -> dict:
    """
    Compute per-period diversity metrics and an overall summary.

    Args:
        events: Listen events in any order
        granularity: Bucket size for the timeline

    Returns:
        Dictionary with a chronological timeline and a summary
    """
    buckets: dict[str, list[ListenEvent]] = {}
    for event in sorted(events, key=lambda e: e.timestamp):
        buckets.setdefault(period_label(event.timestamp, granularity), []).append(event)

    timeline = [compute_diversity_point(period, buckets[period]) for period in sorted(buckets)]

    summary = {
        "granularity": granularity.value,
        "total_events": len(events),
        "total_unique_artists": len({e.artist for e in events}),
        "total_unique_tracks": len({(e.artist, e.track) for e in events}),
        "avg_diversity_score": _mean([p["diversity_score"] for p in timeline]),
        "avg_shannon_entropy": _mean([p["shannon_entropy"] for p in timeline]),
        "avg_gini_coefficient": _mean([p["gini_coefficient"] for p in timeline]),
        "most_diverse_period": _extreme_period(timeline, highest=True),
        "least_diverse_period": _extreme_period(timeline, highest=False),
    }

    return {"timeline": timeline, "summary": summary}
