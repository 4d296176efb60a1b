"""
Transition Analyzer - Which artist tends to follow which within a session.

Transitions are directed: A -> B and B -> A are counted separately.
"""

from collections import Counter

from ..models import ListenEvent
from .sessions import segment_sessions

TOP_TRANSITIONS_LIMIT = 50


def count_transitions(sessions: list[dict], include_self_transitions: bool = False) -> Counter:
    """
    Count consecutive artist pairs inside each session.

    Args:
        sessions: Output of segment_sessions()
        include_self_transitions: Keep A -> A pairs

    Returns:
        Counter keyed by (from_artist, to_artist)
    """
    counts = Counter()
    for session in sessions:
        tracks = session["tracks"]
        for prev, curr in zip(tracks, tracks[1:]):
            if prev["artist"] == curr["artist"] and not include_self_transitions:
                continue
            counts[(prev["artist"], curr["artist"])] += 1
    return counts


def build_network_graph(transitions: list[dict]) -> dict:
    """
    Build a node/edge view of retained transitions.

    Node size is the artist's combined incoming and outgoing weight.
    """
    in_weight = Counter()
    out_weight = Counter()
    for t in transitions:
        out_weight[t["from_artist"]] += t["count"]
        in_weight[t["to_artist"]] += t["count"]

    artists = sorted(set(in_weight) | set(out_weight))
    nodes = [
        {
            "id": artist,
            "label": artist,
            "size": in_weight[artist] + out_weight[artist],
            "in_weight": in_weight[artist],
            "out_weight": out_weight[artist],
        }
        for artist in artists
    ]
    edges = [
        {"source": t["from_artist"], "target": t["to_artist"], "weight": t["count"]}
        for t in transitions
    ]
    return {"nodes": nodes, "edges": edges}


def analyze_transitions(
    events: list[ListenEvent],
    gap_threshold_minutes: int = 45,
    include_self_transitions: bool = False,
    min_count: int = 1,
) -> dict:
    """
    Count artist-to-artist transitions within listening sessions.

    Args:
        events: Listen events in any order
        gap_threshold_minutes: Inactivity gap that separates sessions
        include_self_transitions: Count A -> A pairs
        min_count: Drop transitions seen fewer times than this

    Returns:
        Dictionary with transitions, top_transitions, network_data and summary
    """
    sessions = segment_sessions(events, gap_threshold_minutes)
    counts = count_transitions(sessions, include_self_transitions)
    total = sum(counts.values())

    transitions = [
        {
            "from_artist": from_artist,
            "to_artist": to_artist,
            "count": count,
            "percentage": round(count / total * 100, 2) if total else 0.0,
        }
        for (from_artist, to_artist), count in counts.items()
        if count >= min_count
    ]
    transitions.sort(key=lambda t: (-t["count"], t["from_artist"], t["to_artist"]))

    network = build_network_graph(transitions)

    most_connected = ""
    best_size = 0
    for node in network["nodes"]:
        # Nodes are sorted by name, so ties resolve alphabetically
        if node["size"] > best_size:
            most_connected = node["id"]
            best_size = node["size"]

    session_count = len(sessions)
    summary = {
        "total_transitions": total,
        "unique_transitions": len(transitions),
        "most_common_transition": transitions[0] if transitions else None,
        "most_connected_artist": most_connected,
        "session_count": session_count,
        "avg_transitions_per_session": round(total / session_count, 2) if session_count else 0.0,
    }

    return {
        "transitions": transitions,
        "top_transitions": transitions[:TOP_TRANSITIONS_LIMIT],
        "network_data": network,
        "summary": summary,
    }
