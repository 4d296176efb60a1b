"""Analyzers for listening history reports."""

from .diversity import (
    analyze_diversity,
    classify_diversity,
    diversity_score,
    gini_coefficient,
    shannon_entropy,
)
from .heatmap import (
    WEEKDAY_NAMES,
    build_heatmap,
    format_hour_timeline,
    resolve_timezone,
)
from .novelty import analyze_novelty, first_occurrences
from .sessions import build_sessions_report, segment_sessions
from .top import build_stats, compute_top_content
from .transitions import analyze_transitions, count_transitions
from .yearly import build_yearly_report, compare_years

__all__ = [
    "WEEKDAY_NAMES",
    "analyze_diversity",
    "analyze_novelty",
    "analyze_transitions",
    "build_heatmap",
    "build_sessions_report",
    "build_stats",
    "build_yearly_report",
    "classify_diversity",
    "compare_years",
    "compute_top_content",
    "count_transitions",
    "diversity_score",
    "first_occurrences",
    "format_hour_timeline",
    "gini_coefficient",
    "resolve_timezone",
    "segment_sessions",
    "shannon_entropy",
]
