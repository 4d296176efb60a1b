"""Markdown and JSON rendering of listening reports, with ASCII visualizations."""

import json
import logging
from datetime import datetime
from pathlib import Path

from .analyzers.heatmap import WEEKDAY_NAMES, format_hour_timeline
from .models import format_timestamp

logger = logging.getLogger(__name__)

HEATMAP_SHADES = " .:-=+*#%@"


def _json_default(value):
    if isinstance(value, datetime):
        return format_timestamp(value)
    return str(value)


def to_json(report: dict, indent: int = 2) -> str:
    """Serialize a report; datetimes become ISO-8601 UTC strings."""
    return json.dumps(report, indent=indent, default=_json_default, ensure_ascii=False)


def export_report_json(report: dict, output_path: str) -> dict:
    """Write a report as JSON for downstream apps."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(to_json(report), encoding="utf-8")
    logger.info("Report JSON exported to %s", output_path)
    return report


def ascii_bar_int(value, max_value, width=30, label=""):
    """Render an ASCII bar for integer values."""
    if max_value == 0:
        filled = 0
    else:
        filled = int(round((value / max_value) * width))
    filled = max(0, min(width, filled))
    empty = width - filled
    bar = "[" + "#" * filled + "." * empty + "]"
    if label:
        return f"{label:<18} {bar} {value}"
    return bar


def _range_line(report):
    rng = report.get("range") or {}
    start = rng.get("start") or "beginning"
    end = rng.get("end") or "now"
    return f"*Range: {start} to {end}*"


def format_sessions(report):
    """Format a sessions report."""
    summary = report.get("summary", {})
    lines = [
        "## Listening Sessions",
        "",
        _range_line(report),
        "",
        f"- **Sessions**: {summary.get('total_sessions', 0)}",
        f"- **Average length**: {summary.get('avg_duration_minutes', 0):.1f} min, "
        f"{summary.get('avg_tracks_per_session', 0):.1f} tracks",
        f"- **Longest session**: {summary.get('longest_session_minutes', 0)} min",
        f"- **Total listening**: {summary.get('total_listening_hours', 0):.1f} h",
        f"- **Short sessions dropped**: {summary.get('short_sessions_dropped', 0)}",
        "",
    ]

    by_duration = report.get("distribution", {}).get("by_duration", {})
    if by_duration:
        max_count = max(by_duration.values())
        lines.append("### Session Length (minutes)")
        lines.append("")
        lines.append("```")
        for bucket, count in by_duration.items():
            lines.append(ascii_bar_int(count, max_count, 30, bucket))
        lines.append("```")

    return "\n".join(lines)


def format_heatmap(report):
    """Format a heatmap report as a shaded weekday x hour grid."""
    summary = report.get("summary", {})
    grid = report.get("grid", [])
    max_count = max((max(row["hours"]) for row in grid), default=0)

    lines = [
        "## When You Listen",
        "",
        _range_line(report),
        f"*Timezone: {report.get('timezone', 'UTC')}*",
        "",
        "```",
        "    " + "".join(f"{h:<3d}" for h in range(0, 24)),
    ]
    for row in grid:
        cells = []
        for count in row["hours"]:
            level = 0 if max_count == 0 else int(round(count / max_count * (len(HEATMAP_SHADES) - 1)))
            cells.append(HEATMAP_SHADES[level] * 2 + " ")
        lines.append(f"{WEEKDAY_NAMES[row['day_of_week']][:3]} " + "".join(cells))
    lines.append("```")
    lines.append("")

    if summary.get("total_events"):
        lines.append(
            f"Peak: {WEEKDAY_NAMES[summary['peak_weekday']]} {summary['peak_hour']:02d}:00 "
            f"({summary['peak_count']} listens of {summary['total_events']})"
        )
        lines.append("")
        lines.append("```")
        lines.append(format_hour_timeline(report.get("hour_totals", [])))
        lines.append("```")
    else:
        lines.append("No listens in range.")

    return "\n".join(lines)


def format_novelty(report):
    """Format a novelty report."""
    summary = report.get("summary", {})
    lines = [
        "## Novelty vs Comfort",
        "",
        _range_line(report),
        "",
        f"- **Average novelty**: {summary.get('avg_novelty_ratio', 0):.1%}",
        f"- **New tracks / artists**: {summary.get('total_new_tracks', 0)} / "
        f"{summary.get('total_new_artists', 0)}",
        f"- **Most exploratory**: {summary.get('most_exploratory_period') or '-'}",
        f"- **Least exploratory**: {summary.get('least_exploratory_period') or '-'}",
        "",
    ]

    timeline = report.get("timeline", [])
    if timeline:
        lines.append("```")
        for point in timeline:
            lines.append(ascii_bar_int(point["new_tracks"], point["total_events"], 30, point["period"]))
        lines.append("```")
        lines.append("")

    comfort = report.get("top_comfort_tracks", [])
    if comfort:
        lines.append("### Comfort Tracks")
        lines.append("")
        for i, item in enumerate(comfort, 1):
            lines.append(f"{i:2d}. {item['artist']} - {item['track']} ({item['play_count']} plays)")

    return "\n".join(lines)


def format_transitions(report):
    """Format a transitions report."""
    summary = report.get("summary", {})
    lines = [
        "## Artist Transitions",
        "",
        _range_line(report),
        "",
        f"- **Transitions**: {summary.get('total_transitions', 0)} "
        f"({summary.get('unique_transitions', 0)} distinct pairs)",
        f"- **Most connected artist**: {summary.get('most_connected_artist') or '-'}",
        f"- **Per session**: {summary.get('avg_transitions_per_session', 0):.2f}",
        "",
    ]

    top = report.get("top_transitions", [])[:15]
    if top:
        lines.append("### Top Transitions")
        lines.append("")
        for t in top:
            lines.append(f"- {t['from_artist']} -> {t['to_artist']}: {t['count']} ({t['percentage']:.1f}%)")

    return "\n".join(lines)


def format_diversity(report):
    """Format a diversity report."""
    summary = report.get("summary", {})
    lines = [
        "## Diversity",
        "",
        _range_line(report),
        "",
        f"- **Average score**: {summary.get('avg_diversity_score', 0):.1f}/100",
        f"- **Average entropy**: {summary.get('avg_shannon_entropy', 0):.2f} bits",
        f"- **Average Gini**: {summary.get('avg_gini_coefficient', 0):.2f}",
        f"- **Unique artists**: {summary.get('total_unique_artists', 0)}",
        f"- **Most diverse**: {summary.get('most_diverse_period') or '-'}",
        f"- **Least diverse**: {summary.get('least_diverse_period') or '-'}",
        "",
    ]

    timeline = report.get("timeline", [])
    if timeline:
        lines.append("```")
        for point in timeline:
            bar = ascii_bar_int(round(point["diversity_score"]), 100, 30, point["period"])
            lines.append(f"{bar} {point['label']}")
        lines.append("```")

    return "\n".join(lines)


def _top_lines(title, rows, describe):
    if not rows:
        return []
    lines = [f"### {title}", ""]
    for row in rows:
        lines.append(f"{row['rank']:2d}. {describe(row)} ({row['play_count']} plays)")
    lines.append("")
    return lines


def format_yearly(report):
    """Format a yearly review."""
    overview = report.get("overview", {})
    patterns = report.get("listening_patterns", {})
    discoveries = report.get("discoveries", {})
    diversity = report.get("diversity", {})
    top_content = report.get("top_content", {})

    lines = [
        f"## {report.get('year')} in Music",
        "",
        _range_line(report),
        "",
        f"- **Listens**: {overview.get('total_listens', 0)} "
        f"({overview.get('average_per_day', 0):.1f} per day)",
        f"- **Artists / tracks / albums**: {overview.get('total_artists', 0)} / "
        f"{overview.get('total_tracks', 0)} / {overview.get('total_albums', 0)}",
        f"- **Most active month**: {overview.get('most_active_month') or '-'}",
        f"- **Most active day**: {overview.get('most_active_day') or '-'}",
        f"- **New artists / tracks**: {discoveries.get('new_artists', 0)} / "
        f"{discoveries.get('new_tracks', 0)}",
        f"- **Diversity**: {diversity.get('diversity_score', 0):.1f}/100 {diversity.get('label') or '-'}",
        "",
    ]

    if overview.get("total_listens"):
        lines.append("### Listening Personality")
        lines.append("")
        lines.append("```")
        for label, key in (
            ("Night owl", "night_owl_score"),
            ("Early bird", "early_bird_score"),
            ("Weekend warrior", "weekend_warrior_score"),
        ):
            lines.append(ascii_bar_int(round(patterns.get(key, 0)), 100, 30, label))
        lines.append("```")
        lines.append("")

    lines += _top_lines("Top Artists", top_content.get("top_artists", [])[:10], lambda r: r["artist"])
    lines += _top_lines(
        "Top Tracks", top_content.get("top_tracks", [])[:10], lambda r: f"{r['artist']} - {r['track']}"
    )

    milestones = report.get("milestones", [])
    if milestones:
        lines.append("### Milestones")
        lines.append("")
        for m in milestones:
            lines.append(f"- **{m['title']}**: {m['value']} ({m['description']})")

    return "\n".join(lines)


def format_year_comparison(report):
    """Format a year-over-year comparison."""
    lines = [
        f"## {report.get('current_year')} vs {report.get('previous_year')}",
        "",
        _range_line(report),
        "",
        f"- **Listens**: {report.get('listens_change', 0):+d} "
        f"({report.get('listens_change_percent', 0):+.1f}%)",
        f"- **Artists**: {report.get('artists_change', 0):+d} "
        f"({report.get('artists_change_percent', 0):+.1f}%)",
        f"- **Diversity**: {report.get('diversity_change', 0):+.1f}",
        f"- **Still in your top 10**: {', '.join(report.get('top_artists_overlap', [])) or '-'}",
        f"- **New favorites**: {', '.join(report.get('new_favorites', [])) or '-'}",
    ]
    return "\n".join(lines)


def format_stats(report):
    """Format library stats."""
    lines = [
        "## Library Stats",
        "",
        _range_line(report),
        "",
        f"- **Listens**: {report.get('total_listens', 0)}",
        f"- **Artists / tracks / albums**: {report.get('unique_artists', 0)} / "
        f"{report.get('unique_tracks', 0)} / {report.get('unique_albums', 0)}",
        "",
    ]
    lines += _top_lines("Top Artists", report.get("top_artists", []), lambda r: r["artist"])
    lines += _top_lines(
        "Top Tracks", report.get("top_tracks", []), lambda r: f"{r['artist']} - {r['track']}"
    )
    lines += _top_lines(
        "Top Albums", report.get("top_albums", []), lambda r: f"{r['artist']} - {r['album']}"
    )
    return "\n".join(lines).rstrip()


FORMATTERS = {
    "sessions": format_sessions,
    "heatmap": format_heatmap,
    "novelty": format_novelty,
    "transitions": format_transitions,
    "diversity": format_diversity,
    "yearly": format_yearly,
    "year_comparison": format_year_comparison,
    "stats": format_stats,
}


def render_markdown(report: dict) -> str:
    """Render any engine report as markdown."""
    formatter = FORMATTERS.get(report.get("report_type"))
    if formatter is None:
        return "```json\n" + to_json(report) + "\n```"
    return formatter(report)


def generate_report(report: dict, output_path: str) -> str:
    """
    Write a report as markdown.

    Args:
        report: Output of ListeningReportEngine
        output_path: Where to write the markdown file

    Returns:
        The markdown text
    """
    sections = [
        "# Listening Patterns Report",
        "",
        f"*Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}*",
        "",
        render_markdown(report),
        "",
    ]

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    report_text = "\n".join(sections)
    output.write_text(report_text, encoding="utf-8")
    logger.info("Report written to %s", output_path)
    return report_text
