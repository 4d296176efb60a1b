"""
Report Engine - Validate parameters, fetch listens once, run one analyzer.

The engine keeps no state between calls beyond its accessor and defaults,
so one instance can serve concurrent requests.
"""

import inspect
import logging
from datetime import datetime, timezone as dt_timezone
from typing import Optional

from .analyzers.diversity import analyze_diversity
from .analyzers.heatmap import build_heatmap
from .analyzers.novelty import analyze_novelty
from .analyzers.sessions import build_sessions_report
from .analyzers.top import STATS_LIMIT, build_stats
from .analyzers.transitions import analyze_transitions
from .analyzers.yearly import build_yearly_report, compare_years, year_bounds
from .config import Settings
from .errors import InvalidParameterError
from .models import format_timestamp, parse_timestamp
from .periods import default_granularity, parse_granularity
from .store import EventAccessor

logger = logging.getLogger(__name__)

REPORT_TYPES = (
    "sessions",
    "heatmap",
    "novelty",
    "transitions",
    "diversity",
    "yearly",
    "year_comparison",
    "stats",
)

MIN_YEAR = 1
MAX_YEAR = 9999


def _parse_bound(name: str, value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    try:
        return parse_timestamp(value)
    except InvalidParameterError as e:
        raise InvalidParameterError(name, e.reason)


def _require_int(name: str, value, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterError(name, f"must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidParameterError(name, f"must be >= {minimum}, got {value}")
    return value


def _require_year(name: str, value) -> int:
    if value is None:
        return datetime.now(dt_timezone.utc).year
    year = _require_int(name, value, MIN_YEAR)
    if year > MAX_YEAR:
        raise InvalidParameterError(name, f"must be <= {MAX_YEAR}, got {year}")
    return year


def _require_bool(name: str, value) -> bool:
    if not isinstance(value, bool):
        raise InvalidParameterError(name, f"must be true or false, got {value!r}")
    return value


class ListeningReportEngine:
    """Generate listening reports from an event accessor."""

    def __init__(self, accessor: EventAccessor, settings: Settings = None):
        self.accessor = accessor
        self.settings = settings or Settings()

    def _resolve_range(self, start, end) -> tuple:
        start_dt = _parse_bound("start", start)
        end_dt = _parse_bound("end", end)
        if start_dt is not None and end_dt is not None and start_dt > end_dt:
            raise InvalidParameterError("start", "must not be after end")
        return start_dt, end_dt

    def _fetch(self, start, end, source=None) -> list:
        # Accessor failures propagate unchanged; stores raise UpstreamUnavailableError
        return self.accessor.fetch_events(start, end, source)

    def _finish(self, report_type: str, report: dict, start, end, event_count: int) -> dict:
        logger.info("Built %s report from %d listens", report_type, event_count)
        report["report_type"] = report_type
        report["range"] = {"start": format_timestamp(start), "end": format_timestamp(end)}
        return report

    def sessions_report(
        self,
        start=None,
        end=None,
        gap_threshold_minutes: int = None,
        source: str = None,
        min_tracks: int = None,
    ) -> dict:
        """
        Listening sessions separated by inactivity gaps.

        Args:
            start: Range start (inclusive), None for unbounded
            end: Range end (inclusive), None for unbounded
            gap_threshold_minutes: Gap that closes a session (default 45)
            source: Only use listens from this source
            min_tracks: Minimum tracks for a session to be listed (default 2)
        """
        gap = _require_int(
            "gap_threshold_minutes",
            self.settings.gap_threshold_minutes if gap_threshold_minutes is None else gap_threshold_minutes,
            1,
        )
        min_tracks = _require_int(
            "min_tracks",
            self.settings.min_session_tracks if min_tracks is None else min_tracks,
            1,
        )
        if source is not None and not isinstance(source, str):
            raise InvalidParameterError("source", f"must be a string, got {source!r}")
        start_dt, end_dt = self._resolve_range(start, end)

        events = self._fetch(start_dt, end_dt, source or None)
        report = build_sessions_report(events, gap, min_tracks)
        return self._finish("sessions", report, start_dt, end_dt, len(events))

    def heatmap_report(self, start=None, end=None, timezone: str = None, normalize: bool = None) -> dict:
        """Weekday x hour activity matrix in the given timezone (UTC fallback)."""
        normalize = _require_bool(
            "normalize", self.settings.heatmap_normalize if normalize is None else normalize
        )
        start_dt, end_dt = self._resolve_range(start, end)
        tz_name = self.settings.timezone if timezone is None else timezone

        events = self._fetch(start_dt, end_dt)
        report = build_heatmap(events, tz_name, normalize, start_dt, end_dt)
        return self._finish("heatmap", report, start_dt, end_dt, len(events))

    def novelty_report(self, start=None, end=None, granularity=None) -> dict:
        """
        New vs repeat listening per period.

        First occurrences are judged against the whole history up to the
        range end, fetched once and windowed locally.
        """
        start_dt, end_dt = self._resolve_range(start, end)
        if granularity is None or granularity == "":
            gran = default_granularity(start_dt, end_dt)
        else:
            gran = parse_granularity(granularity)

        history = self._fetch(None, end_dt)
        window = [e for e in history if start_dt is None or e.timestamp >= start_dt]

        report = analyze_novelty(window, gran, history=history)
        return self._finish("novelty", report, start_dt, end_dt, len(window))

    def transitions_report(
        self,
        start=None,
        end=None,
        gap_threshold_minutes: int = None,
        min_count: int = None,
        include_self_transitions: bool = False,
    ) -> dict:
        """Directed artist-to-artist transitions within sessions."""
        gap = _require_int(
            "gap_threshold_minutes",
            self.settings.gap_threshold_minutes if gap_threshold_minutes is None else gap_threshold_minutes,
            1,
        )
        min_count = _require_int(
            "min_count",
            self.settings.min_transition_count if min_count is None else min_count,
            1,
        )
        include_self = _require_bool("include_self_transitions", include_self_transitions)
        start_dt, end_dt = self._resolve_range(start, end)

        events = self._fetch(start_dt, end_dt)
        report = analyze_transitions(events, gap, include_self, min_count)
        return self._finish("transitions", report, start_dt, end_dt, len(events))

    def diversity_report(self, start=None, end=None, granularity=None) -> dict:
        """Per-period artist diversity (entropy, Gini, score)."""
        gran = parse_granularity(
            self.settings.diversity_granularity if granularity is None or granularity == "" else granularity
        )
        start_dt, end_dt = self._resolve_range(start, end)

        events = self._fetch(start_dt, end_dt)
        report = analyze_diversity(events, gran)
        return self._finish("diversity", report, start_dt, end_dt, len(events))

    def yearly_report(self, year: int = None, timezone: str = None, gap_threshold_minutes: int = None) -> dict:
        """
        Review of one UTC calendar year.

        Args:
            year: Calendar year (default: the current year)
            timezone: Zone for peak times and personality scores
            gap_threshold_minutes: Session gap for session figures
        """
        year = _require_year("year", year)
        gap = _require_int(
            "gap_threshold_minutes",
            self.settings.gap_threshold_minutes if gap_threshold_minutes is None else gap_threshold_minutes,
            1,
        )
        tz_name = self.settings.timezone if timezone is None else timezone
        start_dt, end_dt = year_bounds(year)

        # Earlier listens decide what counts as a discovery
        history = self._fetch(None, end_dt)
        report = build_yearly_report(
            history, year, history, tz_name, gap, self.settings.min_session_tracks
        )
        return self._finish("yearly", report, start_dt, end_dt, report["overview"]["total_listens"])

    def year_comparison_report(
        self,
        year: int = None,
        previous_year: int = None,
        timezone: str = None,
        gap_threshold_minutes: int = None,
    ) -> dict:
        """
        Compare two calendar years.

        Args:
            year: Year being reviewed (default: the current year)
            previous_year: Year compared against (default: year - 1)
        """
        year = _require_year("year", year)
        if previous_year is None:
            if year <= MIN_YEAR:
                raise InvalidParameterError("year", f"has no previous year to compare with, got {year}")
            previous_year = year - 1
        previous_year = _require_year("previous_year", previous_year)
        gap = _require_int(
            "gap_threshold_minutes",
            self.settings.gap_threshold_minutes if gap_threshold_minutes is None else gap_threshold_minutes,
            1,
        )
        tz_name = self.settings.timezone if timezone is None else timezone

        current_start, current_end = year_bounds(year)
        previous_start, previous_end = year_bounds(previous_year)

        history = self._fetch(None, max(current_end, previous_end))
        reports = {}
        for y, y_end in ((year, current_end), (previous_year, previous_end)):
            upto = [e for e in history if e.timestamp <= y_end]
            reports[y] = build_yearly_report(upto, y, upto, tz_name, gap, self.settings.min_session_tracks)

        report = compare_years(reports[year], reports[previous_year])
        report["current_overview"] = reports[year]["overview"]
        report["previous_overview"] = reports[previous_year]["overview"]
        return self._finish(
            "year_comparison",
            report,
            min(current_start, previous_start),
            max(current_end, previous_end),
            len(history),
        )

    def stats_report(self, start=None, end=None, limit: int = None) -> dict:
        """Totals and top artists, tracks and albums in the range."""
        limit = _require_int("limit", STATS_LIMIT if limit is None else limit, 1)
        start_dt, end_dt = self._resolve_range(start, end)

        events = self._fetch(start_dt, end_dt)
        report = build_stats(events, limit)
        return self._finish("stats", report, start_dt, end_dt, len(events))

    def generate(self, report_type: str, **params) -> dict:
        """
        Run a report by name.

        Args:
            report_type: One of REPORT_TYPES
            **params: Keyword arguments of the matching *_report method
        """
        if report_type not in REPORT_TYPES:
            raise InvalidParameterError(
                "report_type", f"expected one of {', '.join(REPORT_TYPES)}, got {report_type!r}"
            )
        method = getattr(self, f"{report_type}_report")
        try:
            inspect.signature(method).bind(**params)
        except TypeError as e:
            raise InvalidParameterError("params", str(e))
        return method(**params)
