"""Tests for the report engine."""

import pytest
from src.config import Settings
from src.engine import REPORT_TYPES, ListeningReportEngine
from src.errors import InvalidParameterError, UpstreamUnavailableError
from src.models import ListenEvent, parse_timestamp
from src.store import InMemoryEventStore


def _listen(ts, artist, track, source="lastfm"):
    return ListenEvent(artist=artist, track=track, timestamp=parse_timestamp(ts), source=source)


def _sample_events():
    return [
        _listen("2023-12-20T09:00:00Z", "Radiohead", "Karma Police"),
        _listen("2024-01-01T10:00:00Z", "Radiohead", "Paranoid Android"),
        _listen("2024-01-01T10:05:00Z", "Radiohead", "Karma Police"),
        _listen("2024-01-01T11:30:00Z", "Björk", "Army of Me", source="listenbrainz"),
        _listen("2024-01-01T11:34:00Z", "Portishead", "Roads", source="listenbrainz"),
    ]


class RecordingStore(InMemoryEventStore):
    def __init__(self, events):
        super().__init__(events)
        self.calls = []

    def fetch_events(self, start=None, end=None, source=None):
        self.calls.append((start, end, source))
        return super().fetch_events(start, end, source)


class FailingStore:
    def fetch_events(self, start=None, end=None, source=None):
        raise UpstreamUnavailableError()


@pytest.fixture
def engine():
    return ListeningReportEngine(InMemoryEventStore(_sample_events()))


class TestSessionsReport:
    def test_end_to_end_example(self, engine):
        report = engine.sessions_report(
            start="2024-01-01T00:00:00Z", end="2024-01-01T23:59:59Z", min_tracks=1
        )
        assert report["report_type"] == "sessions"
        assert [s["track_count"] for s in report["sessions"]] == [2, 2]
        assert report["range"] == {"start": "2024-01-01T00:00:00Z", "end": "2024-01-01T23:59:59Z"}

    def test_source_filter(self, engine):
        report = engine.sessions_report(source="listenbrainz")
        assert report["summary"]["total_sessions"] == 1
        assert report["sessions"][0]["tracks"][0]["artist"] == "Björk"

    def test_default_min_tracks_drops_singletons(self, engine):
        report = engine.sessions_report()
        assert report["summary"]["short_sessions_dropped"] == 1
        assert report["summary"]["gap_threshold_minutes"] == 45

    def test_settings_override_defaults(self):
        engine = ListeningReportEngine(
            InMemoryEventStore(_sample_events()), Settings(gap_threshold_minutes=120)
        )
        report = engine.sessions_report(start="2024-01-01T00:00:00Z")
        assert report["summary"]["total_sessions"] == 1

    @pytest.mark.parametrize("gap", [0, -5, "45", 4.5, True])
    def test_invalid_gap(self, engine, gap):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.sessions_report(gap_threshold_minutes=gap)
        assert exc_info.value.parameter == "gap_threshold_minutes"

    def test_invalid_min_tracks(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.sessions_report(min_tracks=0)
        assert exc_info.value.parameter == "min_tracks"


class TestRangeValidation:
    def test_start_after_end(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.heatmap_report(start="2024-02-01T00:00:00Z", end="2024-01-01T00:00:00Z")
        assert exc_info.value.parameter == "start"

    def test_unparseable_bound(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.diversity_report(end="yesterday")
        assert exc_info.value.parameter == "end"

    def test_out_of_range_epoch_names_bound(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.sessions_report(start=10 ** 20)
        assert exc_info.value.parameter == "start"

    def test_validation_happens_before_fetch(self):
        store = RecordingStore(_sample_events())
        engine = ListeningReportEngine(store)
        with pytest.raises(InvalidParameterError):
            engine.transitions_report(min_count=0)
        assert store.calls == []


class TestHeatmapReport:
    def test_timezone_and_totals(self, engine):
        report = engine.heatmap_report(timezone="America/New_York")
        assert report["timezone"] == "America/New_York"
        assert sum(c["count"] for c in report["cells"]) == 5

    def test_bad_timezone_is_not_an_error(self, engine):
        assert engine.heatmap_report(timezone="Nowhere/Special")["timezone"] == "UTC"

    def test_normalize_must_be_bool(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.heatmap_report(normalize="yes")


class TestNoveltyReport:
    def test_history_before_window_counts(self):
        store = RecordingStore(_sample_events())
        engine = ListeningReportEngine(store)
        report = engine.novelty_report(start="2024-01-01T00:00:00Z", end="2024-01-01T23:59:59Z")

        assert len(store.calls) == 1
        assert store.calls[0][0] is None
        point = report["timeline"][0]
        assert point["period"] == "2024-01-01"
        assert point["total_events"] == 4
        assert point["new_tracks"] == 3
        assert point["repeat_tracks"] == 1
        assert [d["artist"] for d in report["new_artists_discovered"]] == ["Björk", "Portishead"]

    def test_default_granularity_from_range(self, engine):
        report = engine.novelty_report(start="2023-01-01T00:00:00Z", end="2024-12-31T00:00:00Z")
        assert report["summary"]["granularity"] == "month"
        assert engine.novelty_report()["summary"]["granularity"] == "week"

    def test_unknown_granularity(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.novelty_report(granularity="fortnight")
        assert exc_info.value.parameter == "granularity"


class TestTransitionsReport:
    def test_defaults(self, engine):
        report = engine.transitions_report()
        pairs = {(t["from_artist"], t["to_artist"]) for t in report["transitions"]}
        assert pairs == {("Björk", "Portishead")}
        assert report["summary"]["session_count"] == 3

    def test_include_self(self, engine):
        report = engine.transitions_report(include_self_transitions=True)
        pairs = {(t["from_artist"], t["to_artist"]) for t in report["transitions"]}
        assert ("Radiohead", "Radiohead") in pairs


class TestDiversityReport:
    def test_weekly_default(self, engine):
        report = engine.diversity_report()
        assert report["summary"]["granularity"] == "week"
        assert [p["period"] for p in report["timeline"]] == ["2023-W51", "2024-W01"]


class TestYearlyReport:
    def test_earlier_listens_are_not_discoveries(self):
        store = RecordingStore(_sample_events())
        report = ListeningReportEngine(store).yearly_report(year=2024)
        assert report["report_type"] == "yearly"
        assert report["overview"]["total_listens"] == 4
        assert report["discoveries"]["new_artists"] == 2
        assert report["discoveries"]["new_tracks"] == 3
        assert report["range"] == {"start": "2024-01-01T00:00:00Z", "end": "2024-12-31T23:59:59Z"}
        assert store.calls == [(None, parse_timestamp("2024-12-31T23:59:59Z"), None)]

    @pytest.mark.parametrize("year", [0, 10000, True, "2024", 2024.0])
    def test_invalid_year(self, engine, year):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.yearly_report(year=year)
        assert exc_info.value.parameter == "year"


class TestYearComparisonReport:
    def test_previous_year_defaults_to_year_before(self):
        store = RecordingStore(_sample_events())
        report = ListeningReportEngine(store).year_comparison_report(year=2024)
        assert report["previous_year"] == 2023
        assert report["listens_change"] == 3
        assert report["listens_change_percent"] == 300.0
        assert report["top_artists_overlap"] == ["Radiohead"]
        assert report["previous_overview"]["total_listens"] == 1
        assert report["range"] == {"start": "2023-01-01T00:00:00Z", "end": "2024-12-31T23:59:59Z"}
        assert len(store.calls) == 1

    def test_first_year_has_nothing_to_compare(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.year_comparison_report(year=1)
        assert exc_info.value.parameter == "year"

    def test_invalid_previous_year(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.year_comparison_report(year=2024, previous_year=0)
        assert exc_info.value.parameter == "previous_year"


class TestStatsReport:
    def test_totals(self, engine):
        report = engine.stats_report()
        assert report["total_listens"] == 5
        assert report["unique_artists"] == 3
        assert report["top_artists"][0] == {
            "artist": "Radiohead", "play_count": 3, "percentage": 60.0, "rank": 1,
        }

    def test_limit_and_range(self, engine):
        report = engine.stats_report(start="2024-01-01T00:00:00Z", limit=1)
        assert report["total_listens"] == 4
        assert len(report["top_tracks"]) == 1

    def test_invalid_limit(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.stats_report(limit=0)
        assert exc_info.value.parameter == "limit"


class TestGenerate:
    def test_dispatch_all_types(self, engine):
        for report_type in REPORT_TYPES:
            assert engine.generate(report_type)["report_type"] == report_type

    def test_unknown_report_type(self, engine):
        with pytest.raises(InvalidParameterError) as exc_info:
            engine.generate("wrapped")
        assert exc_info.value.parameter == "report_type"

    def test_unknown_param(self, engine):
        with pytest.raises(InvalidParameterError):
            engine.generate("heatmap", granularity="day")


class TestEmptyStore:
    def test_every_report_is_well_formed(self):
        engine = ListeningReportEngine(InMemoryEventStore([]))
        assert engine.sessions_report()["sessions"] == []
        assert len(engine.heatmap_report()["cells"]) == 168
        assert engine.novelty_report()["summary"]["avg_novelty_ratio"] == 0.0
        assert engine.transitions_report()["summary"]["avg_transitions_per_session"] == 0.0
        assert engine.diversity_report()["timeline"] == []
        assert engine.yearly_report(year=2024)["milestones"] == []
        assert engine.stats_report()["top_artists"] == []


class TestUpstreamFailure:
    def test_propagates(self):
        engine = ListeningReportEngine(FailingStore())
        for report_type in REPORT_TYPES:
            with pytest.raises(UpstreamUnavailableError):
                engine.generate(report_type)
