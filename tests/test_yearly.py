"""Tests for the yearly review and year comparison."""

from datetime import datetime, timezone

import pytest
from src.analyzers.yearly import (
    build_yearly_report,
    compare_years,
    compute_discoveries,
    compute_listening_patterns,
    compute_overview,
    year_bounds,
)
from src.models import ListenEvent, parse_timestamp


def _listen(ts, artist, track):
    return ListenEvent(artist=artist, track=track, timestamp=parse_timestamp(ts), source="test")


def _history_2023():
    return [
        _listen("2023-06-01T12:00:00Z", "Radiohead", "Creep"),
        _listen("2023-06-02T12:00:00Z", "Muse", "Hysteria"),
    ]


def _events_2024():
    return [
        _listen("2024-01-05T22:00:00Z", "Radiohead", "Karma Police"),
        _listen("2024-01-05T22:10:00Z", "Radiohead", "Karma Police"),
        _listen("2024-01-06T23:00:00Z", "Björk", "Army of Me"),
        _listen("2024-03-10T01:00:00Z", "Portishead", "Roads"),
        _listen("2024-03-10T08:00:00Z", "Portishead", "Glory Box"),
    ]


class TestYearBounds:
    def test_utc_calendar_year(self):
        start, end = year_bounds(2024)
        assert start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc)


class TestOverview:
    def test_totals(self):
        overview = compute_overview(_events_2024(), 2024)
        assert overview["total_listens"] == 5
        assert overview["total_artists"] == 3
        assert overview["total_tracks"] == 4
        assert overview["total_albums"] == 0
        assert overview["estimated_minutes"] == 17

    def test_average_uses_leap_year(self):
        assert compute_overview(_events_2024(), 2024)["average_per_day"] == round(5 / 366, 2)
        events = [_listen("2023-01-01T00:00:00Z", "A", "1")] * 73
        assert compute_overview(events, 2023)["average_per_day"] == 0.2

    def test_busiest_month_and_day_earliest_wins_ties(self):
        overview = compute_overview(_events_2024(), 2024)
        assert overview["most_active_month"] == "2024-01"
        assert overview["most_active_day"] == "2024-01-05"


class TestListeningPatterns:
    def test_personality_scores(self):
        patterns = compute_listening_patterns(_events_2024())
        assert patterns["night_owl_score"] == 80.0
        assert patterns["early_bird_score"] == 20.0
        assert patterns["weekend_warrior_score"] == 60.0
        assert patterns["peak_hour"] == 22
        assert patterns["longest_session_minutes"] == 10

    def test_local_time(self):
        patterns = compute_listening_patterns(
            [_listen("2024-01-05T22:00:00Z", "A", "1")], "Asia/Tokyo"
        )
        assert patterns["timezone"] == "Asia/Tokyo"
        assert patterns["peak_hour"] == 7
        assert patterns["peak_day_name"] == "Saturday"
        assert patterns["early_bird_score"] == 100.0
        assert patterns["weekend_warrior_score"] == 100.0


class TestDiscoveries:
    def test_earlier_history_is_not_new(self):
        history = _history_2023() + _events_2024()
        discoveries = compute_discoveries(_events_2024(), 2024, history)
        assert discoveries["new_artists"] == 2
        assert discoveries["new_tracks"] == 4
        assert discoveries["first_artist"]["artist"] == "Björk"
        assert discoveries["first_artist"]["track"] == "Army of Me"
        assert discoveries["top_discovery"] == {
            "artist": "Portishead",
            "first_heard": parse_timestamp("2024-03-10T01:00:00Z"),
            "plays_this_year": 2,
        }

    def test_without_history_everything_is_new(self):
        discoveries = compute_discoveries(_events_2024(), 2024)
        assert discoveries["new_artists"] == 3
        assert discoveries["first_artist"]["artist"] == "Radiohead"
        # Radiohead and Portishead tie on plays; the earlier discovery wins
        assert discoveries["top_discovery"]["artist"] == "Radiohead"


class TestBuildYearlyReport:
    def test_sections(self):
        report = build_yearly_report(_history_2023() + _events_2024(), 2024, _history_2023() + _events_2024())
        assert report["year"] == 2024
        assert report["overview"]["total_listens"] == 5
        assert report["top_content"]["top_artists"][0]["artist"] == "Portishead"
        assert report["discoveries"]["new_artists"] == 2
        assert report["diversity"]["artist_loyalty"] == 40.0
        assert report["diversity"]["exploration_score"] == 60.0

    def test_milestones(self):
        report = build_yearly_report(_events_2024(), 2024)
        titles = [m["title"] for m in report["milestones"]]
        assert titles == ["Music Marathon", "Your #1 Artist", "Explorer", "Night Owl"]
        assert report["milestones"][1]["value"] == "Portishead"
        assert report["milestones"][3]["value"] == "80% night listening"

    def test_marathon_listener(self):
        events = [
            _listen(f"2024-05-01T{10 + i // 2:02d}:{30 * (i % 2):02d}:00Z", "A", str(i))
            for i in range(8)
        ]
        report = build_yearly_report(events, 2024)
        assert report["listening_patterns"]["longest_session_minutes"] == 210
        marathon = report["milestones"][-1]
        assert marathon["title"] == "Marathon Listener"
        assert marathon["value"] == "210 minutes"

    def test_empty_year(self):
        report = build_yearly_report(_history_2023(), 2024, tz_name="Not/AZone")
        assert report["overview"]["total_listens"] == 0
        assert report["milestones"] == []
        assert report["discoveries"]["top_discovery"] is None
        assert report["listening_patterns"]["timezone"] == "UTC"


class TestCompareYears:
    def test_changes_and_favorites(self):
        current = build_yearly_report(_events_2024(), 2024)
        previous = build_yearly_report(_history_2023(), 2023)
        comparison = compare_years(current, previous)
        assert comparison["current_year"] == 2024
        assert comparison["previous_year"] == 2023
        assert comparison["listens_change"] == 3
        assert comparison["listens_change_percent"] == 150.0
        assert comparison["artists_change"] == 1
        assert comparison["artists_change_percent"] == 50.0
        assert comparison["top_artists_overlap"] == ["Radiohead"]
        assert comparison["new_favorites"] == ["Portishead", "Björk"]
        assert comparison["diversity_change"] == pytest.approx(
            current["diversity"]["diversity_score"] - previous["diversity"]["diversity_score"], abs=0.01
        )

    def test_empty_previous_year(self):
        comparison = compare_years(build_yearly_report(_events_2024(), 2024), build_yearly_report([], 2023))
        assert comparison["listens_change"] == 5
        assert comparison["listens_change_percent"] == 0.0
        assert comparison["artists_change_percent"] == 0.0
        assert comparison["top_artists_overlap"] == []
