"""Tests for report rendering."""

import json

import pytest
from src.engine import REPORT_TYPES, ListeningReportEngine
from src.models import ListenEvent, parse_timestamp
from src.reporter import (
    ascii_bar_int,
    export_report_json,
    generate_report,
    render_markdown,
    to_json,
)
from src.store import InMemoryEventStore


def _listen(ts, artist, track):
    return ListenEvent(artist=artist, track=track, timestamp=parse_timestamp(ts), source="test")


@pytest.fixture
def engine():
    return ListeningReportEngine(InMemoryEventStore([
        _listen("2024-01-01T10:00:00Z", "Radiohead", "Paranoid Android"),
        _listen("2024-01-01T10:05:00Z", "Radiohead", "Karma Police"),
        _listen("2024-01-01T10:09:00Z", "Björk", "Army of Me"),
        _listen("2024-01-08T21:00:00Z", "Portishead", "Roads"),
        _listen("2024-01-08T21:04:00Z", "Radiohead", "Karma Police"),
    ]))


class TestAsciiBar:
    def test_full_and_empty(self):
        assert ascii_bar_int(10, 10, width=5) == "[#####]"
        assert ascii_bar_int(0, 0, width=5) == "[.....]"

    def test_label(self):
        assert ascii_bar_int(1, 2, width=4, label="0-30").startswith("0-30")


class TestJson:
    def test_datetimes_become_utc_strings(self, engine):
        data = json.loads(to_json(engine.sessions_report()))
        assert data["sessions"][0]["start"] == "2024-01-01T10:00:00Z"
        assert data["sessions"][0]["tracks"][0]["timestamp"] == "2024-01-01T10:00:00Z"

    def test_keeps_unicode(self, engine):
        assert "Björk" in to_json(engine.transitions_report())

    def test_export(self, engine, tmp_path):
        path = tmp_path / "out" / "novelty.json"
        report = engine.novelty_report()
        assert export_report_json(report, str(path)) is report
        assert json.loads(path.read_text(encoding="utf-8"))["report_type"] == "novelty"


class TestMarkdown:
    @pytest.mark.parametrize("report_type", REPORT_TYPES)
    def test_every_report_type_renders(self, engine, report_type):
        text = render_markdown(engine.generate(report_type))
        assert text.startswith("## ")
        assert "*Range: " in text

    def test_heatmap_peak_line(self, engine):
        text = render_markdown(engine.heatmap_report())
        assert "Peak: Monday 10:00 (3 listens of 5)" in text
        assert "<< peak" in text

    def test_empty_heatmap(self):
        engine = ListeningReportEngine(InMemoryEventStore([]))
        assert "No listens in range." in render_markdown(engine.heatmap_report())

    def test_transitions_listed(self, engine):
        text = render_markdown(engine.transitions_report())
        assert "Radiohead -> Björk: 1" in text

    def test_unknown_report_falls_back_to_json(self):
        assert render_markdown({"foo": 1}).startswith("```json")

    def test_generate_report_writes_file(self, engine, tmp_path):
        path = tmp_path / "reports" / "diversity.md"
        text = generate_report(engine.diversity_report(), str(path))
        assert path.read_text(encoding="utf-8") == text
        assert text.startswith("# Listening Patterns Report")
        assert "## Diversity" in text

    def test_yearly(self, engine):
        text = render_markdown(engine.yearly_report(year=2024))
        assert text.startswith("## 2024 in Music")
        assert "*Range: 2024-01-01T00:00:00Z to 2024-12-31T23:59:59Z*" in text
        assert " 1. Radiohead (3 plays)" in text
        assert "- **Your #1 Artist**: Radiohead" in text

    def test_year_comparison_with_empty_previous_year(self, engine):
        text = render_markdown(engine.year_comparison_report(year=2024))
        assert text.startswith("## 2024 vs 2023")
        assert "- **Listens**: +5 (+0.0%)" in text
        assert "- **Still in your top 10**: -" in text

    def test_stats_skips_empty_album_list(self, engine):
        text = render_markdown(engine.stats_report())
        assert "- **Artists / tracks / albums**: 3 / 4 / 0" in text
        assert "### Top Tracks" in text
        assert "### Top Albums" not in text
