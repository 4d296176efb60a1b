"""Listening Patterns - Behavioral analytics over a personal listening history."""

from .engine import REPORT_TYPES, ListeningReportEngine
from .errors import InvalidParameterError, ReportError, UpstreamUnavailableError
from .models import ListenEvent
from .periods import Granularity
from .store import InMemoryEventStore, SQLiteEventStore, load_events_json

__version__ = "0.1.0"

__all__ = [
    "REPORT_TYPES",
    "Granularity",
    "InMemoryEventStore",
    "InvalidParameterError",
    "ListenEvent",
    "ListeningReportEngine",
    "ReportError",
    "SQLiteEventStore",
    "UpstreamUnavailableError",
    "load_events_json",
]
