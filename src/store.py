"""
Event stores that feed the report engine.

Any object with a fetch_events(start, end, source) method returning listen
events in ascending timestamp order can back the engine. Two are provided:
an in-memory list and a SQLite database.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Protocol

from .errors import InvalidParameterError, UpstreamUnavailableError
from .models import ListenEvent, parse_timestamp

logger = logging.getLogger(__name__)


class EventAccessor(Protocol):
    def fetch_events(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        source: Optional[str] = None,
    ) -> list[ListenEvent]:
        """Events with start <= timestamp <= end, ascending; None bounds are open."""
        ...


def _in_range(event: ListenEvent, start, end, source) -> bool:
    if start is not None and event.timestamp < start:
        return False
    if end is not None and event.timestamp > end:
        return False
    if source is not None and event.source != source:
        return False
    return True


class InMemoryEventStore:
    """Read-only event store over a list, deduplicated on insert."""

    def __init__(self, events: Iterable[ListenEvent] = ()):
        unique = {}
        for event in events:
            key = (event.artist, event.track, event.timestamp, event.source)
            unique.setdefault(key, event)
        self._events = sorted(unique.values(), key=lambda e: e.timestamp)

    def fetch_events(self, start=None, end=None, source=None) -> list[ListenEvent]:
        return [e for e in self._events if _in_range(e, start, end, source)]


class SQLiteEventStore:
    """Listen events persisted in a SQLite database."""

    def __init__(self, db_path):
        self.db_path = str(db_path)

    @contextmanager
    def _connect(self):
        """Open a connection for one unit of work; commit on success, always close."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create the listens table and indexes if missing."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS listens (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        artist TEXT NOT NULL,
                        album TEXT,
                        track TEXT NOT NULL,
                        timestamp INTEGER NOT NULL,
                        source TEXT NOT NULL,
                        UNIQUE(artist, track, timestamp, source)
                    )
                """)
                conn.execute("CREATE INDEX IF NOT EXISTS idx_listens_timestamp ON listens(timestamp)")
                conn.execute("CREATE INDEX IF NOT EXISTS idx_listens_artist ON listens(artist)")
        except sqlite3.Error as e:
            raise UpstreamUnavailableError() from e

    def insert_events(self, events: Iterable[ListenEvent]) -> int:
        """
        Insert events, ignoring exact duplicates.

        Returns:
            Number of rows actually inserted
        """
        rows = [
            (e.artist, e.album, e.track, int(e.timestamp.timestamp()), e.source)
            for e in events
        ]
        try:
            with self._connect() as conn:
                before = conn.total_changes
                conn.executemany(
                    """INSERT OR IGNORE INTO listens (artist, album, track, timestamp, source)
                       VALUES (?, ?, ?, ?, ?)""",
                    rows,
                )
                inserted = conn.total_changes - before
        except sqlite3.Error as e:
            raise UpstreamUnavailableError() from e

        logger.info("Inserted %d of %d listens into %s", inserted, len(rows), self.db_path)
        return inserted

    def count_events(self) -> int:
        try:
            with self._connect() as conn:
                return conn.execute("SELECT COUNT(*) FROM listens").fetchone()[0]
        except sqlite3.Error as e:
            raise UpstreamUnavailableError() from e

    def fetch_events(self, start=None, end=None, source=None) -> list[ListenEvent]:
        query = "SELECT artist, album, track, timestamp, source FROM listens WHERE 1=1"
        params = []

        if start is not None:
            query += " AND timestamp >= ?"
            params.append(int(start.timestamp()))
        if end is not None:
            query += " AND timestamp <= ?"
            params.append(int(end.timestamp()))
        if source is not None:
            query += " AND source = ?"
            params.append(source)

        query += " ORDER BY timestamp ASC, id ASC"

        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise UpstreamUnavailableError() from e

        logger.debug("Fetched %d listens (start=%s, end=%s, source=%s)", len(rows), start, end, source)
        return [
            ListenEvent(
                artist=row["artist"],
                album=row["album"],
                track=row["track"],
                timestamp=parse_timestamp(row["timestamp"]),
                source=row["source"],
            )
            for row in rows
        ]


def load_events_json(path) -> list[ListenEvent]:
    """
    Read listen events from a JSON export.

    The file holds either a list of event objects or {"listens": [...]}.
    Each object needs artist, track and timestamp (or played_at).

    Raises:
        InvalidParameterError: If the file is not a usable export
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        raise InvalidParameterError("path", f"cannot read listens from {path}: {e}")

    if isinstance(data, dict):
        data = data.get("listens", [])
    if not isinstance(data, list):
        raise InvalidParameterError("path", f"{path} does not contain a list of listens")

    events = []
    for i, row in enumerate(data):
        if not isinstance(row, dict):
            raise InvalidParameterError("path", f"listen #{i} in {path} is not an object")
        events.append(ListenEvent.from_dict(row))
    return events
