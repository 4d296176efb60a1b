"""
Listen event model shared by every analyzer.

A listen event is one recorded play of a track at a UTC instant.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .errors import InvalidParameterError


def parse_timestamp(value) -> datetime:
    """
    Parse a timestamp into an aware UTC datetime with second precision.

    Args:
        value: ISO-8601 string (trailing "Z" allowed), epoch seconds,
            or a datetime. Naive datetimes are taken as UTC.

    Returns:
        Timezone-aware UTC datetime without microseconds

    Raises:
        InvalidParameterError: If the value cannot be interpreted
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, bool):
        raise InvalidParameterError("timestamp", f"unsupported value {value!r}")
    elif isinstance(value, (int, float)):
        try:
            dt = datetime.fromtimestamp(int(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise InvalidParameterError("timestamp", f"epoch seconds out of range: {value!r}")
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise InvalidParameterError("timestamp", f"not an ISO-8601 instant: {value!r}")
    else:
        raise InvalidParameterError("timestamp", f"unsupported value {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Render a UTC datetime as ISO-8601 with a trailing Z."""
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _text_field(data: dict, name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidParameterError(name, f"must be a string, got {type(value).__name__}")
    return value.strip()


@dataclass(frozen=True)
class ListenEvent:
    """One play of a track."""

    artist: str
    track: str
    timestamp: datetime
    source: str = ""
    album: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ListenEvent":
        """
        Build an event from a plain dict (JSON export row, API payload).

        Accepts "played_at" as an alias for "timestamp".
        """
        if not isinstance(data, dict):
            raise InvalidParameterError("listen", f"must be an object, got {type(data).__name__}")

        artist = _text_field(data, "artist")
        track = _text_field(data, "track")
        if not artist:
            raise InvalidParameterError("artist", "must be a non-empty string")
        if not track:
            raise InvalidParameterError("track", "must be a non-empty string")

        raw_ts = data.get("timestamp")
        if raw_ts is None:
            raw_ts = data.get("played_at")
        if raw_ts is None:
            raise InvalidParameterError("timestamp", "is required")

        return cls(
            artist=artist,
            track=track,
            timestamp=parse_timestamp(raw_ts),
            source=_text_field(data, "source"),
            album=_text_field(data, "album") or None,
        )

    def to_dict(self) -> dict:
        return {
            "artist": self.artist,
            "album": self.album,
            "track": self.track,
            "timestamp": format_timestamp(self.timestamp),
            "source": self.source,
        }
