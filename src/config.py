"""
Configuration for the listening report engine.

Values come from the environment, optionally seeded from a .env file at
the project root. Every setting has a default so the engine runs without
any configuration.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .periods import Granularity

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_str_env(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def parse_int_env(name: str, default: int, minimum: Optional[int] = None) -> int:
    """Read an integer env var, falling back to default on bad values."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %s", name, value, default)
        return default
    if minimum is not None and parsed < minimum:
        logger.warning("Ignoring %s=%r: must be >= %s, using %s", name, value, minimum, default)
        return default
    return parsed


def parse_bool_env(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning("Ignoring %s=%r: not a boolean, using %s", name, value, default)
    return default


def parse_choice_env(name: str, default: str, choices) -> str:
    """Read a lower-cased env var that must be one of choices."""
    value = parse_str_env(name, default).lower()
    if value not in choices:
        logger.warning(
            "Ignoring %s=%r: expected one of %s, using %s",
            name, value, ", ".join(choices), default,
        )
        return default
    return value


@dataclass(frozen=True)
class Settings:
    """Engine defaults; each one can be overridden per request."""

    db_path: str = "data/listens.db"
    log_level: str = "INFO"
    gap_threshold_minutes: int = 45
    min_session_tracks: int = 2
    min_transition_count: int = 1
    timezone: str = "UTC"
    heatmap_normalize: bool = False
    diversity_granularity: str = "week"


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: .env file to load first (default: PROJECT_ROOT/.env).
            Variables already set in the environment win.
    """
    env_path = Path(env_file) if env_file else PROJECT_ROOT / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    defaults = Settings()
    return Settings(
        db_path=parse_str_env("LISTENS_DB_PATH", defaults.db_path),
        log_level=parse_str_env("LISTENS_LOG_LEVEL", defaults.log_level).upper(),
        gap_threshold_minutes=parse_int_env(
            "LISTENS_GAP_MINUTES", defaults.gap_threshold_minutes, minimum=1
        ),
        min_session_tracks=parse_int_env(
            "LISTENS_MIN_SESSION_TRACKS", defaults.min_session_tracks, minimum=1
        ),
        min_transition_count=parse_int_env(
            "LISTENS_MIN_TRANSITION_COUNT", defaults.min_transition_count, minimum=1
        ),
        timezone=parse_str_env("LISTENS_TIMEZONE", defaults.timezone),
        heatmap_normalize=parse_bool_env("LISTENS_HEATMAP_NORMALIZE", defaults.heatmap_normalize),
        diversity_granularity=parse_choice_env(
            "LISTENS_DIVERSITY_GRANULARITY",
            defaults.diversity_granularity,
            [g.value for g in Granularity],
        ),
    )


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once for CLI use."""
    numeric = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
