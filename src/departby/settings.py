"""Rider settings with validation and optional JSON persistence."""

import json
import logging
from typing import Dict, Optional

from .models import Settings

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = Settings()

MIN_WALK_MINUTES = 1
MAX_WALK_MINUTES = 60


class SettingsValidationError(ValueError):
    """A settings update was rejected; nothing was applied."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def _as_int(field: str, value) -> int:
    if isinstance(value, bool):
        raise SettingsValidationError(field, "Must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise SettingsValidationError(field, "Must be a whole number")
    if isinstance(value, float) and number != value:
        raise SettingsValidationError(field, "Must be a whole number")
    return number


def _non_empty(field: str, value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SettingsValidationError(field, "Must not be empty")
    return value


def validate_settings(values: Dict[str, object]) -> Settings:
    """
    Build a Settings from a full set of values, checking every bound.

    Raises:
        SettingsValidationError: On the first field that is out of bounds.
    """
    unknown = set(values) - set(DEFAULT_SETTINGS.to_dict())
    if unknown:
        field = sorted(unknown)[0]
        raise SettingsValidationError(field, "Unknown setting")

    walk = _as_int("walk_time_minutes", values["walk_time_minutes"])
    if walk < MIN_WALK_MINUTES:
        raise SettingsValidationError("walk_time_minutes", "Must be at least 1 minute")
    if walk > MAX_WALK_MINUTES:
        raise SettingsValidationError("walk_time_minutes", "Max 60 minutes")

    direction = _as_int("direction_id", values["direction_id"])
    if direction not in (0, 1):
        raise SettingsValidationError("direction_id", "Must be 0 or 1")

    return Settings(
        walk_time_minutes=walk,
        station_id=_non_empty("station_id", values["station_id"]),
        route_id=_non_empty("route_id", values["route_id"]),
        direction_id=direction,
    )


class SettingsStore:
    """
    Holds the current rider settings.

    Updates are validated as a whole before anything changes, so a rejected
    update leaves the previous settings in effect.
    """

    def __init__(self, path: Optional[str] = None):
        """
        Initialize the store.

        Args:
            path: Optional JSON file to load from and save to. Without one the
                settings only live in memory.
        """
        self.path = path
        self._settings = self._load() if path else DEFAULT_SETTINGS

    def _load(self) -> Settings:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                stored = json.load(f)
            return validate_settings({**DEFAULT_SETTINGS.to_dict(), **stored})
        except FileNotFoundError:
            return DEFAULT_SETTINGS
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error reading settings from {self.path}: {e}")
            return DEFAULT_SETTINGS

    def _save(self, settings: Settings) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f)

    def get(self) -> Settings:
        return self._settings

    def update(self, updates: Dict[str, object]) -> Settings:
        """
        Apply a partial update.

        Args:
            updates: Any subset of walk_time_minutes, station_id, route_id,
                direction_id.

        Returns:
            The new settings.

        Raises:
            SettingsValidationError: If any field is unknown or out of bounds.
        """
        candidate = validate_settings({**self._settings.to_dict(), **updates})
        if self.path:
            self._save(candidate)
        self._settings = candidate
        logger.info(f"Settings updated: {candidate}")
        return candidate

    def reset(self) -> Settings:
        """Restore the defaults."""
        if self.path:
            self._save(DEFAULT_SETTINGS)
        self._settings = DEFAULT_SETTINGS
        return self._settings
