"""departby - Tells MBTA Red Line riders when to leave for the next train."""

__version__ = "0.1.0"

from .models import (
    Advisory,
    CountdownState,
    NormalizedPrediction,
    RankedPrediction,
    RoutePosition,
    Settings,
    Stop,
    Urgency,
)
from .advisor import DepartureAdvisor
from .mbta_client import MBTAClient, FeedUnavailableError
from .settings import SettingsStore, SettingsValidationError

__all__ = [
    "DepartureAdvisor",
    "MBTAClient",
    "FeedUnavailableError",
    "SettingsStore",
    "SettingsValidationError",
    "Advisory",
    "CountdownState",
    "NormalizedPrediction",
    "RankedPrediction",
    "RoutePosition",
    "Settings",
    "Stop",
    "Urgency",
]
