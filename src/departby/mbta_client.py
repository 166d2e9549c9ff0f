"""MBTA v3 predictions fetcher."""

import logging
import os
import time
from typing import Dict, Optional, Tuple

import requests

logger = logging.getLogger(__name__)

MBTA_API_BASE = "https://api-v3.mbta.com"
PREDICTIONS_PATH = "/predictions"
REQUEST_TIMEOUT = 10  # seconds

CacheKey = Tuple[str, str, int]


class FeedUnavailableError(Exception):
    """The predictions feed could not be fetched or was not a valid document."""


class MBTAClient:
    """Fetches prediction documents from the MBTA v3 API."""

    def __init__(self, api_key: Optional[str] = None, session: Optional[requests.Session] = None):
        """
        Initialize the MBTA client.

        Args:
            api_key: Optional API key; defaults to the MBTA_API_KEY environment
                variable. Works without one at a lower rate limit.
            session: Optional requests session to reuse.
        """
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/vnd.api+json"})
        api_key = api_key if api_key is not None else os.getenv("MBTA_API_KEY")
        if api_key:
            self._session.headers.update({"x-api-key": api_key})
        self._cache: Dict[CacheKey, Tuple[dict, float]] = {}  # key -> (document, timestamp)
        self._cache_ttl = 10  # Cache for 10 seconds
        self._max_cache_size = 10  # Limit cache entries

    def get_predictions(self, station_id: str, route_id: str, direction_id: int) -> dict:
        """
        Get the predictions document for a stop, route and direction.

        Args:
            station_id: MBTA stop ID (e.g., "place-jfk")
            route_id: MBTA route ID (e.g., "Red")
            direction_id: 0 or 1

        Returns:
            Parsed JSON:API document with `data` and `included` lists.

        Raises:
            FeedUnavailableError: On network failure, a non-success status or
                an unusable body.
        """
        key = (station_id, route_id, direction_id)

        # Check cache
        now = time.time()
        if key in self._cache:
            document, timestamp = self._cache[key]
            if now - timestamp < self._cache_ttl:
                logger.debug(f"Using cached predictions for {key}")
                return document

        # Evict expired entries to prevent unbounded growth
        self._evict_expired_cache(now)

        # Enforce max cache size
        if len(self._cache) >= self._max_cache_size:
            # Remove oldest entry
            oldest_key = min(self._cache.keys(), key=lambda k: self._cache[k][1])
            del self._cache[oldest_key]

        document = self._fetch(station_id, route_id, direction_id)
        # Replace, never merge: a response only describes the moment it was fetched
        self._cache[key] = (document, now)
        return document

    def _fetch(self, station_id: str, route_id: str, direction_id: int) -> dict:
        params = {
            "filter[stop]": station_id,
            "filter[route]": route_id,
            "filter[direction_id]": direction_id,
            "include": "stop,vehicle,trip",
            "sort": "departure_time",
        }
        url = f"{MBTA_API_BASE}{PREDICTIONS_PATH}"

        logger.debug(f"Fetching {url} for {station_id}/{route_id}/{direction_id}")
        try:
            response = self._session.get(url, params=params, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            document = response.json()
        except requests.RequestException as e:
            logger.error(f"Failed to fetch predictions: {e}")
            raise FeedUnavailableError(f"MBTA API request failed: {e}") from e
        except ValueError as e:
            logger.error(f"MBTA API returned invalid JSON: {e}")
            raise FeedUnavailableError("MBTA API returned invalid JSON") from e

        if not isinstance(document, dict) or not isinstance(document.get("data"), list):
            logger.error("MBTA API response has no data list")
            raise FeedUnavailableError("MBTA API response has no data list")

        return document

    def _evict_expired_cache(self, current_time: float) -> None:
        """Remove expired cache entries."""
        expired_keys = [
            key for key, (_, timestamp) in self._cache.items()
            if current_time - timestamp >= self._cache_ttl
        ]
        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            logger.debug(f"Evicted {len(expired_keys)} expired cache entries")

    def clear_cache(self) -> None:
        """Manually clear the cache."""
        self._cache.clear()
