import requests
from datetime import date
from typing import Dict, Any, Optional
import logging
import re
from abc import ABC, abstractmethod

from iman.core.logs import PRAYER_NAMES

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})")


def normalize_time(value: Any) -> Optional[str]:
    """'5:07', '05:07 (+05)' -> '05:07'; None when not a clock time."""
    if not isinstance(value, str):
        return None
    match = _HHMM_RE.match(value)
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


class PrayerBackend(ABC):
    """Base class for prayer time providers. Times are local 'HH:MM' strings keyed by prayer."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get_prayer_times(self, day: date) -> Optional[Dict[str, str]]:
        """Get prayer times for a day
        Returns:
            {prayer: "HH:MM"} for the five prayers, or None on error
        """
        pass

    def _apply_overrides(self, times: Dict[str, str]) -> Dict[str, str]:
        """Override with any fixed times from config (useful for testing a schedule)"""
        overrides = (self.config.get("test_schedule") or {}).get("times") or {}
        for prayer, time_str in overrides.items():
            key = str(prayer).lower()
            normalized = normalize_time(time_str)
            if key not in PRAYER_NAMES or normalized is None:
                self.logger.error(f"Invalid test time for {prayer}: {time_str}")
                continue
            self.logger.info(f"Overriding {key} with test time: {normalized}")
            times[key] = normalized
        return times


class AladhanBackend(PrayerBackend):
    """Prayer times backend using api.aladhan.com"""

    BASE_URL = "http://api.aladhan.com/v1/timings"

    PRAYER_NAMES = {
        'Fajr': 'fajr',
        'Dhuhr': 'dhuhr',
        'Asr': 'asr',
        'Maghrib': 'maghrib',
        'Isha': 'isha'
    }

    def get_prayer_times(self, day: date) -> Optional[Dict[str, str]]:
        lat = self.config.get('lat')
        lon = self.config.get('lon')
        if lat is None or lon is None:
            self.logger.warning("Aladhan backend needs lat and lon in config")
            return None
        try:
            return self._apply_overrides(self._get_api_prayer_times(day, lat, lon))
        except (requests.RequestException, KeyError, ValueError) as e:
            self.logger.error(f"Error fetching prayer times: {e}")
            return None

    def _get_api_prayer_times(self, day: date, lat: Any, lon: Any) -> Dict[str, str]:
        url = f"{self.BASE_URL}/{day.strftime('%d-%m-%Y')}"
        params = {
            'latitude': lat,
            'longitude': lon,
            'method': self.config.get('calculation_method', 2)
        }

        self.logger.info(f"Making API request to {url} with params {params}")
        response = requests.get(url, params=params, timeout=self.config.get('timeout', 10))
        response.raise_for_status()
        timings = response.json()['data']['timings']

        prayer_times = {}
        for api_name, key in self.PRAYER_NAMES.items():
            normalized = normalize_time(timings.get(api_name))
            if normalized:
                prayer_times[key] = normalized

        self.logger.info(f"Final prayer times: {prayer_times}")
        return prayer_times


class StaticBackend(PrayerBackend):
    """Fixed times from config (plugins.prayer.times); no network."""

    def get_prayer_times(self, day: date) -> Optional[Dict[str, str]]:
        configured = self.config.get("times") or {}
        times = {}
        for prayer in PRAYER_NAMES:
            normalized = normalize_time(configured.get(prayer))
            if normalized:
                times[prayer] = normalized
        if not times:
            self.logger.warning("Static prayer backend has no valid times configured")
            return None
        return self._apply_overrides(times)


BACKENDS = {
    "aladhan": AladhanBackend,
    "static": StaticBackend,
}


def create_backend(config: Dict[str, Any]) -> Optional[PrayerBackend]:
    backend_type = (config or {}).get("backend", "aladhan")
    backend_class = BACKENDS.get(backend_type)
    if backend_class is None:
        logging.getLogger(__name__).warning(f"Unknown prayer backend: {backend_type}")
        return None
    return backend_class(config)
