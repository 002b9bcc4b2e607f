"""Timezone lookup for watering sites."""

import logging
import zoneinfo
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

from timezonefinder import TimezoneFinder

from watering_scale.models import GeoCoordinates

logger = logging.getLogger(__name__)


class TimeZoneLookup(ABC):
    """Finds the timezone of a location."""

    @abstractmethod
    def get_timezone_id(self, coordinates: GeoCoordinates) -> str:
        """IANA timezone identifier for the coordinates."""

    async def get_utc_offset_minutes(self, coordinates: GeoCoordinates, now: Optional[datetime] = None) -> int:
        """Current UTC offset of the coordinates' timezone in minutes."""
        now = now or datetime.now(timezone.utc)
        tz = zoneinfo.ZoneInfo(self.get_timezone_id(coordinates))
        offset = now.astimezone(tz).utcoffset()
        return int(offset.total_seconds() // 60)


class TimezoneFinderLookup(TimeZoneLookup):
    """Offline lookup using timezonefinder's bundled boundaries."""

    def __init__(self, finder: Optional[TimezoneFinder] = None):
        # Reuse instance for performance
        self.tf = finder or TimezoneFinder(in_memory=True)

    def get_timezone_id(self, coordinates: GeoCoordinates) -> str:
        try:
            tz_id = self.tf.timezone_at(lng=coordinates.lon, lat=coordinates.lat)
        except ValueError as e:
            logger.error(f"Error getting timezone for {coordinates}: {e}")
            return "UTC"

        if tz_id:
            return tz_id
        logger.warning(f"No timezone found for {coordinates}, defaulting to UTC")
        return "UTC"


class StaticTimeZoneLookup(TimeZoneLookup):
    """Uses one configured timezone for every location."""

    def __init__(self, timezone_id: str):
        self.timezone_id = timezone_id

    def get_timezone_id(self, coordinates: GeoCoordinates) -> str:
        return self.timezone_id
