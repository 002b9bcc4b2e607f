"""Resolution of location tokens to coordinates."""

import asyncio
import logging
import re
from functools import lru_cache
from typing import Optional

from geopy.exc import GeocoderServiceError, GeocoderTimedOut, GeocoderUnavailable
from geopy.geocoders import Nominatim

from watering_scale.config import GEOCODING_USER_AGENT
from watering_scale.errors import (
    InvalidLocationFormat, LocationServiceApiError, NoLocationFound
)
from watering_scale.models import GeoCoordinates

logger = logging.getLogger(__name__)

GPS_PATTERN = re.compile(
    r"^[-+]?([1-8]?\d(\.\d+)?|90(\.0+)?),\s*[-+]?(180(\.0+)?|((1[0-7]\d)|([1-9]?\d))(\.\d+)?)$"
)
PWS_PATTERN = re.compile(r"^(?:pws|icao|zmw):")


def parse_gps(location: str) -> Optional[GeoCoordinates]:
    """Parse a 'lat,lon' pair, or return None if the token is not one."""
    if not GPS_PATTERN.match(location):
        return None
    lat, lon = location.split(",")
    return GeoCoordinates(lat=float(lat), lon=float(lon))


class GeocodingService:
    """Service for resolving location names to coordinates."""

    def __init__(self, geolocator: Optional[Nominatim] = None):
        """Initialize the geocoding service.

        Args:
            geolocator: geopy geocoder to use (creates Nominatim if None)
        """
        # Reuse instance for performance
        self.geolocator = geolocator or Nominatim(user_agent=GEOCODING_USER_AGENT)
        logger.info("GeocodingService initialized with Nominatim")

    @lru_cache(maxsize=1000)
    def forward_geocode(self, location: str) -> GeoCoordinates:
        """Convert a location name to coordinates.

        Raises:
            NoLocationFound: If nothing matches the name
            LocationServiceApiError: If geocoding fails
        """
        try:
            logger.info(f"Geocoding location: {location}")
            match = self.geolocator.geocode(location)
        except (GeocoderUnavailable, GeocoderTimedOut) as e:
            logger.error(f"Geocoding service unavailable for '{location}': {e}")
            raise LocationServiceApiError("Geocoding service temporarily unavailable")
        except GeocoderServiceError as e:
            logger.error(f"Geocoding service error for '{location}': {e}")
            raise LocationServiceApiError("Failed to geocode location")

        if not match:
            raise NoLocationFound(f"Location '{location}' not found")

        coordinates = GeoCoordinates(lat=match.latitude, lon=match.longitude)
        logger.info(f"Successfully geocoded '{location}' to {coordinates}")
        return coordinates

    async def resolve_coordinates(self, location: str) -> GeoCoordinates:
        """Resolve a location token to coordinates.

        Args:
            location: A 'lat,lon' pair or a partial zip/city/country

        Returns:
            Coordinates of the best match

        Raises:
            InvalidLocationFormat: If the token is empty or a PWS identifier
            NoLocationFound: If nothing matches the name
            LocationServiceApiError: If geocoding fails
        """
        location = (location or "").strip()
        if not location or PWS_PATTERN.match(location):
            raise InvalidLocationFormat(f"Unsupported location format '{location}'")

        coordinates = parse_gps(location)
        if coordinates is not None:
            return coordinates
        # Nominatim blocks, keep it off the event loop
        return await asyncio.to_thread(self.forward_geocode, location)
