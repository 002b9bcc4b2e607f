"""Service answering watering scale, weather and baseline ETo requests."""

import ipaddress
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import unquote

from watering_scale.adjustment.base import AdjustmentOptions
from watering_scale.adjustment.factory import decode, resolve
from watering_scale.adjustment.pipeline import get_adjustment
from watering_scale.cache.scale_cache import WateringScaleCache
from watering_scale.errors import MalformedAdjustmentOptions
from watering_scale.eto.baseline import BaselineEToByteSource, BaselineEToReader, DataUnavailableError
from watering_scale.eto.solar import local_sun_times
from watering_scale.models import (
    CachedScaleEntry, GeoCoordinates, TimeData, WateringDataResponse
)
from watering_scale.weather.geocoding import GeocodingService
from watering_scale.weather.providers.base import WeatherDataSource
from watering_scale.weather.timezone import TimeZoneLookup

logger = logging.getLogger(__name__)

BASELINE_ETO_PRECISION = 3


def parse_adjustment_options(raw: Optional[str]) -> AdjustmentOptions:
    """Parse the `wto` parameter sent by the firmware.

    The firmware sends the body of a JSON object without braces and may
    escape characters as `\\xNN`.

    Raises:
        MalformedAdjustmentOptions: If the options are not a valid JSON object
    """
    try:
        decoded = unquote((raw or "").replace("\\x", "%"))
        options = json.loads("{" + decoded + "}")
    except ValueError as e:
        logger.warning(f"Malformed adjustment options '{raw}': {e}")
        raise MalformedAdjustmentOptions()
    if not isinstance(options, dict):
        raise MalformedAdjustmentOptions()
    return options


def encode_timezone(offset_minutes: int) -> int:
    """Convert a UTC offset to the firmware encoding: quarter hours offset by 48."""
    return int(offset_minutes / 15) + 48


def ip_to_int(address: Optional[str]) -> Optional[int]:
    """Integer form of an IPv4 address, or None for anything else."""
    if not address:
        return None
    try:
        ip = ipaddress.ip_address(address.split(",")[0].strip())
    except ValueError:
        return None
    return int(ip) if ip.version == 4 else None


class WateringService:
    """Orchestrates the collaborators needed to answer a request."""

    def __init__(
        self,
        weather_source: WeatherDataSource,
        geocoding_service: GeocodingService,
        timezone_lookup: TimeZoneLookup,
        scale_cache: Optional[WateringScaleCache] = None,
        baseline_source: Optional[BaselineEToByteSource] = None
    ):
        """Initialize the watering service.

        Args:
            weather_source: Provider of weather data
            geocoding_service: Resolves location tokens
            timezone_lookup: Finds the timezone of the watering site
            scale_cache: Cache for calculated scales (caching disabled if None)
            baseline_source: Baseline ETo data file (endpoint disabled if None)
        """
        self.weather_source = weather_source
        self.geocoding_service = geocoding_service
        self.timezone_lookup = timezone_lookup
        self.scale_cache = scale_cache
        self.baseline_source = baseline_source

    async def resolve_coordinates(self, location: str) -> GeoCoordinates:
        return await self.geocoding_service.resolve_coordinates(location)

    async def get_time_data(self, coordinates: GeoCoordinates, now: Optional[datetime] = None) -> TimeData:
        """Timezone offset and sunrise/sunset for the coordinates."""
        now = now or datetime.now(timezone.utc)
        offset = await self.timezone_lookup.get_utc_offset_minutes(coordinates, now)
        sunrise, sunset = local_sun_times(now, coordinates, offset)
        return TimeData(timezone=offset, sunrise=sunrise, sunset=sunset)

    async def get_watering_data(
        self,
        method_byte: int,
        location: str,
        options_string: Optional[str],
        remote_address: Optional[str] = None
    ) -> WateringDataResponse:
        """
        Calculate the watering data for a firmware request.

        Args:
            method_byte: Encoded adjustment method and restriction flag
            location: Location token from the `loc` parameter
            options_string: Raw `wto` parameter
            remote_address: Address the request originated from

        Returns:
            Watering data with errCode 0

        Raises:
            CodedError: If the request is invalid or the scale cannot be calculated
        """
        # Fail fast on unknown methods before doing any I/O.
        resolve(decode(method_byte).adjustment_method_id)
        options = parse_adjustment_options(options_string)
        coordinates = await self.resolve_coordinates(location)
        time_data = await self.get_time_data(coordinates)

        entry = await self._get_cached_scale(method_byte, coordinates, options)
        if entry is None:
            result = await get_adjustment(method_byte, options, coordinates, self.weather_source)
            entry = CachedScaleEntry(
                scale=result.scale,
                rain_delay=result.rain_delay,
                raw_data=result.raw_data,
                timezone=time_data.timezone
            )
            await self._cache_scale(method_byte, coordinates, options, entry)

        return WateringDataResponse(
            err_code=0,
            scale=entry.scale,
            rain_delay=entry.rain_delay,
            tz=encode_timezone(time_data.timezone),
            sunrise=time_data.sunrise,
            sunset=time_data.sunset,
            eip=ip_to_int(remote_address),
            raw_data=entry.raw_data
        )

    def _caching_enabled(self) -> bool:
        return self.scale_cache is not None and self.weather_source.should_cache_watering_scale()

    async def _get_cached_scale(
        self,
        method_byte: int,
        coordinates: GeoCoordinates,
        options: AdjustmentOptions
    ) -> Optional[CachedScaleEntry]:
        if not self._caching_enabled():
            return None
        return await self.scale_cache.get(method_byte, coordinates, options)

    async def _cache_scale(
        self,
        method_byte: int,
        coordinates: GeoCoordinates,
        options: AdjustmentOptions,
        entry: CachedScaleEntry
    ) -> None:
        if self._caching_enabled():
            await self.scale_cache.put(method_byte, coordinates, options, entry)

    async def get_weather_data(self, coordinates: GeoCoordinates) -> Dict[str, Any]:
        """Current weather, forecast and time data for the web app."""
        time_data = await self.get_time_data(coordinates)
        weather = await self.weather_source.get_weather_data(coordinates)
        return {
            **time_data.model_dump(),
            **weather.model_dump(by_alias=True, exclude_none=True),
            "location": list(coordinates.as_tuple()),
        }

    async def load_baseline_reader(self) -> BaselineEToReader:
        """Create a reader for the baseline ETo data file and read its header.

        Raises:
            BaselineEToError: If the data file is not configured or its header is unusable
        """
        if self.baseline_source is None:
            raise DataUnavailableError("Baseline ETo data is not configured.")
        reader = BaselineEToReader(self.baseline_source)
        await reader.read_header()
        return reader

    async def get_baseline_eto(self, reader: BaselineEToReader, coordinates: GeoCoordinates) -> float:
        """Average daily baseline ETo for a location, to 3 significant digits."""
        eto = await reader.get_average_daily_eto(coordinates, BASELINE_ETO_PRECISION)
        logger.info(f"Baseline ETo for {coordinates}: {eto}")
        return eto

    async def aclose(self):
        """Close the HTTP clients held by the weather provider and the data file source."""
        for resource in (self.weather_source, self.baseline_source):
            close = getattr(resource, "aclose", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.error(f"Error closing {type(resource).__name__}: {e}")
