"""Construction of the service's collaborators from configuration."""

import logging
from typing import Optional

from fastapi import Request
from fastapi_cache.backends import Backend

from watering_scale.cache.scale_cache import FastAPICacheStore, WateringScaleCache
from watering_scale.config import (
    BASELINE_ETO_PATH, BASELINE_ETO_SOURCE, BASELINE_ETO_URL, CACHE_PREFIX,
    OWM_API_KEY, STATIC_TIMEZONE, TIMEZONE_LOOKUP, WEATHER_PROVIDER
)
from watering_scale.errors import ConfigurationError
from watering_scale.eto.baseline import BaselineEToByteSource, FileByteSource, HttpRangeByteSource
from watering_scale.watering.service import WateringService
from watering_scale.weather.geocoding import GeocodingService
from watering_scale.weather.providers.base import WeatherDataSource
from watering_scale.weather.providers.owm import OpenWeatherMapProvider
from watering_scale.weather.providers.yr import YrWeatherProvider
from watering_scale.weather.timezone import (
    StaticTimeZoneLookup, TimeZoneLookup, TimezoneFinderLookup
)

logger = logging.getLogger(__name__)


def create_weather_source(provider: str = WEATHER_PROVIDER) -> WeatherDataSource:
    """
    Create the weather provider named in the configuration.

    Raises:
        ConfigurationError: If the provider is unknown or lacks an API key
    """
    if provider == YrWeatherProvider.provider_id:
        return YrWeatherProvider()
    if provider == OpenWeatherMapProvider.provider_id:
        return OpenWeatherMapProvider(api_key=OWM_API_KEY)
    raise ConfigurationError(f"Unknown weather provider '{provider}'")


def create_timezone_lookup(kind: str = TIMEZONE_LOOKUP) -> TimeZoneLookup:
    if kind == "timezonefinder":
        return TimezoneFinderLookup()
    if kind == "static":
        return StaticTimeZoneLookup(STATIC_TIMEZONE)
    raise ConfigurationError(f"Unknown timezone lookup '{kind}'")


def create_baseline_source(kind: str = BASELINE_ETO_SOURCE) -> Optional[BaselineEToByteSource]:
    """Create the byte source for the baseline ETo data file, or None if disabled."""
    if kind == "file":
        return FileByteSource(BASELINE_ETO_PATH)
    if kind == "http":
        if not BASELINE_ETO_URL:
            raise ConfigurationError("BASELINE_ETO_URL must be set for the http source")
        return HttpRangeByteSource(BASELINE_ETO_URL)
    if kind == "none":
        return None
    raise ConfigurationError(f"Unknown baseline ETo source '{kind}'")


def create_watering_service(cache_backend: Optional[Backend] = None) -> WateringService:
    """Assemble a watering service from configuration.

    Args:
        cache_backend: fastapi-cache backend for watering scales (no caching if None)
    """
    timezone_lookup = create_timezone_lookup()
    scale_cache = None
    if cache_backend is not None:
        scale_cache = WateringScaleCache(FastAPICacheStore(cache_backend, CACHE_PREFIX), timezone_lookup)

    service = WateringService(
        weather_source=create_weather_source(),
        geocoding_service=GeocodingService(),
        timezone_lookup=timezone_lookup,
        scale_cache=scale_cache,
        baseline_source=create_baseline_source()
    )
    logger.info(
        f"Watering service using {service.weather_source.provider_id} weather data, "
        f"scale caching {'enabled' if scale_cache else 'disabled'}"
    )
    return service


def get_watering_service(request: Request) -> WateringService:
    """Dependency returning the service created at startup."""
    return request.app.state.watering_service
