"""Weather provider interface and shared aggregation of hourly samples."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from watering_scale.errors import InsufficientWeatherData, MissingWeatherField
from watering_scale.eto.solar import CloudCoverWindow, approximate_solar_radiation
from watering_scale.models import EToObservation, GeoCoordinates, WateringObservation, WeatherData

logger = logging.getLogger(__name__)

# Number of hourly samples making up the 24 hour window
WINDOW_HOURS = 24


@dataclass
class HourlySample:
    """One hour of provider data converted to metric units."""

    time: datetime
    temperature: Optional[float]  # °C
    humidity: Optional[float]  # %
    wind_speed: Optional[float]  # m/s at 2 m
    precipitation: float  # mm over the hour
    cloud_cover: Optional[float]  # fraction 0-1


class WeatherDataSource(ABC):
    """Source of normalized weather data for the adjustment methods."""

    provider_id: str

    def __init__(self, cache_watering_scale: bool = True):
        self.cache_watering_scale = cache_watering_scale

    @abstractmethod
    async def get_watering_observation(self, coordinates: GeoCoordinates) -> WateringObservation:
        """Retrieve data for Zimmerman and rain delay calculations.

        Raises:
            CodedError: If the data cannot be retrieved
        """

    @abstractmethod
    async def get_eto_observation(self, coordinates: GeoCoordinates) -> EToObservation:
        """Retrieve data for calculating the potential ETo.

        Raises:
            CodedError: If the data cannot be retrieved
        """

    @abstractmethod
    async def get_weather_data(self, coordinates: GeoCoordinates) -> WeatherData:
        """Retrieve current conditions and forecast for the web app."""

    def should_cache_watering_scale(self) -> bool:
        """Whether watering scales calculated from this provider may be cached until the end of the day."""
        return self.cache_watering_scale

    async def aclose(self):
        """Release any resources held by the provider."""
        pass

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()


def window_samples(samples: List[HourlySample], hours: int = WINDOW_HOURS) -> List[HourlySample]:
    """Samples within `hours` of the first sample."""
    if not samples:
        return []
    end = samples[0].time + timedelta(hours=hours)
    return [sample for sample in samples if sample.time < end]


def aggregate_watering_observation(samples: List[HourlySample], provider_id: str) -> WateringObservation:
    """
    Average temperature and humidity and sum precipitation over 24 hours.

    Raises:
        MissingWeatherField: If no usable samples exist
    """
    window = window_samples(samples)
    temperatures = [s.temperature for s in window if s.temperature is not None]
    humidities = [s.humidity for s in window if s.humidity is not None]

    if not window or not temperatures or not humidities:
        logger.warning(f"No usable hourly samples from {provider_id}")
        raise MissingWeatherField("Hourly weather data is missing")

    return WateringObservation(
        weather_provider=provider_id,
        temperature=sum(temperatures) / len(temperatures),
        humidity=sum(humidities) / len(humidities),
        precipitation=sum(s.precipitation for s in window),
        is_raining=window[0].precipitation > 0
    )


def aggregate_eto_observation(
    samples: List[HourlySample],
    coordinates: GeoCoordinates,
    provider_id: str
) -> EToObservation:
    """
    Build an ETo observation from a rolling 24 hour window of hourly samples.

    A rolling window is used since data further in the future is less accurate.

    Raises:
        InsufficientWeatherData: If the window does not cover 24 complete hours
    """
    window = window_samples(samples)
    complete = [
        s for s in window
        if s.temperature is not None and s.humidity is not None
        and s.wind_speed is not None and s.cloud_cover is not None
    ]
    if len(complete) < WINDOW_HOURS:
        logger.warning(f"Only {len(complete)} complete hourly samples from {provider_id}")
        raise InsufficientWeatherData("Data for a full 24 hour period is not available")

    temperatures = [s.temperature for s in complete]
    humidities = [s.humidity for s in complete]
    cloud_windows = [
        CloudCoverWindow(start=s.time, end=s.time + timedelta(hours=1), cloud_cover=s.cloud_cover)
        for s in complete
    ]

    return EToObservation(
        weather_provider=provider_id,
        period_start=int(complete[0].time.timestamp()),
        min_temp=min(temperatures),
        max_temp=max(temperatures),
        min_humidity=min(humidities),
        max_humidity=max(humidities),
        solar_radiation=approximate_solar_radiation(cloud_windows, coordinates),
        wind_speed=sum(s.wind_speed for s in complete) / len(complete),
        precipitation=sum(s.precipitation for s in complete)
    )
