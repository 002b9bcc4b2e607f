"""MET Norway (yr.no) Locationforecast weather provider."""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from watering_scale.config import HTTP_TIMEOUT_SECONDS, USER_AGENT, YR_API_BASE_URL
from watering_scale.errors import MissingWeatherField, WeatherApiError
from watering_scale.eto.formula import standardize_wind_speed
from watering_scale.models import (
    EToObservation, GeoCoordinates, WateringObservation, WeatherData, WeatherForecastDaily
)
from watering_scale.weather.providers.base import (
    HourlySample, WeatherDataSource, aggregate_eto_observation, aggregate_watering_observation
)

logger = logging.getLogger(__name__)

# Locationforecast reports wind at 10 m above ground
WIND_MEASUREMENT_HEIGHT = 10


class YrTimeseriesEntry(BaseModel):
    """Raw timeseries entry from yr.no API."""
    time: str = Field(..., description="ISO timestamp")
    data: dict = Field(..., description="Weather data")


class YrForecastResponse(BaseModel):
    """Raw response from yr.no Locationforecast API."""
    type: str = Field(..., description="GeoJSON type")
    geometry: dict = Field(..., description="Location geometry")
    properties: dict = Field(..., description="Forecast properties")


def _parse_time(timestamp: str) -> datetime:
    return datetime.fromisoformat(timestamp.replace("Z", "+00:00"))


class YrWeatherProvider(WeatherDataSource):
    """Async provider backed by the yr.no Locationforecast API."""

    provider_id = "YR"

    def __init__(
        self,
        base_url: str = YR_API_BASE_URL,
        user_agent: str = USER_AGENT,
        client: Optional[httpx.AsyncClient] = None,
        cache_watering_scale: bool = True
    ):
        """Initialize the weather provider.

        Args:
            base_url: Base URL for yr.no API
            user_agent: User-Agent header for API requests
            client: HTTP client to use (creates default if None)
            cache_watering_scale: Whether scales based on this provider may be cached
        """
        super().__init__(cache_watering_scale)
        self.base_url = base_url
        self.user_agent = user_agent
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": self.user_agent},
            timeout=HTTP_TIMEOUT_SECONDS
        )

    async def get_weather_forecast(self, coordinates: GeoCoordinates) -> List[YrTimeseriesEntry]:
        """Fetch the forecast timeseries for given coordinates.

        Raises:
            WeatherApiError: If the request fails or the response format is invalid
        """
        params = {"lat": round(coordinates.lat, 4), "lon": round(coordinates.lon, 4)}
        logger.info(f"Fetching forecast for lat={params['lat']}, lon={params['lon']}")

        try:
            response = await self.client.get(self.base_url, params=params)
            response.raise_for_status()
            forecast = YrForecastResponse(**response.json())
            timeseries = [YrTimeseriesEntry(**entry) for entry in forecast.properties.get("timeseries", [])]
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error from yr.no API: {e.response.status_code} - {e.response.text}")
            raise WeatherApiError()
        except httpx.RequestError as e:
            logger.error(f"Request error to yr.no API: {e}")
            raise WeatherApiError()
        except (ValueError, ValidationError) as e:
            logger.error(f"Invalid yr.no API response format: {e}")
            raise WeatherApiError()

        logger.info(f"Successfully fetched forecast with {len(timeseries)} timeseries entries")
        return timeseries

    def _to_hourly_samples(self, timeseries: List[YrTimeseriesEntry]) -> List[HourlySample]:
        """Convert timeseries entries with 1 hour precipitation data to samples."""
        samples = []
        for entry in timeseries:
            next_hour = entry.data.get("next_1_hours")
            if next_hour is None:
                # Entries further out only carry 6 hour summaries.
                break
            try:
                details: Dict[str, Any] = entry.data["instant"]["details"]
                wind = details.get("wind_speed")
                cloud = details.get("cloud_area_fraction")
                samples.append(HourlySample(
                    time=_parse_time(entry.time),
                    temperature=details.get("air_temperature"),
                    humidity=details.get("relative_humidity"),
                    wind_speed=standardize_wind_speed(wind, WIND_MEASUREMENT_HEIGHT) if wind is not None else None,
                    precipitation=next_hour.get("details", {}).get("precipitation_amount", 0.0),
                    cloud_cover=cloud / 100 if cloud is not None else None
                ))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping invalid timeseries entry: {e}")
                continue
        return samples

    async def get_watering_observation(self, coordinates: GeoCoordinates) -> WateringObservation:
        timeseries = await self.get_weather_forecast(coordinates)
        return aggregate_watering_observation(self._to_hourly_samples(timeseries), self.provider_id)

    async def get_eto_observation(self, coordinates: GeoCoordinates) -> EToObservation:
        timeseries = await self.get_weather_forecast(coordinates)
        return aggregate_eto_observation(self._to_hourly_samples(timeseries), coordinates, self.provider_id)

    async def get_weather_data(self, coordinates: GeoCoordinates) -> WeatherData:
        timeseries = await self.get_weather_forecast(coordinates)
        if not timeseries:
            raise MissingWeatherField("No timeseries data in forecast response")

        try:
            current = timeseries[0].data
            details = current["instant"]["details"]
            symbol = self._symbol(current) or "unknown"
            return WeatherData(
                weather_provider=self.provider_id,
                temp=round(details["air_temperature"]),
                humidity=details.get("relative_humidity"),
                wind=details.get("wind_speed"),
                description=symbol.replace("_", " "),
                icon=symbol,
                forecast=self._daily_forecast(timeseries)
            )
        except (KeyError, ValueError, ValidationError) as e:
            logger.error(f"Error creating weather data from yr.no response: {e}")
            raise MissingWeatherField()

    @staticmethod
    def _symbol(data: dict) -> Optional[str]:
        for period in ("next_1_hours", "next_6_hours", "next_12_hours"):
            summary = data.get(period, {}).get("summary", {})
            if summary.get("symbol_code"):
                return summary["symbol_code"]
        return None

    def _daily_forecast(self, timeseries: List[YrTimeseriesEntry]) -> List[WeatherForecastDaily]:
        """Group timeseries entries by UTC date into daily forecasts."""
        daily_data: Dict[str, List[YrTimeseriesEntry]] = defaultdict(list)
        for entry in timeseries:
            try:
                daily_data[_parse_time(entry.time).strftime("%Y-%m-%d")].append(entry)
            except ValueError as e:
                logger.warning(f"Skipping invalid timeseries entry: {e}")
                continue

        forecast = []
        for day, entries in sorted(daily_data.items()):
            temperatures = [
                e.data["instant"]["details"]["air_temperature"]
                for e in entries
                if "air_temperature" in e.data.get("instant", {}).get("details", {})
            ]
            if not temperatures:
                continue
            # Prefer the midday symbol since it best describes the day.
            symbol = next(
                (self._symbol(e.data) for e in entries if _parse_time(e.time).hour == 12 and self._symbol(e.data)),
                self._symbol(entries[0].data) or "unknown"
            )
            forecast.append(WeatherForecastDaily(
                date=int(datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc).timestamp()),
                icon=symbol,
                description=symbol.replace("_", " "),
                temp_min=round(min(temperatures)),
                temp_max=round(max(temperatures))
            ))
        return forecast

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()
