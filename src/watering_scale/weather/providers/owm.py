"""OpenWeatherMap One Call 3.0 weather provider."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from watering_scale.config import HTTP_TIMEOUT_SECONDS, OWM_API_BASE_URL, USER_AGENT
from watering_scale.errors import ConfigurationError, MissingWeatherField, WeatherApiError
from watering_scale.models import (
    EToObservation, GeoCoordinates, WateringObservation, WeatherData, WeatherForecastDaily
)
from watering_scale.weather.providers.base import (
    HourlySample, WeatherDataSource, aggregate_eto_observation, aggregate_watering_observation
)

logger = logging.getLogger(__name__)


class OpenWeatherMapProvider(WeatherDataSource):
    """Async provider backed by the OpenWeatherMap One Call API."""

    provider_id = "OWM"

    def __init__(
        self,
        api_key: str,
        base_url: str = OWM_API_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        cache_watering_scale: bool = True
    ):
        """Initialize the weather provider.

        Args:
            api_key: OpenWeatherMap API key
            base_url: Base URL of the One Call API
            client: HTTP client to use (creates default if None)
            cache_watering_scale: Whether scales based on this provider may be cached

        Raises:
            ConfigurationError: If no API key is provided
        """
        super().__init__(cache_watering_scale)
        if not api_key:
            raise ConfigurationError("OpenWeatherMap provider requires OWM_API_KEY")
        self.api_key = api_key
        self.base_url = base_url
        self.client = client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=HTTP_TIMEOUT_SECONDS
        )

    async def call_api(self, coordinates: GeoCoordinates, exclude: List[str]) -> Dict[str, Any]:
        """Call the onecall endpoint in metric units.

        Raises:
            WeatherApiError: If the request or JSON parsing fails
        """
        params = {
            "lat": coordinates.lat,
            "lon": coordinates.lon,
            "units": "metric",
            "exclude": ",".join(exclude),
            "appid": self.api_key,
        }
        logger.info(f"Fetching OWM onecall data for lat={coordinates.lat}, lon={coordinates.lon}")

        try:
            response = await self.client.get(f"{self.base_url}/onecall", params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            # The request URL holds the API key, so only the status is logged.
            logger.error(f"HTTP error from OWM API: {e.response.status_code}")
            raise WeatherApiError()
        except httpx.RequestError as e:
            logger.error(f"Request error to OWM API: {type(e).__name__}")
            raise WeatherApiError()
        except ValueError as e:
            logger.error(f"Invalid OWM API response: {e}")
            raise WeatherApiError()

    @staticmethod
    def _to_hourly_samples(hourly: List[Dict[str, Any]]) -> List[HourlySample]:
        samples = []
        for hour in hourly:
            try:
                clouds = hour.get("clouds")
                samples.append(HourlySample(
                    time=datetime.fromtimestamp(hour["dt"], tz=timezone.utc),
                    temperature=hour.get("temp"),
                    humidity=hour.get("humidity"),
                    # Assume wind speed measurements are taken at 2 meters.
                    wind_speed=hour.get("wind_speed"),
                    precipitation=(hour.get("rain") or {}).get("1h", 0.0),
                    cloud_cover=clouds / 100 if clouds is not None else None
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid hourly entry: {e}")
                continue
        return samples

    async def _hourly_samples(self, coordinates: GeoCoordinates) -> List[HourlySample]:
        data = await self.call_api(coordinates, ["current", "minutely", "daily", "alerts"])
        hourly = data.get("hourly")
        if not hourly:
            raise MissingWeatherField("Hourly forecast missing from OWM response")
        return self._to_hourly_samples(hourly)

    async def get_watering_observation(self, coordinates: GeoCoordinates) -> WateringObservation:
        return aggregate_watering_observation(await self._hourly_samples(coordinates), self.provider_id)

    async def get_eto_observation(self, coordinates: GeoCoordinates) -> EToObservation:
        samples = await self._hourly_samples(coordinates)
        return aggregate_eto_observation(samples, coordinates, self.provider_id)

    async def get_weather_data(self, coordinates: GeoCoordinates) -> WeatherData:
        data = await self.call_api(coordinates, ["minutely", "hourly", "alerts"])
        current = data.get("current")
        daily = data.get("daily")
        if not current or not daily or not current.get("weather"):
            raise MissingWeatherField("Required fields missing from OWM response")

        try:
            return WeatherData(
                weather_provider="OpenWeatherMap",
                temp=round(current["temp"]),
                humidity=current.get("humidity"),
                wind=current.get("wind_speed"),
                description=current["weather"][0]["description"],
                icon=current["weather"][0]["icon"],
                forecast=[
                    WeatherForecastDaily(
                        date=round(day["dt"]),
                        icon=day["weather"][0]["icon"],
                        description=day["weather"][0]["description"],
                        temp_min=round(day["temp"]["min"]),
                        temp_max=round(day["temp"]["max"])
                    )
                    for day in daily
                ]
            )
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Error creating weather data from OWM response: {e}")
            raise MissingWeatherField()

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()
