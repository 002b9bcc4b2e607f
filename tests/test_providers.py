"""
Tests for the yr.no and OpenWeatherMap providers using mocked HTTP transports.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from watering_scale.errors import (
    ConfigurationError, InsufficientWeatherData, MissingWeatherField, WeatherApiError
)
from watering_scale.eto.formula import standardize_wind_speed
from watering_scale.models import GeoCoordinates
from watering_scale.weather.providers.owm import OpenWeatherMapProvider
from watering_scale.weather.providers.yr import YrWeatherProvider

COORDINATES = GeoCoordinates(lat=59.9133, lon=10.7389)
START = datetime(2024, 6, 1, 0, tzinfo=timezone.utc)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def yr_forecast(hours: int = 30, precipitation: float = 0.0) -> dict:
    """Locationforecast response with hourly entries followed by 6 hour entries."""
    timeseries = []
    for h in range(hours):
        timeseries.append({
            "time": (START + timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "data": {
                "instant": {"details": {
                    "air_temperature": 10.0 + h % 10,
                    "relative_humidity": 60.0 + h % 20,
                    "wind_speed": 3.2,
                    "cloud_area_fraction": 50.0,
                }},
                "next_1_hours": {
                    "summary": {"symbol_code": "partlycloudy_day"},
                    "details": {"precipitation_amount": precipitation},
                },
            },
        })
    for h in range(hours, hours + 24, 6):
        timeseries.append({
            "time": (START + timedelta(hours=h)).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "data": {
                "instant": {"details": {"air_temperature": 5.0, "relative_humidity": 90.0}},
                "next_6_hours": {
                    "summary": {"symbol_code": "rain"},
                    "details": {"precipitation_amount": 10.0},
                },
            },
        })
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [10.7389, 59.9133]},
        "properties": {"timeseries": timeseries},
    }


def owm_onecall(hours: int = 48, rain: float = 0.0) -> dict:
    start = int(START.timestamp())
    return {
        "current": {
            "temp": 18.4,
            "humidity": 55,
            "wind_speed": 2.5,
            "weather": [{"description": "few clouds", "icon": "02d"}],
        },
        "hourly": [
            {
                "dt": start + h * 3600,
                "temp": 15.0 + h % 8,
                "humidity": 50 + h % 30,
                "wind_speed": 2.0,
                "clouds": 20,
                **({"rain": {"1h": rain}} if rain else {}),
            }
            for h in range(hours)
        ],
        "daily": [
            {
                "dt": start + d * 86400,
                "temp": {"min": 11.6, "max": 21.4},
                "weather": [{"description": "light rain", "icon": "10d"}],
            }
            for d in range(3)
        ],
    }


class TestYrWeatherProvider:
    """Test the yr.no provider."""

    @pytest.fixture
    def requests(self):
        return []

    def provider(self, requests, body=None, status_code=200) -> YrWeatherProvider:
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if body is None:
                return httpx.Response(status_code)
            return httpx.Response(status_code, json=body)

        return YrWeatherProvider(client=mock_client(handler))

    async def test_watering_observation(self, requests):
        provider = self.provider(requests, yr_forecast(precipitation=0.25))
        observation = await provider.get_watering_observation(COORDINATES)

        assert observation.weather_provider == "YR"
        assert observation.temperature == pytest.approx(sum(10.0 + h % 10 for h in range(24)) / 24)
        assert observation.humidity == pytest.approx(sum(60.0 + h % 20 for h in range(24)) / 24)
        assert observation.precipitation == pytest.approx(6.0)
        assert observation.is_raining is True
        assert requests[0].url.params["lat"] == "59.9133"
        assert requests[0].url.params["lon"] == "10.7389"

    async def test_dry_observation(self, requests):
        observation = await self.provider(requests, yr_forecast()).get_watering_observation(COORDINATES)
        assert observation.precipitation == 0
        assert observation.is_raining is False

    async def test_eto_observation(self, requests):
        observation = await self.provider(requests, yr_forecast()).get_eto_observation(COORDINATES)

        assert observation.period_start == int(START.timestamp())
        assert observation.min_temp == 10.0
        assert observation.max_temp == 19.0
        assert observation.min_humidity == 60.0
        assert observation.max_humidity == 79.0
        assert observation.wind_speed == pytest.approx(standardize_wind_speed(3.2, 10))
        assert observation.solar_radiation > 0

    async def test_eto_needs_a_full_day(self, requests):
        with pytest.raises(InsufficientWeatherData):
            await self.provider(requests, yr_forecast(hours=12)).get_eto_observation(COORDINATES)

    async def test_empty_timeseries(self, requests):
        with pytest.raises(MissingWeatherField):
            await self.provider(requests, yr_forecast(hours=0)).get_watering_observation(COORDINATES)

    async def test_weather_data(self, requests):
        weather = await self.provider(requests, yr_forecast()).get_weather_data(COORDINATES)

        assert weather.weather_provider == "YR"
        assert weather.temp == 10
        assert weather.icon == "partlycloudy_day"
        assert weather.description == "partlycloudy day"
        assert [day.date for day in weather.forecast] == [
            int(START.timestamp()), int(START.timestamp()) + 86400, int(START.timestamp()) + 2 * 86400
        ]

    async def test_http_error(self, requests):
        with pytest.raises(WeatherApiError):
            await self.provider(requests, status_code=503).get_watering_observation(COORDINATES)

    async def test_invalid_response(self, requests):
        with pytest.raises(WeatherApiError):
            await self.provider(requests, {"unexpected": True}).get_watering_observation(COORDINATES)

    def test_caches_watering_scale(self, requests):
        assert self.provider(requests, yr_forecast()).should_cache_watering_scale() is True


class TestOpenWeatherMapProvider:
    """Test the OpenWeatherMap provider."""

    @pytest.fixture
    def requests(self):
        return []

    def provider(self, requests, body=None, status_code=200) -> OpenWeatherMapProvider:
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if body is None:
                return httpx.Response(status_code)
            return httpx.Response(status_code, json=body)

        return OpenWeatherMapProvider(api_key="0123456789abcdef", client=mock_client(handler))

    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            OpenWeatherMapProvider(api_key="")

    async def test_watering_observation(self, requests):
        observation = await self.provider(requests, owm_onecall(rain=0.5)).get_watering_observation(COORDINATES)

        assert observation.weather_provider == "OWM"
        assert observation.temperature == pytest.approx(sum(15.0 + h % 8 for h in range(24)) / 24)
        assert observation.precipitation == pytest.approx(12.0)
        assert observation.is_raining is True

        params = requests[0].url.params
        assert params["units"] == "metric"
        assert params["appid"] == "0123456789abcdef"
        assert "hourly" not in params["exclude"]

    async def test_eto_observation(self, requests):
        observation = await self.provider(requests, owm_onecall()).get_eto_observation(COORDINATES)

        assert observation.min_temp == 15.0
        assert observation.max_temp == 22.0
        assert observation.wind_speed == 2.0
        assert observation.precipitation == 0

    async def test_missing_hourly_data(self, requests):
        body = owm_onecall()
        del body["hourly"]
        with pytest.raises(MissingWeatherField):
            await self.provider(requests, body).get_watering_observation(COORDINATES)

    async def test_weather_data(self, requests):
        weather = await self.provider(requests, owm_onecall()).get_weather_data(COORDINATES)

        assert weather.weather_provider == "OpenWeatherMap"
        assert weather.temp == 18
        assert weather.icon == "02d"
        assert len(weather.forecast) == 3
        assert weather.forecast[0].temp_max == 21

    async def test_unauthorized(self, requests):
        with pytest.raises(WeatherApiError) as exc_info:
            await self.provider(requests, status_code=401).get_watering_observation(COORDINATES)
        assert "0123456789abcdef" not in str(exc_info.value)
