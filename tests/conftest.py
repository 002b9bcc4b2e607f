"""
Pytest configuration and shared fixtures for all tests.
"""

import pytest
from fastapi_cache.backends.inmemory import InMemoryBackend

from watering_scale.models import EToObservation, GeoCoordinates, WateringObservation
from watering_scale.weather.timezone import StaticTimeZoneLookup


@pytest.fixture(autouse=True)
def _isolate_inmemory_cache():
    """InMemoryBackend keeps its store on the class; reset it between tests."""
    InMemoryBackend._store.clear()
    yield
    InMemoryBackend._store.clear()


@pytest.fixture
def coordinates():
    return GeoCoordinates(lat=50.8, lon=4.35)


@pytest.fixture
def watering_observation():
    return WateringObservation(
        weather_provider="FAKE",
        temperature=25.0,
        humidity=30.0,
        precipitation=0.0,
        is_raining=False
    )


@pytest.fixture
def eto_observation():
    """Conditions of FAO-56 example 18 (Uccle, 6 July)."""
    return EToObservation(
        weather_provider="FAKE",
        period_start=1688601600,  # 2023-07-06T00:00:00Z
        min_temp=12.3,
        max_temp=21.5,
        min_humidity=63,
        max_humidity=84,
        solar_radiation=22.07 / 3.6,
        wind_speed=2.078,
        precipitation=0.0
    )


@pytest.fixture
def utc_lookup():
    return StaticTimeZoneLookup("UTC")


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test (no external dependencies)"
    )
