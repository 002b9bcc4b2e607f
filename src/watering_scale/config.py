"""Configuration settings for the watering scale service."""

import os
from typing import Final
from dotenv import load_dotenv

load_dotenv()

# Weather provider configuration
WEATHER_PROVIDER: str = os.getenv("WEATHER_PROVIDER", "YR").upper()
YR_API_BASE_URL: Final[str] = "https://api.met.no/weatherapi/locationforecast/2.0/compact"
OWM_API_BASE_URL: Final[str] = "https://api.openweathermap.org/data/3.0"
OWM_API_KEY: str = os.getenv("OWM_API_KEY", "")
USER_AGENT: Final[str] = "WateringScaleService/0.1 (user@example.com)"
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

# Geocoding and timezone lookup
GEOCODING_USER_AGENT: Final[str] = "watering-scale-service"
TIMEZONE_LOOKUP: str = os.getenv("TIMEZONE_LOOKUP", "timezonefinder").lower()
STATIC_TIMEZONE: str = os.getenv("STATIC_TIMEZONE", "UTC")

# Server configuration
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

# Cache configuration
CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "redis").lower()
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
CACHE_PREFIX: str = os.getenv("CACHE_PREFIX", "watering-scale")
WEATHER_DATA_CACHE_SECONDS: int = int(os.getenv("WEATHER_DATA_CACHE_SECONDS", "600"))

# Baseline ETo raster
BASELINE_ETO_SOURCE: str = os.getenv("BASELINE_ETO_SOURCE", "file").lower()
BASELINE_ETO_PATH: str = os.getenv("BASELINE_ETO_PATH", "data/Baseline_ETo_Data.bin")
BASELINE_ETO_URL: str = os.getenv("BASELINE_ETO_URL", "")

# Adjustment method defaults
# Elevation reference point, see https://www.pnas.org/content/95/24/14009
DEFAULT_ELEVATION_METERS: float = float(os.getenv("DEFAULT_ELEVATION_METERS", "194"))
DEFAULT_RAIN_DELAY_HOURS: float = float(os.getenv("DEFAULT_RAIN_DELAY_HOURS", "24"))
# 0.1 inch over the past 48 hours
CALIFORNIA_RESTRICTION_PRECIP_MM: Final[float] = 2.54
