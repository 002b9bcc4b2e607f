"""Data models for the watering scale service."""

from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GeoCoordinates(BaseModel):
    """Geographic coordinates in decimal degrees."""
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    lon: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")

    def as_tuple(self) -> Tuple[float, float]:
        return self.lat, self.lon

    def __str__(self) -> str:
        return f"{self.lat},{self.lon}"


class WateringObservation(BaseModel):
    """Aggregate weather over a 24 hour window used by Zimmerman and rain delay.

    Historic data from the past day is preferred, but forecast data for the
    next day may be used if the provider has no history.
    """
    weather_provider: str = Field(..., description="Short ID of the provider that produced the data")
    temperature: Optional[float] = Field(None, description="Average temperature in Celsius")
    humidity: Optional[float] = Field(None, ge=0, le=100, description="Average relative humidity (%)")
    precipitation: Optional[float] = Field(None, ge=0, description="Total precipitation in millimeters")
    is_raining: bool = Field(False, description="Whether it is raining when the data was retrieved")


class EToObservation(BaseModel):
    """Data used to calculate ETo, taken from a 24 hour window."""
    weather_provider: str = Field(..., description="Short ID of the provider that produced the data")
    period_start: int = Field(..., description="Unix epoch seconds at the start of the window")
    min_temp: float = Field(..., description="Minimum temperature in Celsius")
    max_temp: float = Field(..., description="Maximum temperature in Celsius")
    min_humidity: float = Field(..., ge=0, le=100, description="Minimum relative humidity (%)")
    max_humidity: float = Field(..., ge=0, le=100, description="Maximum relative humidity (%)")
    solar_radiation: float = Field(..., ge=0, description="Solar radiation in kWh/m2/day, accounting for clouds")
    wind_speed: float = Field(..., ge=0, description="Average wind speed at 2 m in m/s")
    precipitation: float = Field(..., ge=0, description="Total precipitation in millimeters")

    @model_validator(mode="after")
    def check_ranges(self) -> "EToObservation":
        if self.min_temp > self.max_temp:
            raise ValueError("min_temp must not exceed max_temp")
        if self.min_humidity > self.max_humidity:
            raise ValueError("min_humidity must not exceed max_humidity")
        return self


Observation = Union[WateringObservation, EToObservation]


class AdjustmentMethodResult(BaseModel):
    """Result of a watering scale calculation."""
    scale: Optional[int] = Field(
        None, ge=0, le=200,
        description="Watering percentage, or None if the watering level should not be changed"
    )
    rain_delay: Optional[float] = Field(None, description="Hours watering should be delayed due to rain")
    raw_data: Dict[str, Any] = Field(default_factory=dict, description="Rounded values sent to the firmware")
    timezone: Optional[int] = Field(None, description="UTC offset in minutes")
    observation: Optional[Observation] = Field(None, description="Weather data used for the calculation")


class CachedScaleEntry(BaseModel):
    """Watering scale stored until the end of the local day."""
    scale: Optional[int] = None
    rain_delay: Optional[float] = None
    raw_data: Dict[str, Any] = Field(default_factory=dict)
    timezone: Optional[int] = None


class BaselineEToRasterMeta(BaseModel):
    """Metadata parsed from the baseline ETo data file header."""
    model_config = ConfigDict(frozen=True)

    version: int
    width: int = Field(..., gt=0, description="Image width in pixels")
    height: int = Field(..., gt=0, description="Image height in pixels")
    bit_depth: int = Field(..., description="Bits used for each pixel")
    minimum_eto: float = Field(..., description="ETo that a pixel value of 0 represents (per year)")
    scaling_factor: float = Field(..., description="ETo increase per pixel value step (per year)")
    origin_x: int = Field(..., description="Pixel column of longitude 0")
    origin_y: int = Field(..., description="Pixel row of latitude 0")


class TimeData(BaseModel):
    """Timezone and solar times for a watering site."""
    timezone: int = Field(..., description="UTC offset in minutes")
    sunrise: int = Field(..., description="Sunrise in minutes from local midnight")
    sunset: int = Field(..., description="Sunset in minutes from local midnight")


class WeatherForecastDaily(BaseModel):
    """Forecast for a single day."""
    date: int = Field(..., description="Unix timestamp of the forecast day")
    icon: str = Field(..., description="OpenWeatherMap icon ID")
    description: str = Field(..., description="Human-readable description")
    temp_min: float = Field(..., description="Minimum temperature in Celsius")
    temp_max: float = Field(..., description="Maximum temperature in Celsius")


class WeatherData(BaseModel):
    """Current conditions and forecast shown by the web app."""
    weather_provider: str = Field(..., alias="weatherProvider")
    temp: float = Field(..., description="Current temperature in Celsius")
    description: str
    icon: str
    forecast: List[WeatherForecastDaily]
    humidity: Optional[float] = None
    wind: Optional[float] = None
    precip: Optional[float] = None

    model_config = ConfigDict(populate_by_name=True)


class WateringDataResponse(BaseModel):
    """Response sent to the controller firmware, fields in the order the firmware expects."""
    scale: Optional[int] = None
    rain_delay: Optional[float] = Field(None, alias="rd")
    tz: Optional[int] = None
    sunrise: Optional[int] = None
    sunset: Optional[int] = None
    eip: Optional[int] = None
    raw_data: Optional[Dict[str, Any]] = Field(None, alias="rawData")
    err_code: int = Field(0, alias="errCode")

    model_config = ConfigDict(populate_by_name=True)

