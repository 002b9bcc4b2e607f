"""Common interface of the adjustment methods."""

import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from watering_scale.errors import MalformedAdjustmentOptions
from watering_scale.models import AdjustmentMethodResult, GeoCoordinates
from watering_scale.weather.providers.base import WeatherDataSource

AdjustmentOptions = Dict[str, Any]

MIN_SCALE = 0
MAX_SCALE = 200


class AdjustmentMethod(ABC):
    """Strategy that calculates how much watering should be scaled.

    Methods only calculate their own scale. Watering restrictions are applied
    afterwards by the shared pipeline in `watering_scale.adjustment.pipeline`.
    """

    method_id: int
    name: str

    @abstractmethod
    async def calculate_watering_scale(
        self,
        options: AdjustmentOptions,
        coordinates: GeoCoordinates,
        weather_source: WeatherDataSource
    ) -> AdjustmentMethodResult:
        """Calculate the percentage used to scale watering time.

        Args:
            options: User-specified options; unknown keys are ignored
            coordinates: Coordinates of the watering site
            weather_source: Provider to use if weather data is needed

        Returns:
            The result of the calculation

        Raises:
            CodedError: If the watering scale cannot be calculated
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(method_id={self.method_id})"


def get_numeric_option(options: AdjustmentOptions, key: str) -> Optional[float]:
    """Return an adjustment option as a float, or None if it was not provided.

    Raises:
        MalformedAdjustmentOptions: If the value is not a finite number
    """
    value = options.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise MalformedAdjustmentOptions(f"Adjustment option '{key}' must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedAdjustmentOptions(f"Adjustment option '{key}' must be a number")
    if not math.isfinite(number):
        raise MalformedAdjustmentOptions(f"Adjustment option '{key}' must be a number")
    return number


def clamp_scale(value: float) -> int:
    """Clamp a raw percentage to the 0-200 range and truncate it to an integer."""
    return math.floor(min(max(MIN_SCALE, value), MAX_SCALE))
