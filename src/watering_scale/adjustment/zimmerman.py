"""
Zimmerman adjustment method.

Scales watering by how far the weather deviates from user-set baselines
(https://github.com/rszimm/sprinklers_pi/wiki/Weather-adjustments#formula-for-setting-the-scale).

Options:
    bh: Base humidity (%), default 30
    bt: Base temperature (°F), default 70
    br: Base precipitation (inches), default 0
    h, t, r: Percentages to weight the humidity, temperature and
             precipitation factors by

The baselines are entered by users in the firmware's units, so the metric
observation is converted to Fahrenheit and inches before it is compared.
"""

import logging
import math

from watering_scale.adjustment.base import (
    AdjustmentMethod, AdjustmentOptions, clamp_scale, get_numeric_option
)
from watering_scale.errors import MissingWeatherField
from watering_scale.models import AdjustmentMethodResult, GeoCoordinates, WateringObservation
from watering_scale.weather.providers.base import WeatherDataSource

logger = logging.getLogger(__name__)

DEFAULT_HUMIDITY_BASE = 30.0
DEFAULT_TEMPERATURE_BASE = 70.0
DEFAULT_PRECIPITATION_BASE = 0.0
MM_PER_INCH = 25.4


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def _is_valid(value) -> bool:
    return value is not None and math.isfinite(value)


def zimmerman_scale(
    humidity: float,
    temperature: float,
    precipitation: float,
    options: AdjustmentOptions
) -> int:
    """
    Apply the Zimmerman formula.

    Args:
        humidity: Observed relative humidity (%)
        temperature: Observed temperature (°F)
        precipitation: Observed precipitation (inches)
        options: Baselines and factor weights

    Returns:
        Watering scale clamped to 0-200
    """
    humidity_base = get_numeric_option(options, "bh")
    temp_base = get_numeric_option(options, "bt")
    precip_base = get_numeric_option(options, "br")

    humidity_factor = (DEFAULT_HUMIDITY_BASE if humidity_base is None else humidity_base) - humidity
    temp_factor = (temperature - (DEFAULT_TEMPERATURE_BASE if temp_base is None else temp_base)) * 4
    precip_factor = ((DEFAULT_PRECIPITATION_BASE if precip_base is None else precip_base) - precipitation) * 200

    # Weight each factor by a percentage, if provided
    humidity_weight = get_numeric_option(options, "h")
    if humidity_weight is not None:
        humidity_factor *= humidity_weight / 100

    temp_weight = get_numeric_option(options, "t")
    if temp_weight is not None:
        temp_factor *= temp_weight / 100

    precip_weight = get_numeric_option(options, "r")
    if precip_weight is not None:
        precip_factor *= precip_weight / 100

    return clamp_scale(100 + humidity_factor + temp_factor + precip_factor)


class Zimmerman(AdjustmentMethod):
    method_id = 1
    name = "Zimmerman"

    async def calculate_watering_scale(
        self,
        options: AdjustmentOptions,
        coordinates: GeoCoordinates,
        weather_source: WeatherDataSource
    ) -> AdjustmentMethodResult:
        observation = await weather_source.get_watering_observation(coordinates)
        raw_data = self._raw_data(observation)

        for field in ("temperature", "humidity", "precipitation"):
            if not _is_valid(getattr(observation, field)):
                logger.warning(f"Weather data from {observation.weather_provider} is missing {field}")
                raise MissingWeatherField(f"Weather data is missing {field}")

        scale = zimmerman_scale(
            humidity=observation.humidity,
            temperature=celsius_to_fahrenheit(observation.temperature),
            precipitation=observation.precipitation / MM_PER_INCH,
            options=options
        )
        logger.debug(f"Zimmerman scale for {coordinates}: {scale}")

        return AdjustmentMethodResult(scale=scale, raw_data=raw_data, observation=observation)

    @staticmethod
    def _raw_data(observation: WateringObservation) -> dict:
        def rounded(value, digits):
            return round(value, digits) if _is_valid(value) else None

        return {
            "wp": observation.weather_provider,
            "h": rounded(observation.humidity, 2),
            "p": rounded(observation.precipitation, 2),
            "t": rounded(observation.temperature, 1),
            "raining": 1 if observation.is_raining else 0,
        }
