"""Watering scale pipeline: calculate the scale, then apply restrictions."""

import logging

from watering_scale.adjustment.base import AdjustmentMethod, AdjustmentOptions
from watering_scale.adjustment.factory import decode, resolve
from watering_scale.adjustment.restrictions import check_restriction
from watering_scale.models import AdjustmentMethodResult, GeoCoordinates
from watering_scale.weather.providers.base import WeatherDataSource

logger = logging.getLogger(__name__)


async def apply_restrictions(
    method_byte: int,
    result: AdjustmentMethodResult,
    coordinates: GeoCoordinates,
    weather_source: WeatherDataSource
) -> AdjustmentMethodResult:
    """Force the scale to 0 if an enabled restriction is met.

    Restrictions can only lower the scale. If the method did not fetch any
    weather data, a watering observation is fetched for the check.
    """
    if not decode(method_byte).restrictions_enabled:
        return result

    observation = result.observation
    if observation is None:
        observation = await weather_source.get_watering_observation(coordinates)

    if check_restriction(method_byte, observation):
        return result.model_copy(update={"scale": 0})
    return result


async def get_adjustment(
    method_byte: int,
    options: AdjustmentOptions,
    coordinates: GeoCoordinates,
    weather_source: WeatherDataSource
) -> AdjustmentMethodResult:
    """
    Calculate the watering scale for a firmware method byte.

    Args:
        method_byte: Encoded adjustment method and restriction flag
        options: User-specified adjustment options
        coordinates: Coordinates of the watering site
        weather_source: Provider of weather data

    Returns:
        The adjustment result with restrictions applied

    Raises:
        CodedError: If the method is invalid or the scale cannot be calculated
    """
    method: AdjustmentMethod = resolve(decode(method_byte).adjustment_method_id)
    logger.info(f"Calculating watering scale with {method.name} for {coordinates}")

    result = await method.calculate_watering_scale(options, coordinates, weather_source)
    return await apply_restrictions(method_byte, result, coordinates, weather_source)
