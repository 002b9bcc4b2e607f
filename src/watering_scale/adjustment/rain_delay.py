"""Rain delay adjustment method."""

import logging

from watering_scale.adjustment.base import AdjustmentMethod, AdjustmentOptions, get_numeric_option
from watering_scale.config import DEFAULT_RAIN_DELAY_HOURS
from watering_scale.models import AdjustmentMethodResult, GeoCoordinates
from watering_scale.weather.providers.base import WeatherDataSource

logger = logging.getLogger(__name__)


class RainDelay(AdjustmentMethod):
    """Delays watering while it is raining without changing the watering scale.

    Options:
        d: Rain delay in hours (defaults to 24)
    """

    method_id = 2
    name = "RainDelay"

    async def calculate_watering_scale(
        self,
        options: AdjustmentOptions,
        coordinates: GeoCoordinates,
        weather_source: WeatherDataSource
    ) -> AdjustmentMethodResult:
        observation = await weather_source.get_watering_observation(coordinates)
        delay = get_numeric_option(options, "d")
        if delay is None:
            delay = DEFAULT_RAIN_DELAY_HOURS

        raining = observation.is_raining
        if raining:
            logger.info(f"Raining at {coordinates}, delaying watering by {delay} hours")

        return AdjustmentMethodResult(
            scale=None,
            rain_delay=delay if raining else None,
            raw_data={
                "wp": observation.weather_provider,
                "raining": 1 if raining else 0,
            },
            observation=observation
        )
