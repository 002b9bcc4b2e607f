"""
ETo scaling adjustment method.

Compares the recent potential ETo with the baseline potential ETo the
watering program was designed for.

Options:
    baseETo: Baseline potential ETo (mm/day), required
    elevation: Elevation of the watering site (m), defaults to
               DEFAULT_ELEVATION_METERS
"""

import logging

from watering_scale.adjustment.base import (
    AdjustmentMethod, AdjustmentOptions, clamp_scale, get_numeric_option
)
from watering_scale.config import DEFAULT_ELEVATION_METERS
from watering_scale.errors import MissingAdjustmentOption
from watering_scale.eto.formula import calculate_eto
from watering_scale.models import AdjustmentMethodResult, GeoCoordinates
from watering_scale.weather.providers.base import WeatherDataSource

logger = logging.getLogger(__name__)


class EToScaling(AdjustmentMethod):
    method_id = 3
    name = "ETo"

    async def calculate_watering_scale(
        self,
        options: AdjustmentOptions,
        coordinates: GeoCoordinates,
        weather_source: WeatherDataSource
    ) -> AdjustmentMethodResult:
        # A zero baseline is treated as missing since it cannot be divided by.
        base_eto = get_numeric_option(options, "baseETo")
        if not base_eto:
            raise MissingAdjustmentOption("The baseETo adjustment option is required")

        elevation = get_numeric_option(options, "elevation") or DEFAULT_ELEVATION_METERS

        observation = await weather_source.get_eto_observation(coordinates)
        eto = calculate_eto(observation, elevation, coordinates)
        scale = clamp_scale((eto - observation.precipitation) / base_eto * 100)
        logger.debug(f"ETo for {coordinates}: {eto:.3f} mm/day, scale {scale}")

        return AdjustmentMethodResult(
            scale=scale,
            raw_data={
                "wp": observation.weather_provider,
                "eto": round(eto, 3),
                "radiation": round(observation.solar_radiation, 2),
                "minT": round(observation.min_temp),
                "maxT": round(observation.max_temp),
                "minH": round(observation.min_humidity),
                "maxH": round(observation.max_humidity),
                "wind": round(observation.wind_speed, 1),
                "p": round(observation.precipitation, 2),
            },
            observation=observation
        )
