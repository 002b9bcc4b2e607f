"""Manual adjustment method."""

from watering_scale.adjustment.base import AdjustmentMethod, AdjustmentOptions
from watering_scale.models import AdjustmentMethodResult, GeoCoordinates
from watering_scale.weather.providers.base import WeatherDataSource


class Manual(AdjustmentMethod):
    """Does not change the watering scale; only time data is returned."""

    method_id = 0
    name = "Manual"

    async def calculate_watering_scale(
        self,
        options: AdjustmentOptions,
        coordinates: GeoCoordinates,
        weather_source: WeatherDataSource
    ) -> AdjustmentMethodResult:
        return AdjustmentMethodResult(scale=None, raw_data={"wp": "Manual"})
