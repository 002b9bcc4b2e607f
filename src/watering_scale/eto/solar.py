"""
Solar geometry helpers.

Solar position uses the NOAA general solar position approximation
(https://gml.noaa.gov/grad/solcalc/solareqns.PDF), which is accurate to a few
minutes and is plenty for daily radiation sums and sunrise/sunset times.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from watering_scale.models import GeoCoordinates

# Sun altitude at sunrise and sunset, accounting for refraction (degrees)
SUNRISE_ALTITUDE = -0.833
# Clear sky insolation model: (990 * sin(elevation) - 30) W/m²
CLEAR_SKY_PEAK = 990
CLEAR_SKY_OFFSET = 30
INTEGRATION_STEP_MINUTES = 10


@dataclass
class CloudCoverWindow:
    """Average cloud coverage over a period of time."""

    start: datetime
    end: datetime
    cloud_cover: float  # fraction of the sky, 0-1


def _fractional_year(moment: datetime) -> float:
    day = moment.timetuple().tm_yday
    return 2 * math.pi / 365 * (day - 1 + (moment.hour - 12) / 24)


def _equation_of_time(g: float) -> float:
    """Equation of time in minutes."""
    return 229.18 * (
        0.000075
        + 0.001868 * math.cos(g)
        - 0.032077 * math.sin(g)
        - 0.014615 * math.cos(2 * g)
        - 0.040849 * math.sin(2 * g)
    )


def _declination(g: float) -> float:
    """Solar declination in radians."""
    return (
        0.006918
        - 0.399912 * math.cos(g)
        + 0.070257 * math.sin(g)
        - 0.006758 * math.cos(2 * g)
        + 0.000907 * math.sin(2 * g)
        - 0.002697 * math.cos(3 * g)
        + 0.00148 * math.sin(3 * g)
    )


def solar_elevation(moment: datetime, coordinates: GeoCoordinates) -> float:
    """
    Elevation of the sun above the horizon.

    Args:
        moment: Timezone-aware datetime
        coordinates: Observer location

    Returns:
        Solar elevation angle in radians (negative below the horizon)
    """
    utc = moment.astimezone(timezone.utc)
    g = _fractional_year(utc)
    declination = _declination(g)
    true_solar_minutes = (
        utc.hour * 60 + utc.minute + utc.second / 60
        + _equation_of_time(g) + 4 * coordinates.lon
    )
    hour_angle = math.radians(true_solar_minutes / 4 - 180)
    phi = math.radians(coordinates.lat)

    cos_zenith = (
        math.sin(phi) * math.sin(declination)
        + math.cos(phi) * math.cos(declination) * math.cos(hour_angle)
    )
    return math.pi / 2 - math.acos(max(-1.0, min(1.0, cos_zenith)))


def sun_times(day: date, coordinates: GeoCoordinates) -> Optional[Tuple[float, float]]:
    """
    Sunrise and sunset for a UTC day.

    Returns:
        (sunrise, sunset) in minutes from UTC midnight, which may fall outside
        0-1440, or None during polar night. Polar day yields (0, 1440).
    """
    g = _fractional_year(datetime(day.year, day.month, day.day, 12, tzinfo=timezone.utc))
    declination = _declination(g)
    phi = math.radians(coordinates.lat)

    cos_ha = (
        (math.sin(math.radians(SUNRISE_ALTITUDE)) - math.sin(phi) * math.sin(declination))
        / (math.cos(phi) * math.cos(declination))
    )
    if cos_ha > 1:
        return None
    if cos_ha < -1:
        return 0.0, 1440.0

    ha = math.degrees(math.acos(cos_ha))
    eqtime = _equation_of_time(g)
    sunrise = 720 - 4 * (coordinates.lon + ha) - eqtime
    sunset = 720 - 4 * (coordinates.lon - ha) - eqtime
    return sunrise, sunset


def local_sun_times(now: datetime, coordinates: GeoCoordinates, offset_minutes: int) -> Tuple[int, int]:
    """Sunrise and sunset in minutes from local midnight."""
    times = sun_times(now.astimezone(timezone.utc).date(), coordinates)
    if times is None:
        return 0, 0
    sunrise, sunset = times
    if sunset - sunrise >= 1440:
        return 0, 1439
    return (
        round(sunrise + offset_minutes) % 1440,
        round(sunset + offset_minutes) % 1440,
    )


def approximate_solar_radiation(windows: List[CloudCoverWindow], coordinates: GeoCoordinates) -> float:
    """
    Approximate total solar radiation from cloud coverage, using the formula
    from http://www.shodor.org/os411/courses/_master/tools/calculators/solarrad/

    When the sun is too low the clear sky formula goes negative; those
    periods contribute nothing.

    Args:
        windows: Cloud coverage for periods spanning the whole day
        coordinates: Location the data is for

    Returns:
        Total solar radiation (kWh/m²/day)
    """
    total = 0.0
    step = timedelta(minutes=INTEGRATION_STEP_MINUTES)

    for window in windows:
        clear_sky = 0.0
        current = window.start
        while current < window.end:
            segment_end = min(current + step, window.end)
            midpoint = current + (segment_end - current) / 2
            insolation = CLEAR_SKY_PEAK * math.sin(solar_elevation(midpoint, coordinates)) - CLEAR_SKY_OFFSET
            if insolation > 0:
                hours = (segment_end - current).total_seconds() / 3600
                clear_sky += insolation / 1000 * hours
            current = segment_end

        total += clear_sky * (1 - 0.75 * window.cloud_cover ** 3.4)

    return total
