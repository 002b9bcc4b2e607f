"""Watering restrictions.

Restrictions prevent any watering and act like a 0% watering level. They are
enabled by bit 7 of the method byte sent by the firmware, independently of
the adjustment method selected by the low 7 bits.
"""

import logging
from typing import Callable, List

from watering_scale.config import CALIFORNIA_RESTRICTION_PRECIP_MM
from watering_scale.errors import InsufficientWeatherData
from watering_scale.models import Observation

logger = logging.getLogger(__name__)

RESTRICTION_BIT = 0x80


def restrictions_enabled(method_byte: int) -> bool:
    return bool((method_byte >> 7) & 1)


def california_restriction(observation: Observation) -> bool:
    """Prevent watering if more than 0.1" (2.54 mm) of rain fell in the past 48 hours.

    Depending on the provider the precipitation may be forecast for the next
    24 hours rather than measured over the past 48 hours.
    """
    precipitation = observation.precipitation
    if precipitation is None:
        raise InsufficientWeatherData("Precipitation is required to check watering restrictions")
    return precipitation > CALIFORNIA_RESTRICTION_PRECIP_MM


RESTRICTIONS: List[Callable[[Observation], bool]] = [
    california_restriction,
]


def check_restriction(method_byte: int, observation: Observation) -> bool:
    """Check if the weather meets any restriction enabled by the method byte.

    Args:
        method_byte: Encoded adjustment method and restriction flag
        observation: Weather data to check

    Returns:
        True if the watering scale must be forced to 0
    """
    if not restrictions_enabled(method_byte):
        return False

    restricted = any(restriction(observation) for restriction in RESTRICTIONS)
    if restricted:
        logger.info(f"Watering restricted, precipitation {observation.precipitation} mm")
    return restricted
