"""Method byte decoding and adjustment method lookup.

The firmware packs the adjustment method and the restriction flag into one
byte: bit 7 enables watering restrictions and bits 0-6 select the method.
"""

from typing import Dict, NamedTuple

from watering_scale.adjustment.base import AdjustmentMethod
from watering_scale.adjustment.eto import EToScaling
from watering_scale.adjustment.manual import Manual
from watering_scale.adjustment.rain_delay import RainDelay
from watering_scale.adjustment.restrictions import restrictions_enabled
from watering_scale.adjustment.zimmerman import Zimmerman
from watering_scale.errors import InvalidAdjustmentMethod

METHOD_ID_MASK = 0x7F

ADJUSTMENT_METHODS: Dict[int, AdjustmentMethod] = {
    method.method_id: method
    for method in (Manual(), Zimmerman(), RainDelay(), EToScaling())
}


class DecodedMethod(NamedTuple):
    adjustment_method_id: int
    restrictions_enabled: bool


def decode(method_byte: int) -> DecodedMethod:
    """Split a method byte into the adjustment method ID and restriction flag."""
    return DecodedMethod(
        adjustment_method_id=method_byte & METHOD_ID_MASK,
        restrictions_enabled=restrictions_enabled(method_byte)
    )


def resolve(adjustment_method_id: int) -> AdjustmentMethod:
    """Return the adjustment method for an ID.

    Raises:
        InvalidAdjustmentMethod: If no method uses the ID
    """
    try:
        return ADJUSTMENT_METHODS[adjustment_method_id]
    except KeyError:
        raise InvalidAdjustmentMethod(f"Unknown adjustment method {adjustment_method_id}")
