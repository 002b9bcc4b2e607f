"""Legacy response body format understood by the controller firmware."""

import json
from typing import Any, Dict


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        value = json.dumps(value, separators=(",", ":"))
    if isinstance(value, str):
        # The firmware only decodes spaces, so escape just what would break parsing.
        return value.replace(" ", "+").replace("\n", "\\n").replace("&", "AMPERSAND")
    return str(value)


def format_query_string(data: Dict[str, Any]) -> str:
    """Format data as `&key=value` pairs, skipping None values.

    >>> format_query_string({"scale": 100, "rd": None, "rawData": {"wp": "YR"}})
    '&scale=100&rawData={"wp":"YR"}'
    """
    return "".join(
        f"&{key}={_format_value(value)}"
        for key, value in data.items()
        if value is not None
    )
