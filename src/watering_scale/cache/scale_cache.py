"""Caching of watering scales until the end of the local day.

A watering scale only depends on the method byte, the coordinates and the
adjustment options, so it is calculated at most once per calendar day at the
watering site for each combination.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from fastapi_cache.backends import Backend
from pydantic import ValidationError

from watering_scale.adjustment.base import AdjustmentOptions
from watering_scale.models import CachedScaleEntry, GeoCoordinates
from watering_scale.weather.timezone import TimeZoneLookup

logger = logging.getLogger(__name__)


def cache_key(method_byte: int, coordinates: GeoCoordinates, options: AdjustmentOptions) -> str:
    """Build a deterministic key; options are serialized with sorted keys."""
    wto = json.dumps(options, sort_keys=True, separators=(",", ":"), default=str)
    return f"{method_byte}?loc={coordinates.lat},{coordinates.lon}&wto={wto}"


def seconds_until_end_of_day(offset_minutes: int, now: Optional[datetime] = None) -> int:
    """
    Seconds remaining in the local calendar day.

    Args:
        offset_minutes: UTC offset of the local timezone in minutes
        now: Current time (defaults to now in UTC)

    Returns:
        Seconds until local midnight, 1 at 23:59:59
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local_now = now.astimezone(timezone(timedelta(minutes=offset_minutes))).replace(microsecond=0)
    midnight = datetime.combine(local_now.date() + timedelta(days=1), time.min, tzinfo=local_now.tzinfo)
    return max(1, int((midnight - local_now).total_seconds()))


class ScaleCacheStore(ABC):
    """Key/value storage with expiry for cached watering scales."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CachedScaleEntry]:
        """Return the entry for the key, or None on a miss."""

    @abstractmethod
    async def put(self, key: str, entry: CachedScaleEntry, ttl_seconds: int) -> None:
        """Store the entry, replacing any previous one."""


class FastAPICacheStore(ScaleCacheStore):
    """Stores entries in a fastapi-cache backend (Redis or in-memory)."""

    def __init__(self, backend: Backend, prefix: str = "watering-scale"):
        self.backend = backend
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:scale:{key}"

    async def get(self, key: str) -> Optional[CachedScaleEntry]:
        value = await self.backend.get(self._key(key))
        if value is None:
            return None
        try:
            return CachedScaleEntry.model_validate_json(value)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable cached watering scale for {key}: {e}")
            return None

    async def put(self, key: str, entry: CachedScaleEntry, ttl_seconds: int) -> None:
        await self.backend.set(self._key(key), entry.model_dump_json(), expire=ttl_seconds)


class WateringScaleCache:
    """Watering scale cache keyed by method, coordinates and options."""

    def __init__(self, store: ScaleCacheStore, timezone_lookup: TimeZoneLookup):
        self.store = store
        self.timezone_lookup = timezone_lookup

    async def get(
        self,
        method_byte: int,
        coordinates: GeoCoordinates,
        options: AdjustmentOptions
    ) -> Optional[CachedScaleEntry]:
        """Retrieve a scale previously calculated with the same parameters."""
        key = cache_key(method_byte, coordinates, options)
        entry = await self.store.get(key)
        logger.debug(f"Watering scale cache {'hit' if entry else 'miss'} for {key}")
        return entry

    async def put(
        self,
        method_byte: int,
        coordinates: GeoCoordinates,
        options: AdjustmentOptions,
        entry: CachedScaleEntry,
        now: Optional[datetime] = None
    ) -> int:
        """Store a calculated scale until the end of the day at the watering site.

        Returns:
            The TTL the entry was stored with, in seconds
        """
        offset = await self.timezone_lookup.get_utc_offset_minutes(coordinates, now)
        ttl = seconds_until_end_of_day(offset, now)
        await self.store.put(cache_key(method_byte, coordinates, options), entry, ttl)
        logger.info(f"Cached watering scale for {coordinates} for {ttl}s")
        return ttl
