"""
Tests for location resolution and timezone lookup.
"""

import threading
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from geopy.exc import GeocoderServiceError, GeocoderTimedOut

from watering_scale.errors import InvalidLocationFormat, LocationServiceApiError, NoLocationFound
from watering_scale.models import GeoCoordinates
from watering_scale.weather.geocoding import GeocodingService, parse_gps
from watering_scale.weather.timezone import StaticTimeZoneLookup, TimezoneFinderLookup

from fakes import FakeGeocoder


class TestParseGps:

    @pytest.mark.parametrize("location, expected", [
        ("50.8,4.35", (50.8, 4.35)),
        ("-33.86, 151.2", (-33.86, 151.2)),
        ("+90,-180", (90.0, -180.0)),
        ("0,0", (0.0, 0.0)),
    ])
    def test_valid_pairs(self, location, expected):
        assert parse_gps(location).as_tuple() == expected

    @pytest.mark.parametrize("location", ["91,0", "0,181", "Boston, MA", "50.8", "50.8;4.35"])
    def test_not_a_pair(self, location):
        assert parse_gps(location) is None


class TestGeocodingService:
    """Test resolving location tokens."""

    async def test_gps_pair_skips_geocoder(self):
        geocoder = FakeGeocoder()
        coordinates = await GeocodingService(geocoder).resolve_coordinates("42.36,-71.06")

        assert coordinates == GeoCoordinates(lat=42.36, lon=-71.06)
        assert geocoder.queries == []

    async def test_geocodes_names(self):
        geocoder = FakeGeocoder(result=SimpleNamespace(latitude=42.36, longitude=-71.06))
        coordinates = await GeocodingService(geocoder).resolve_coordinates("Boston, MA")

        assert coordinates == GeoCoordinates(lat=42.36, lon=-71.06)
        assert geocoder.queries == ["Boston, MA"]

    async def test_geocodes_off_the_event_loop(self):
        geocoder = FakeGeocoder(result=SimpleNamespace(latitude=42.36, longitude=-71.06))
        await GeocodingService(geocoder).resolve_coordinates("Cambridge, MA")
        assert geocoder.threads != [threading.get_ident()]

    async def test_repeated_names_are_geocoded_once(self):
        geocoder = FakeGeocoder(result=SimpleNamespace(latitude=59.91, longitude=10.75))
        service = GeocodingService(geocoder)

        await service.resolve_coordinates("Oslo")
        await service.resolve_coordinates("Oslo")

        assert geocoder.queries == ["Oslo"]

    @pytest.mark.parametrize("location", ["", "   ", "pws:KMABOSTO12", "icao:KBOS", "zmw:02101.1.99999"])
    async def test_invalid_format(self, location):
        geocoder = FakeGeocoder()
        with pytest.raises(InvalidLocationFormat):
            await GeocodingService(geocoder).resolve_coordinates(location)
        assert geocoder.queries == []

    async def test_no_match(self):
        with pytest.raises(NoLocationFound):
            await GeocodingService(FakeGeocoder(result=None)).resolve_coordinates("Nowhere at all")

    @pytest.mark.parametrize("error", [GeocoderTimedOut("timed out"), GeocoderServiceError("502")])
    async def test_service_errors(self, error):
        with pytest.raises(LocationServiceApiError):
            await GeocodingService(FakeGeocoder(error=error)).resolve_coordinates("Boston")


class TestTimeZoneLookup:

    async def test_static_lookup(self):
        lookup = StaticTimeZoneLookup("America/New_York")
        winter = datetime(2024, 1, 15, 12, tzinfo=timezone.utc)
        summer = datetime(2024, 7, 15, 12, tzinfo=timezone.utc)

        assert await lookup.get_utc_offset_minutes(GeoCoordinates(lat=0, lon=0), winter) == -300
        assert await lookup.get_utc_offset_minutes(GeoCoordinates(lat=0, lon=0), summer) == -240

    async def test_half_hour_offset(self):
        lookup = StaticTimeZoneLookup("Asia/Kolkata")
        assert await lookup.get_utc_offset_minutes(GeoCoordinates(lat=0, lon=0)) == 330

    def test_timezonefinder_lookup(self):
        finder = SimpleNamespace(timezone_at=lambda lng, lat: "Europe/Brussels")
        assert TimezoneFinderLookup(finder).get_timezone_id(GeoCoordinates(lat=50.8, lon=4.35)) == "Europe/Brussels"

    def test_timezonefinder_defaults_to_utc(self):
        finder = SimpleNamespace(timezone_at=lambda lng, lat: None)
        assert TimezoneFinderLookup(finder).get_timezone_id(GeoCoordinates(lat=0, lon=-30)) == "UTC"
