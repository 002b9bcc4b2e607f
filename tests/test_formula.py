"""
Tests for the FAO-56 Penman-Monteith ETo calculation.

Intermediate values are checked against FAO-56 example 18 (Uccle, Brussels,
6 July, 50°48'N, 100 m).
"""

import math

import pytest

from watering_scale.eto.formula import (
    actual_vapor_pressure, atmospheric_pressure, calculate_eto, clear_sky_solar_radiation,
    day_of_year, extraterrestrial_radiation, inverse_relative_distance_earth_sun,
    net_outgoing_longwave_radiation, psychrometric_constant, saturation_vapor_pressure,
    slope_of_saturation_vapor_pressure_curve, solar_declination, standardize_wind_speed,
    sunset_hour_angle
)
from watering_scale.models import GeoCoordinates

PHI = math.radians(50.8)


class TestFormulaSteps:
    """Each step against the published example values."""

    def test_day_of_year_uses_utc(self):
        assert day_of_year(1688601600) == 187
        # 23:30 UTC is already the next day in Brussels but not in UTC
        assert day_of_year(1688601600 + 23 * 3600 + 1800) == 187

    def test_slope_of_saturation_vapor_pressure_curve(self):
        assert slope_of_saturation_vapor_pressure_curve(16.9) == pytest.approx(0.122, abs=0.001)

    def test_atmospheric_pressure_and_psychrometric_constant(self):
        pressure = atmospheric_pressure(100)
        assert pressure == pytest.approx(100.1, abs=0.1)
        assert psychrometric_constant(pressure) == pytest.approx(0.0666, abs=0.0001)

    def test_vapor_pressures(self):
        es_tmin = saturation_vapor_pressure(12.3)
        es_tmax = saturation_vapor_pressure(21.5)
        assert es_tmin == pytest.approx(1.431, abs=0.001)
        assert es_tmax == pytest.approx(2.564, abs=0.001)
        assert actual_vapor_pressure(es_tmin, es_tmax, 63, 84) == pytest.approx(1.409, abs=0.001)

    def test_extraterrestrial_and_clear_sky_radiation(self):
        declination = solar_declination(187)
        ra = extraterrestrial_radiation(
            inverse_relative_distance_earth_sun(187),
            sunset_hour_angle(PHI, declination),
            PHI,
            declination
        )
        assert ra == pytest.approx(41.09, abs=0.05)
        assert clear_sky_solar_radiation(100, ra) == pytest.approx(30.90, abs=0.05)

    def test_net_outgoing_longwave_radiation(self):
        rnl = net_outgoing_longwave_radiation(12.3, 21.5, 1.409, 22.07, 30.90)
        assert rnl == pytest.approx(3.71, abs=0.01)

    def test_longwave_radiation_without_clear_sky_radiation(self):
        rnl = net_outgoing_longwave_radiation(-5.0, -1.0, 0.4, 0.0, 0.0)
        assert math.isfinite(rnl)
        assert rnl < 0

    def test_relative_shortwave_radiation_is_limited_to_one(self):
        assert net_outgoing_longwave_radiation(12.3, 21.5, 1.409, 35.0, 30.90) == pytest.approx(
            net_outgoing_longwave_radiation(12.3, 21.5, 1.409, 30.90, 30.90)
        )

    @pytest.mark.parametrize("latitude", [89.0, -89.0])
    def test_sunset_hour_angle_is_defined_at_the_poles(self, latitude):
        angle = sunset_hour_angle(math.radians(latitude), solar_declination(172))
        assert 0 <= angle <= math.pi


class TestCalculateETo:
    """Test the full ETo calculation."""

    def test_example_conditions(self, eto_observation):
        eto = calculate_eto(eto_observation, 100, GeoCoordinates(lat=50.8, lon=4.35))
        assert eto == pytest.approx(2.74, abs=0.05)

    def test_higher_elevation_lowers_eto(self, eto_observation):
        coordinates = GeoCoordinates(lat=50.8, lon=4.35)
        assert calculate_eto(eto_observation, 2000, coordinates) < calculate_eto(eto_observation, 0, coordinates)

    def test_more_radiation_raises_eto(self, eto_observation):
        coordinates = GeoCoordinates(lat=50.8, lon=4.35)
        sunny = eto_observation.model_copy(update={"solar_radiation": 8.0})
        assert calculate_eto(sunny, 100, coordinates) > calculate_eto(eto_observation, 100, coordinates)


class TestStandardizeWindSpeed:

    def test_two_meters_is_unchanged(self):
        assert standardize_wind_speed(3.0, 2) == pytest.approx(3.0, abs=0.01)

    def test_ten_meters(self):
        assert standardize_wind_speed(3.2, 10) == pytest.approx(2.4, abs=0.01)


class TestPolarNight:
    """Tromsø in December gets no extraterrestrial radiation."""

    @pytest.fixture
    def winter_observation(self, eto_observation):
        return eto_observation.model_copy(update={
            "period_start": 1702944000,  # 2023-12-19T00:00:00Z
            "min_temp": -5.0,
            "max_temp": -1.0,
            "min_humidity": 70,
            "max_humidity": 90,
            "solar_radiation": 0.0,
        })

    def test_no_extraterrestrial_radiation(self):
        phi = math.radians(70)
        declination = solar_declination(day_of_year(1702944000))
        assert sunset_hour_angle(phi, declination) == 0
        assert extraterrestrial_radiation(1.0, 0.0, phi, declination) == pytest.approx(0)

    def test_calculate_eto(self, winter_observation):
        eto = calculate_eto(winter_observation, 10, GeoCoordinates(lat=70, lon=19))
        assert math.isfinite(eto)
