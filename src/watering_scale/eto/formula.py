"""
Reference evapotranspiration (ETo) calculation.

Implements the FAO-56 Penman-Monteith equation for the standard grass
reference crop (http://www.fao.org/3/X0490E/x0490e07.htm), following the
step-by-step breakdown in http://edis.ifas.ufl.edu/pdffiles/ae/ae45900.pdf.
Step numbers in the helper docstrings refer to that breakdown.
"""

import math
from datetime import datetime, timezone

from watering_scale.models import EToObservation, GeoCoordinates

# Albedo of the hypothetical grass reference crop
GRASS_ALBEDO = 0.23
STEFAN_BOLTZMANN = 4.903e-9  # MJ K⁻⁴ m⁻² day⁻¹
SOLAR_CONSTANT = 0.0820  # MJ m⁻² min⁻¹
KWH_TO_MJ = 3.6


def calculate_eto(observation: EToObservation, elevation: float, coordinates: GeoCoordinates) -> float:
    """
    Calculate the reference potential evapotranspiration.

    The result is not clamped; callers turn it into a percentage.

    Args:
        observation: Weather data for a 24 hour window
        elevation: Elevation of the watering site above sea level (m)
        coordinates: Coordinates of the watering site

    Returns:
        Reference evapotranspiration (mm/day)
    """
    solar_radiation = observation.solar_radiation * KWH_TO_MJ
    u = observation.wind_speed
    t_mean = mean_daily_temperature(observation.min_temp, observation.max_temp)
    delta = slope_of_saturation_vapor_pressure_curve(t_mean)
    gamma = psychrometric_constant(atmospheric_pressure(elevation))

    es_tmin = saturation_vapor_pressure(observation.min_temp)
    es_tmax = saturation_vapor_pressure(observation.max_temp)
    ea = actual_vapor_pressure(es_tmin, es_tmax, observation.min_humidity, observation.max_humidity)

    et_wind = wind_term(
        psi_term(delta, gamma, u),
        temperature_term(t_mean, u),
        es_tmin,
        es_tmax,
        ea,
    )
    et_rad = radiation_term(
        delta, gamma, u, solar_radiation,
        observation.min_temp, observation.max_temp, ea, elevation,
        day_of_year(observation.period_start),
        math.radians(coordinates.lat),
    )
    return et_wind + et_rad


def day_of_year(epoch_seconds: int) -> int:
    """Day of the year (1-366) of a Unix timestamp, in UTC."""
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).timetuple().tm_yday


def mean_daily_temperature(t_min: float, t_max: float) -> float:
    """Step 1 - Mean daily air temperature (°C)."""
    return (t_min + t_max) / 2


def slope_of_saturation_vapor_pressure_curve(t_mean: float) -> float:
    """Step 4 - Slope of the saturation vapor pressure curve Δ (kPa/°C)."""
    return 4098 * 0.6108 * math.exp(17.27 * t_mean / (t_mean + 237.3)) / (t_mean + 237.3) ** 2


def atmospheric_pressure(z: float) -> float:
    """Step 5 - Atmospheric pressure (kPa) at elevation z (m)."""
    return 101.3 * ((293 - 0.0065 * z) / 293) ** 5.26


def psychrometric_constant(p: float) -> float:
    """Step 6 - Psychrometric constant γ (kPa/°C)."""
    return 0.000665 * p


def delta_term(delta: float, gamma: float, u: float) -> float:
    """Step 7 - Delta term, auxiliary for the radiation term."""
    return delta / (delta + gamma * (1 + 0.34 * u))


def psi_term(delta: float, gamma: float, u: float) -> float:
    """Step 8 - Psi term, auxiliary for the wind term."""
    return gamma / (delta + gamma * (1 + 0.34 * u))


def temperature_term(t_mean: float, u: float) -> float:
    """Step 9 - Temperature term, auxiliary for the wind term."""
    return (900 / (t_mean + 273)) * u


def saturation_vapor_pressure(t: float) -> float:
    """Step 10 - Saturation vapor pressure (kPa) at air temperature t (°C)."""
    return 0.6108 * math.exp(17.27 * t / (t + 237.3))


def actual_vapor_pressure(es_tmin: float, es_tmax: float, rh_min: float, rh_max: float) -> float:
    """Step 11 - Actual vapor pressure (kPa) derived from relative humidity."""
    return (es_tmin * rh_max / 100 + es_tmax * rh_min / 100) / 2


def inverse_relative_distance_earth_sun(j: int) -> float:
    """Step 12a - Inverse relative distance Earth-Sun."""
    return 1 + 0.033 * math.cos(2 * math.pi / 365 * j)


def solar_declination(j: int) -> float:
    """Step 12b - Solar declination (rad)."""
    return 0.409 * math.sin(2 * math.pi / 365 * j - 1.39)


def sunset_hour_angle(phi: float, declination: float) -> float:
    """Step 14 - Sunset hour angle ωs (rad)."""
    # Polar day and night fall outside acos's domain.
    x = -math.tan(phi) * math.tan(declination)
    return math.acos(max(-1.0, min(1.0, x)))


def extraterrestrial_radiation(dr: float, ws: float, phi: float, declination: float) -> float:
    """Step 15 - Extraterrestrial radiation Ra (MJ m⁻² day⁻¹)."""
    return 24 * 60 / math.pi * SOLAR_CONSTANT * dr * (
        ws * math.sin(phi) * math.sin(declination)
        + math.cos(phi) * math.cos(declination) * math.sin(ws)
    )


def clear_sky_solar_radiation(z: float, ra: float) -> float:
    """Step 16 - Clear sky solar radiation Rso (MJ m⁻² day⁻¹)."""
    return (0.75 + 2e-5 * z) * ra


def net_shortwave_radiation(rs: float, albedo: float = GRASS_ALBEDO) -> float:
    """Step 17 - Net shortwave radiation Rns (MJ m⁻² day⁻¹)."""
    return (1 - albedo) * rs


def net_outgoing_longwave_radiation(t_min: float, t_max: float, ea: float, rs: float, rso: float) -> float:
    """Step 18 - Net outgoing longwave radiation Rnl (MJ m⁻² day⁻¹).

    The relative shortwave radiation Rs/Rso is limited to 1.0 and taken as 0
    when there is no clear sky radiation, as during polar night.
    """
    relative_shortwave = min(rs / rso, 1.0) if rso > 0 else 0.0
    return (
        STEFAN_BOLTZMANN
        * ((t_max + 273.16) ** 4 + (t_min + 273.16) ** 4) / 2
        * (0.34 - 0.14 * math.sqrt(ea))
        * (1.35 * relative_shortwave - 0.35)
    )


def net_radiation(rns: float, rnl: float) -> float:
    """Step 19 - Net radiation expressed as evaporation equivalent (mm)."""
    return 0.408 * rns - rnl


def wind_term(pt: float, tt: float, es_tmin: float, es_tmax: float, ea: float) -> float:
    """Wind term ETwind (mm/day)."""
    es = (es_tmin + es_tmax) / 2
    return pt * tt * (es - ea)


def radiation_term(
    delta: float,
    gamma: float,
    u: float,
    rs: float,
    t_min: float,
    t_max: float,
    ea: float,
    z: float,
    j: int,
    phi: float,
) -> float:
    """Radiation term ETrad (mm/day)."""
    declination = solar_declination(j)
    ra = extraterrestrial_radiation(
        inverse_relative_distance_earth_sun(j),
        sunset_hour_angle(phi, declination),
        phi,
        declination,
    )
    rso = clear_sky_solar_radiation(z, ra)
    rnl = net_outgoing_longwave_radiation(t_min, t_max, ea, rs, rso)
    return delta_term(delta, gamma, u) * net_radiation(net_shortwave_radiation(rs), rnl)


def standardize_wind_speed(speed: float, height: float) -> float:
    """
    Convert a wind speed measured at any height to the 2 m standard (FAO-56 eq. 47).

    Args:
        speed: Wind speed at the measurement height (m/s)
        height: Measurement height above the ground (m)

    Returns:
        Wind speed at 2 m (m/s)
    """
    return speed * 4.87 / math.log(67.8 * height - 5.42)
