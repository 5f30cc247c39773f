"""Observer-relative geometry of a satellite on a spherical Earth.

Every function here is pure. Positions are geodetic (degrees, km); the observer sits at sea level.
"""

import math
from typing import Union

from passwatch.base.models import NOT_VISIBLE, GeodeticPosition, ObserverPosition, VisibilityReading, normalize_longitude
from passwatch.core.constants import EARTH_RADIUS_KM, ELEVATION_BANDS, VISIBILITY_THRESHOLD_DEG

Position = Union[GeodeticPosition, ObserverPosition]


def central_angle(observer: Position, satellite: Position) -> float:
    """Great-circle angle (radians) between two points, haversine form."""
    phi1 = math.radians(observer.latitude_deg)
    phi2 = math.radians(satellite.latitude_deg)
    d_phi = phi2 - phi1
    d_lambda = math.radians(satellite.longitude_deg - observer.longitude_deg)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def slant_range(c: float, altitude_km: float) -> float:
    """Straight-line distance (km) from a sea-level observer to a satellite `c` radians away."""
    r = EARTH_RADIUS_KM
    rh = r + altitude_km
    # Law of cosines, R^2 + (R+h)^2 - 2R(R+h)cos(c), rewritten to stay exact near c = 0
    return math.sqrt(altitude_km * altitude_km + 4 * r * rh * math.sin(c / 2) ** 2)


def elevation_angle(c: float, altitude_km: float) -> float:
    """Elevation (degrees) above the local horizon, clamped to [-90, 90]."""
    d = slant_range(c, altitude_km)
    if d == 0:
        # Satellite coincides with the observer
        return 90.0
    r = EARTH_RADIUS_KM
    ratio = ((r + altitude_km) * math.cos(c) - r) / d
    elevation = math.degrees(math.asin(min(1.0, max(-1.0, ratio))))
    return max(-90.0, min(90.0, elevation))


def azimuth(observer: Position, satellite: Position) -> float:
    """Forward bearing (degrees, clockwise from north) from the observer to the sub-satellite point."""
    phi1 = math.radians(observer.latitude_deg)
    phi2 = math.radians(satellite.latitude_deg)
    d_lambda = math.radians(satellite.longitude_deg - observer.longitude_deg)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360) % 360


def elevation_azimuth(observer: ObserverPosition, satellite: GeodeticPosition) -> VisibilityReading:
    """Compute elevation, azimuth, slant range and visibility of `satellite` as seen by `observer`.

    Non-finite coordinates yield NOT_VISIBLE rather than NaN readings.
    """
    if not (observer.is_finite and satellite.is_finite):
        return NOT_VISIBLE

    c = central_angle(observer, satellite)
    altitude_km = satellite.altitude_km
    elevation = elevation_angle(c, altitude_km)
    return VisibilityReading(
        elevation_deg=elevation,
        azimuth_deg=azimuth(observer, satellite),
        slant_range_km=slant_range(c, altitude_km),
        is_visible=elevation > VISIBILITY_THRESHOLD_DEG,
    )


def coarse_direction(observer: Position, satellite: Position) -> str:
    """Northbound/Southbound/Eastbound/Westbound, from whichever of the lat/lon offsets dominates."""
    lat_diff = satellite.latitude_deg - observer.latitude_deg
    lon_diff = normalize_longitude(satellite.longitude_deg - observer.longitude_deg)
    if abs(lat_diff) > abs(lon_diff):
        return "Northbound" if lat_diff > 0 else "Southbound"
    return "Eastbound" if lon_diff > 0 else "Westbound"


def elevation_band(elevation_deg: float) -> tuple[int, str]:
    """Sky-position band (lower bound, description) an elevation falls in."""
    band = ELEVATION_BANDS[0]
    for lower, description in ELEVATION_BANDS:
        if elevation_deg >= lower:
            band = (lower, description)
    return band
