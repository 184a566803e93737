# ride_sim/domain/geomath.py
import math
from collections.abc import Sequence

from ride_sim.domain.entities.geography import Coordinate
from ride_sim.errors import InvalidInputError

EARTH_RADIUS_KM = 6371.0

# Angular separations (radians) closer than this to 0 or pi count as the same
# place or as antipodal. (180, y) vs (-180, y) and the two poles are "same place".
_ANGLE_EPS = 1e-12


def _normalize_lon(lon: float) -> float:
    lon = (lon + 180.0) % 360.0 - 180.0
    return 180.0 if lon == -180.0 else lon


def _clamp_lat(lat: float) -> float:
    return max(-90.0, min(90.0, lat))


def _central_angle(a: Coordinate, b: Coordinate) -> float:
    lat1, lon1 = math.radians(a.lat), math.radians(a.lon)
    lat2, lon2 = math.radians(b.lat), math.radians(b.lon)
    dlat, dlon = lat2 - lat1, lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * math.asin(math.sqrt(min(1.0, h)))


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine great-circle distance."""
    if a == b:
        return 0.0
    return EARTH_RADIUS_KM * _central_angle(a, b)


def same_place(a: Coordinate, b: Coordinate) -> bool:
    return a == b or _central_angle(a, b) < _ANGLE_EPS


def path_length_km(points: Sequence[Coordinate]) -> float:
    return sum(distance_km(p, q) for p, q in zip(points, points[1:]))


def initial_bearing_deg(a: Coordinate, b: Coordinate) -> float:
    """Forward azimuth from a to b, degrees clockwise from north in [0, 360)."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlon = math.radians(b.lon - a.lon)
    x = math.sin(dlon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    return math.degrees(math.atan2(x, y)) % 360.0


def destination_point(origin: Coordinate, bearing_deg: float, dist_km: float) -> Coordinate:
    """Point reached travelling `dist_km` along a great circle from `origin`."""
    if dist_km == 0:
        return origin
    delta = dist_km / EARTH_RADIUS_KM
    theta = math.radians(bearing_deg)
    lat1, lon1 = math.radians(origin.lat), math.radians(origin.lon)
    sin_lat2 = math.sin(lat1) * math.cos(delta) + math.cos(lat1) * math.sin(delta) * math.cos(theta)
    lat2 = math.asin(max(-1.0, min(1.0, sin_lat2)))
    lon2 = lon1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(lat1),
        math.cos(delta) - math.sin(lat1) * sin_lat2,
    )
    return Coordinate(_normalize_lon(math.degrees(lon2)), _clamp_lat(math.degrees(lat2)))


def interpolate_great_circle(a: Coordinate, b: Coordinate, n: int) -> list[Coordinate]:
    """
    n points evenly spaced along the shortest great circle from a to b.
    The first and last points are the inputs themselves, never recomputed.
    """
    if n < 2:
        raise InvalidInputError(f"need at least 2 points, got {n}")
    d = _central_angle(a, b)
    if a == b or d < _ANGLE_EPS:
        raise InvalidInputError("cannot interpolate between coincident points")
    if math.pi - d < _ANGLE_EPS:
        raise InvalidInputError("antipodal points have no unique great circle")
    sin_d = math.sin(d)

    lat1, lon1 = math.radians(a.lat), math.radians(a.lon)
    lat2, lon2 = math.radians(b.lat), math.radians(b.lon)
    # unit vectors
    x1, y1, z1 = math.cos(lat1) * math.cos(lon1), math.cos(lat1) * math.sin(lon1), math.sin(lat1)
    x2, y2, z2 = math.cos(lat2) * math.cos(lon2), math.cos(lat2) * math.sin(lon2), math.sin(lat2)

    out = [a]
    for i in range(1, n - 1):
        f = i / (n - 1)
        wa = math.sin((1 - f) * d) / sin_d
        wb = math.sin(f * d) / sin_d
        x, y, z = wa * x1 + wb * x2, wa * y1 + wb * y2, wa * z1 + wb * z2
        lat = math.degrees(math.atan2(z, math.hypot(x, y)))
        lon = math.degrees(math.atan2(y, x))
        out.append(Coordinate(_normalize_lon(lon), _clamp_lat(lat)))
    out.append(b)
    return out
