from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from ride_sim.errors import InvalidCoordinateError


# Core geometry types, WGS84 degrees
@dataclass(frozen=True)
class Coordinate:
    lon: float
    lat: float

    def __post_init__(self):
        if not (math.isfinite(self.lon) and math.isfinite(self.lat)):
            raise InvalidCoordinateError(f"non-finite coordinate ({self.lon}, {self.lat})")
        if not -180.0 <= self.lon <= 180.0:
            raise InvalidCoordinateError(f"longitude {self.lon} outside [-180, 180]")
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidCoordinateError(f"latitude {self.lat} outside [-90, 90]")

    @classmethod
    def of(cls, lon: float, lat: float) -> Coordinate:
        return cls(float(lon), float(lat))

    def as_lonlat(self) -> tuple[float, float]:
        return (self.lon, self.lat)

    def as_latlon(self) -> tuple[float, float]:
        return (self.lat, self.lon)


@dataclass(frozen=True)
class BoundingBox:
    south_west: Coordinate
    north_east: Coordinate

    @classmethod
    def from_points(cls, points: Iterable[Coordinate]) -> BoundingBox:
        pts = list(points)
        if not pts:
            raise InvalidCoordinateError("bounding box needs at least one point")
        lons = [p.lon for p in pts]
        lats = [p.lat for p in pts]
        return cls(Coordinate(min(lons), min(lats)), Coordinate(max(lons), max(lats)))

    @classmethod
    def from_viewbox(cls, min_lon: float, min_lat: float, max_lon: float, max_lat: float):
        return cls(Coordinate.of(min_lon, min_lat), Coordinate.of(max_lon, max_lat))

    @property
    def width_deg(self) -> float:
        return self.north_east.lon - self.south_west.lon

    @property
    def height_deg(self) -> float:
        return self.north_east.lat - self.south_west.lat

    def contains(self, p: Coordinate) -> bool:
        return (
            self.south_west.lon <= p.lon <= self.north_east.lon
            and self.south_west.lat <= p.lat <= self.north_east.lat
        )

    def padded(self, factor: float, min_pad_deg: float = 0.0) -> BoundingBox:
        """Grow each side by `factor` of its span (at least `min_pad_deg`), clamped to the globe."""
        dx = max(self.width_deg * factor, min_pad_deg)
        dy = max(self.height_deg * factor, min_pad_deg)
        return BoundingBox(
            Coordinate(max(-180.0, self.south_west.lon - dx), max(-90.0, self.south_west.lat - dy)),
            Coordinate(min(180.0, self.north_east.lon + dx), min(90.0, self.north_east.lat + dy)),
        )

    def as_viewbox(self) -> str:
        # Nominatim order: x1,y1,x2,y2
        sw, ne = self.south_west, self.north_east
        return f"{sw.lon},{sw.lat},{ne.lon},{ne.lat}"


class LocationSource(Enum):
    RESOLVED = "resolved"
    CURRENT_DEVICE = "current_device"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Location:
    display_name: str
    coordinate: Coordinate
    source: LocationSource = LocationSource.RESOLVED
    short_name: str = ""

    def label(self) -> str:
        return self.short_name or self.display_name
