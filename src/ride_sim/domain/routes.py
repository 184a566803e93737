from dataclasses import dataclass

from ride_sim.domain.entities.geography import BoundingBox, Coordinate
from ride_sim.domain.geomath import interpolate_great_circle, path_length_km, same_place


@dataclass(frozen=True)
class RouteGeometry:
    points: tuple[Coordinate, ...]  # first = pickup, last = destination
    bounding_box: BoundingBox

    @property
    def start(self) -> Coordinate:
        return self.points[0]

    @property
    def end(self) -> Coordinate:
        return self.points[-1]

    @property
    def distance_km(self) -> float:
        return path_length_km(self.points)

    def to_geojson(self) -> dict:
        return {
            "type": "Feature",
            "properties": {"distanceKm": round(self.distance_km, 3)},
            "geometry": {
                "type": "LineString",
                "coordinates": [[p.lon, p.lat] for p in self.points],
            },
            "bbox": [
                self.bounding_box.south_west.lon,
                self.bounding_box.south_west.lat,
                self.bounding_box.north_east.lon,
                self.bounding_box.north_east.lat,
            ],
        }


class RouteBuilder:
    def __init__(
        self,
        *,
        resolution: int = 100,
        padding_factor: float = 0.1,
        min_padding_deg: float = 0.005,
    ):
        self.resolution = resolution
        self.padding_factor = padding_factor
        self.min_padding_deg = min_padding_deg

    def build(
        self, pickup: Coordinate, destination: Coordinate, resolution: int | None = None
    ) -> RouteGeometry:
        n = self.resolution if resolution is None else resolution
        if same_place(pickup, destination):
            # zero-length trip: valid input, single-point route
            points: tuple[Coordinate, ...] = (pickup,)
        else:
            points = tuple(interpolate_great_circle(pickup, destination, n))
        box = BoundingBox.from_points(points).padded(self.padding_factor, self.min_padding_deg)
        return RouteGeometry(points=points, bounding_box=box)
