# ride_sim/services/gazetteer.py
import logging

import requests

from ride_sim.app.protocols import Gazetteer, GazetteerHit
from ride_sim.domain.entities.geography import BoundingBox, Coordinate
from ride_sim.domain.geomath import distance_km
from ride_sim.errors import ResolverError, ResolverErrorKind

log = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org"
INDIA_VIEWBOX = BoundingBox.from_viewbox(68.1766451354, 7.96553477623, 97.4025614766, 35.4940095078)


def _parse_hit(raw) -> GazetteerHit:
    if not isinstance(raw, dict):
        raise ResolverError(ResolverErrorKind.NETWORK, f"malformed place: {raw!r}")
    try:
        lat, lon = float(raw["lat"]), float(raw["lon"])
        name = str(raw["display_name"])
    except (KeyError, TypeError, ValueError) as e:
        raise ResolverError(ResolverErrorKind.NETWORK, f"malformed place: {e}") from e
    address = raw.get("address") or {}
    if not isinstance(address, dict):
        address = {}
    return GazetteerHit(
        display_name=name,
        lat=lat,
        lon=lon,
        address={str(k): str(v) for k, v in address.items()},
    )


class NominatimGazetteer(Gazetteer):
    """OpenStreetMap Nominatim over HTTP."""

    def __init__(
        self,
        base_url: str = NOMINATIM_URL,
        *,
        user_agent: str = "ride-sim/0.1",
        timeout_s: float = 8.0,
        reverse_timeout_s: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.reverse_timeout_s = reverse_timeout_s
        self.session = session or requests.Session()
        self.headers = {"User-Agent": user_agent, "Accept": "application/json"}

    def _get(self, path: str, params: dict, timeout_s: float):
        url = f"{self.base_url}/{path}"
        try:
            r = self.session.get(url, params=params, headers=self.headers, timeout=timeout_s)
            r.raise_for_status()
            return r.json()
        except requests.Timeout as e:
            log.warning("gazetteer_timeout", extra={"extra": {"path": path, "timeout": timeout_s}})
            raise ResolverError(ResolverErrorKind.TIMEOUT, f"{path} timed out") from e
        except (requests.RequestException, ValueError) as e:
            log.warning("gazetteer_failed", extra={"extra": {"path": path, "error": str(e)}})
            raise ResolverError(ResolverErrorKind.NETWORK, f"{path}: {e}") from e

    def search(
        self,
        query: str,
        *,
        country_codes: str | None = None,
        viewbox: BoundingBox | None = None,
        bounded: bool = False,
        limit: int = 5,
    ) -> list[GazetteerHit]:
        params = {"q": query, "format": "json", "addressdetails": 1, "limit": limit}
        if country_codes:
            params["countrycodes"] = country_codes
        if viewbox is not None:
            params["viewbox"] = viewbox.as_viewbox()
            if bounded:
                params["bounded"] = 1
        data = self._get("search", params, self.timeout_s)
        if not isinstance(data, list):
            raise ResolverError(ResolverErrorKind.NETWORK, "search payload is not a list")
        return [_parse_hit(raw) for raw in data[:limit]]

    def reverse(self, coord: Coordinate, *, timeout_s: float | None = None) -> GazetteerHit | None:
        params = {"lat": coord.lat, "lon": coord.lon, "format": "json", "addressdetails": 1}
        data = self._get("reverse", params, timeout_s or self.reverse_timeout_s)
        if isinstance(data, dict) and "error" in data:
            return None
        return _parse_hit(data)


# ------------------ Offline gazetteer -----------------------------

# (name, lon, lat, city, state)
_INDIA_PLACES: list[tuple[str, float, float, str, str]] = [
    ("New Delhi", 77.2090, 28.6139, "New Delhi", "Delhi"),
    ("Mumbai", 72.8777, 19.0760, "Mumbai", "Maharashtra"),
    ("Bangalore", 77.5946, 12.9716, "Bengaluru", "Karnataka"),
    ("Chennai", 80.2707, 13.0827, "Chennai", "Tamil Nadu"),
    ("Hyderabad", 78.4867, 17.3850, "Hyderabad", "Telangana"),
    ("Kolkata", 88.3639, 22.5726, "Kolkata", "West Bengal"),
    ("Mumbai Airport", 72.8656, 19.0896, "Mumbai", "Maharashtra"),
    ("Connaught Place", 77.2167, 28.6315, "New Delhi", "Delhi"),
    ("Phoenix Mall", 77.6964, 12.9975, "Bengaluru", "Karnataka"),
    ("Mumbai Central Railway Station", 72.8194, 18.9690, "Mumbai", "Maharashtra"),
    ("AIIMS Hospital", 77.2100, 28.5672, "New Delhi", "Delhi"),
    ("IIT Delhi", 77.1926, 28.5450, "New Delhi", "Delhi"),
    ("India Gate", 77.2295, 28.6129, "New Delhi", "Delhi"),
    ("Karol Bagh Metro Station", 77.1905, 28.6440, "New Delhi", "Delhi"),
    ("Eden Gardens", 88.3433, 22.5646, "Kolkata", "West Bengal"),
    ("Marine Drive", 72.8236, 18.9430, "Mumbai", "Maharashtra"),
]


class StaticGazetteer(Gazetteer):
    """In-memory gazetteer; case-insensitive substring search, nearest-place reverse."""

    def __init__(
        self,
        places: list[GazetteerHit] | None = None,
        *,
        country_code: str = "in",
        reverse_max_km: float = 25.0,
    ):
        self.places = list(places) if places is not None else self.india()
        self.country_code = country_code
        self.reverse_max_km = reverse_max_km

    @staticmethod
    def india() -> list[GazetteerHit]:
        return [
            GazetteerHit(
                display_name=f"{name}, {city}, {state}, India",
                lat=lat,
                lon=lon,
                address={"city": city, "state": state, "country_code": "in"},
            )
            for name, lon, lat, city, state in _INDIA_PLACES
        ]

    def search(
        self,
        query: str,
        *,
        country_codes: str | None = None,
        viewbox: BoundingBox | None = None,
        bounded: bool = False,
        limit: int = 5,
    ) -> list[GazetteerHit]:
        if country_codes and self.country_code not in country_codes.lower().split(","):
            return []
        q = " ".join(query.casefold().split())
        out = []
        for p in self.places:
            if q not in p.display_name.casefold():
                continue
            if bounded and viewbox is not None and not viewbox.contains(Coordinate(p.lon, p.lat)):
                continue
            out.append(p)
        return out[:limit]

    def reverse(self, coord: Coordinate, *, timeout_s: float | None = None) -> GazetteerHit | None:
        best, best_d = None, self.reverse_max_km
        for p in self.places:
            d = distance_km(coord, Coordinate(p.lon, p.lat))
            if d <= best_d:
                best, best_d = p, d
        return best
