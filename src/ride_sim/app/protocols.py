from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ride_sim.domain.entities.geography import BoundingBox, Coordinate


@runtime_checkable
class RandomSource(Protocol):
    """
    Subset of numpy.random.Generator the simulator draws from.
    Injected so tests can supply a seeded or scripted sequence.
    """

    def random(self) -> float: ...
    def uniform(self, low: float, high: float) -> float: ...
    def integers(self, low: int, high: int) -> int:
        """Integer in [low, high)."""


# ------------- Lookups --------------------


@dataclass(frozen=True)
class GazetteerHit:
    """One place as returned by a gazetteer."""

    display_name: str
    lat: float
    lon: float
    address: dict[str, str] = field(default_factory=dict, compare=False, hash=False)


@runtime_checkable
class Gazetteer(Protocol):
    """
    Responsibilities:
      • Forward search: free text -> ranked places, biased to a region.
      • Reverse search: coordinate -> nearest named place (or None).
    Raises ResolverError(NETWORK | TIMEOUT) when the lookup cannot be made.
    """

    def search(
        self,
        query: str,
        *,
        country_codes: str | None = None,
        viewbox: BoundingBox | None = None,
        bounded: bool = False,
        limit: int = 5,
    ) -> list[GazetteerHit]: ...
    def reverse(
        self, coord: Coordinate, *, timeout_s: float | None = None
    ) -> GazetteerHit | None: ...


@runtime_checkable
class DeviceLocator(Protocol):
    """
    Device geolocation. Must give up after `timeout_ms` and raise
    ResolverError(PERMISSION_DENIED | TIMEOUT | UNSUPPORTED) on failure.
    """

    def locate(
        self,
        *,
        high_accuracy: bool = True,
        timeout_ms: int = 10_000,
        max_cache_age_ms: int = 60_000,
    ) -> Coordinate: ...
