# ride_sim/services/resolver.py
"""
Free-text address -> Location.

Forward lookups are cached for the lifetime of the resolver. Interactive
inputs go through a DebouncedField: submit() arms a quiet-period timer and
poll(), called by whoever owns the schedule, dispatches the lookup once the
window has passed. Only the latest request of a field is ever published.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from ride_sim.app.protocols import DeviceLocator, Gazetteer, GazetteerHit
from ride_sim.domain.entities.geography import BoundingBox, Coordinate, Location, LocationSource
from ride_sim.errors import ResolverError, ResolverErrorKind
from ride_sim.services.gazetteer import INDIA_VIEWBOX
from ride_sim.sim.clock import Clock, MonotonicClock

log = logging.getLogger(__name__)


def normalize_query(query: str) -> str:
    return " ".join(query.casefold().split())


def short_name(hit: GazetteerHit) -> str:
    """'City, State' when the address has them, else the first part of the display name."""
    parts = [hit.address[k] for k in ("city", "state") if hit.address.get(k)]
    return ", ".join(parts) if parts else hit.display_name.split(",")[0].strip()


def to_location(hit: GazetteerHit, source: LocationSource = LocationSource.RESOLVED) -> Location:
    return Location(
        display_name=hit.display_name,
        coordinate=Coordinate.of(hit.lon, hit.lat),
        source=source,
        short_name=short_name(hit),
    )


@dataclass
class ResolverStats:
    hits: int = 0
    misses: int = 0
    dispatched: int = 0  # external forward lookups actually made


@dataclass(frozen=True)
class FieldResult:
    field: str
    request_id: int
    query: str
    locations: tuple[Location, ...] = ()
    error: ResolverError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class LocationResolver:
    def __init__(
        self,
        gazetteer: Gazetteer,
        device: DeviceLocator | None = None,
        *,
        clock: Clock | None = None,
        country_codes: str | None = "in",
        viewbox: BoundingBox | None = INDIA_VIEWBOX,
        bounded: bool = True,
        limit: int = 5,
        min_query_chars: int = 2,
        debounce_s: float = 0.3,
        reverse_timeout_s: float = 10.0,
        device_timeout_ms: int = 10_000,
        max_cache_age_ms: int = 60_000,
        high_accuracy: bool = True,
    ):
        if device_timeout_ms <= 0 or reverse_timeout_s <= 0:
            raise ValueError("device and reverse lookups need a positive timeout")
        self.gazetteer = gazetteer
        self.device = device
        self.clock = clock or MonotonicClock()
        self.country_codes = country_codes
        self.viewbox = viewbox
        self.bounded = bounded
        self.limit = limit
        self.min_query_chars = min_query_chars
        self.debounce_s = debounce_s
        self.reverse_timeout_s = reverse_timeout_s
        self.device_timeout_ms = device_timeout_ms
        self.max_cache_age_ms = max_cache_age_ms
        self.high_accuracy = high_accuracy

        self.stats = ResolverStats()
        self._cache: dict[str, tuple[Location, ...]] = {}
        self._lock = threading.Lock()
        self._fields: dict[str, DebouncedField] = {}

    # --------------- forward ---------------------------

    def is_too_short(self, query: str) -> bool:
        return len(query.strip()) < self.min_query_chars

    def resolve(self, query: str) -> list[Location]:
        """Matches for `query`, best first; [] when nothing matches or the query is too short."""
        if self.is_too_short(query):
            return []
        q = query.strip()
        key = normalize_query(q)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self.stats.hits += 1
                return list(cached)
            self.stats.misses += 1
            self.stats.dispatched += 1

        hits = self.gazetteer.search(
            q,
            country_codes=self.country_codes,
            viewbox=self.viewbox,
            bounded=self.bounded,
            limit=self.limit,
        )
        locations = tuple(to_location(h) for h in hits[: self.limit])
        if locations:
            with self._lock:
                # a concurrent identical lookup may have landed first; keep that one
                locations = self._cache.setdefault(key, locations)
        log.info("location_resolved", extra={"extra": {"query": key, "matches": len(locations)}})
        return list(locations)

    # --------------- device ----------------------------

    def resolve_current_device(self) -> Location:
        if self.device is None:
            raise ResolverError(ResolverErrorKind.UNSUPPORTED, "no device locator configured")
        coord = self.device.locate(
            high_accuracy=self.high_accuracy,
            timeout_ms=self.device_timeout_ms,
            max_cache_age_ms=self.max_cache_age_ms,
        )
        try:
            hit = self.gazetteer.reverse(coord, timeout_s=self.reverse_timeout_s)
        except ResolverError as e:
            log.warning("reverse_lookup_failed", extra={"extra": {"kind": e.kind.value}})
            hit = None
        if hit is None:
            name = f"Current Location ({coord.lat:.4f}, {coord.lon:.4f})"
            return Location(name, coord, LocationSource.CURRENT_DEVICE, name)
        return Location(hit.display_name, coord, LocationSource.CURRENT_DEVICE, short_name(hit))

    def resolve_current_device_or(self, center: Coordinate) -> Location:
        """Device location, or the map centre when the device cannot answer."""
        try:
            return self.resolve_current_device()
        except ResolverError as e:
            log.warning("device_location_fallback", extra={"extra": {"kind": e.kind.value}})
            return Location("Map center", center, LocationSource.UNRESOLVED, "Map center")

    # --------------- debounced inputs ------------------

    def field(self, name: str, on_result: Callable[[FieldResult], None] | None = None):
        with self._lock:
            f = self._fields.get(name)
            if f is None or f.closed:
                f = DebouncedField(name, self, delay_s=self.debounce_s, on_result=on_result)
                self._fields[name] = f
            elif on_result is not None:
                f.on_result = on_result
            return f

    def poll_fields(self) -> list[FieldResult]:
        with self._lock:
            fields = list(self._fields.values())
        return [r for f in fields if (r := f.poll()) is not None]

    def close(self) -> None:
        with self._lock:
            fields = list(self._fields.values())
        for f in fields:
            f.close()


class DebouncedField:
    """One input box: a quiet-period timer plus last-write-wins publication."""

    def __init__(
        self,
        name: str,
        resolver: LocationResolver,
        *,
        delay_s: float = 0.3,
        on_result: Callable[[FieldResult], None] | None = None,
    ):
        self.name = name
        self.resolver = resolver
        self.delay_s = delay_s
        self.on_result = on_result
        self.latest: FieldResult | None = None
        self.closed = False
        self._lock = threading.Lock()
        self._seq = 0  # id of the newest request; anything older is stale
        self._pending: tuple[int, str, float] | None = None  # (id, query, due_at)

    @property
    def pending_query(self) -> str | None:
        p = self._pending
        return p[1] if p else None

    @property
    def due_at(self) -> float | None:
        p = self._pending
        return p[2] if p else None

    def submit(self, query: str) -> int:
        with self._lock:
            if self.closed:
                raise RuntimeError(f"field {self.name!r} is closed")
            self._seq += 1
            rid = self._seq
            if not self.resolver.is_too_short(query):
                self._pending = (rid, query, self.resolver.clock.now() + self.delay_s)
                return rid
            self._pending = None
            result = FieldResult(self.name, rid, query)
            self.latest = result
        self._notify(result)
        return rid

    def poll(self) -> FieldResult | None:
        with self._lock:
            p = self._pending
            if p is None or self.resolver.clock.now() < p[2]:
                return None
            rid, query, _ = p
            self._pending = None

        try:
            result = FieldResult(self.name, rid, query, tuple(self.resolver.resolve(query)))
        except ResolverError as e:
            result = FieldResult(self.name, rid, query, error=e)

        with self._lock:
            if self.closed or rid != self._seq:
                log.debug(
                    "stale_result_discarded",
                    extra={"extra": {"field": self.name, "request_id": rid, "latest": self._seq}},
                )
                return None
            self.latest = result
        self._notify(result)
        return result

    def cancel(self) -> None:
        """Drop the pending timer and make any in-flight lookup stale."""
        with self._lock:
            self._pending = None
            self._seq += 1

    def close(self) -> None:
        with self._lock:
            self.closed = True
            self._pending = None
            self._seq += 1

    def _notify(self, result: FieldResult) -> None:
        if self.on_result is not None:
            self.on_result(result)
