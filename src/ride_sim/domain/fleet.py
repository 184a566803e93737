# ride_sim/domain/fleet.py
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from ride_sim.app.protocols import RandomSource
from ride_sim.domain.catalogue import DEFAULT_VEHICLES, VehicleSpec
from ride_sim.domain.entities.driver import Driver, VehicleType
from ride_sim.domain.entities.geography import Coordinate
from ride_sim.domain.fares import to_money
from ride_sim.domain.geomath import destination_point, distance_km, initial_bearing_deg
from ride_sim.errors import NotRunningError
from ride_sim.sim.clock import Clock, MonotonicClock

log = logging.getLogger(__name__)


class FleetMode(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class FleetSettings:
    move_probability: float = 0.5
    max_step_km: float = 0.11  # ~0.001 deg of latitude
    availability_flip_probability: float = 0.05
    available_probability: float = 0.7
    rating_range: tuple[float, float] = (4.0, 5.0)
    initial_eta_range: tuple[int, int] = (2, 11)  # inclusive
    max_eta: int = 15
    speed_jitter: float = 0.2  # +/- fraction of the vehicle's average speed


@dataclass(frozen=True)
class FleetSnapshot:
    tick: int
    taken_at: float
    drivers: tuple[Driver, ...]
    center: Coordinate | None = None
    radius_km: float = 0.0

    @property
    def available_count(self) -> int:
        return sum(1 for d in self.drivers if d.available)

    def by_id(self) -> dict[str, Driver]:
        return {d.id: d for d in self.drivers}

    def to_export(self) -> list[dict]:
        return [d.to_export() for d in self.drivers]


class FleetSimulator:
    """
    Owns a population of simulated drivers around a centre point.

    The simulator has no timer of its own: whoever owns the schedule calls
    tick() at its cadence. Every read hands out an immutable FleetSnapshot.
    """

    def __init__(
        self,
        rng: RandomSource,
        *,
        vehicles: Mapping[VehicleType, VehicleSpec] = DEFAULT_VEHICLES,
        base_fare: Decimal | float = Decimal("40"),
        settings: FleetSettings | None = None,
        clock: Clock | None = None,
    ):
        if not vehicles:
            raise ValueError("vehicle catalogue is empty")
        self.rng = rng
        self.vehicles = dict(vehicles)
        self.base_fare = to_money(base_fare)
        self.settings = settings or FleetSettings()
        self.clock = clock or MonotonicClock()

        self.mode = FleetMode.STOPPED
        self.center: Coordinate | None = None
        self.radius_km = 0.0
        self._drivers: list[Driver] = []
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self.mode is FleetMode.RUNNING

    # ------------- lifecycle ---------------------------

    def start(self, center: Coordinate, count: int, radius_km: float) -> FleetSnapshot:
        if count < 0:
            raise ValueError(f"driver count must be >= 0, got {count}")
        if not math.isfinite(radius_km) or radius_km <= 0:
            raise ValueError(f"radius_km must be a positive number, got {radius_km}")
        restarted = self.running
        self.center, self.radius_km = center, float(radius_km)
        self._drivers = [self._spawn(i) for i in range(int(count))]
        self._ticks = 0
        self.mode = FleetMode.RUNNING
        log.info(
            "fleet_started",
            extra={
                "extra": {
                    "count": count,
                    "radius_km": radius_km,
                    "center": center.as_lonlat(),
                    "restarted": restarted,
                }
            },
        )
        return self.snapshot()

    def recenter(self, center: Coordinate) -> FleetSnapshot:
        """Regenerate the population around a new centre, keeping count and radius."""
        if not self.running:
            raise NotRunningError("recenter() on a stopped fleet")
        return self.start(center, len(self._drivers), self.radius_km)

    def stop(self) -> None:
        if not self.running:
            return
        self.mode = FleetMode.STOPPED
        self._drivers = []
        log.info("fleet_stopped", extra={"extra": {"ticks": self._ticks}})

    # ------------- stepping ----------------------------

    def tick(self) -> FleetSnapshot:
        if not self.running:
            raise NotRunningError("tick() on a stopped fleet; call start() first")
        self._drivers = [self._step(d) for d in self._drivers]
        self._ticks += 1
        snap = self.snapshot()
        log.debug(
            "fleet_tick",
            extra={"extra": {"tick": snap.tick, "available": snap.available_count}},
        )
        return snap

    def snapshot(self) -> FleetSnapshot:
        return FleetSnapshot(
            tick=self._ticks,
            taken_at=self.clock.now(),
            drivers=tuple(self._drivers),
            center=self.center if self.running else None,
            radius_km=self.radius_km if self.running else 0.0,
        )

    def nearby(
        self, point: Coordinate, *, limit: int | None = None, available_only: bool = False
    ) -> list[Driver]:
        ranked = sorted(
            (
                (distance_km(point, d.location), i, d)
                for i, d in enumerate(self._drivers)
                if d.available or not available_only
            ),
            key=lambda x: (x[0], x[1]),
        )
        out = [d for _, _, d in ranked]
        return out if limit is None else out[:limit]

    # ------------- internals ---------------------------

    def _spawn(self, i: int) -> Driver:
        s, rng = self.settings, self.rng
        bearing = rng.uniform(0.0, 360.0)
        r = rng.uniform(0.0, self.radius_km)
        types = list(self.vehicles)
        vt = types[int(rng.integers(0, len(types)))]
        spec = self.vehicles[vt]
        lo, hi = s.initial_eta_range
        jitter = rng.uniform(1.0 - s.speed_jitter, 1.0 + s.speed_jitter)
        return Driver(
            id=f"driver-{i}",
            name=f"Driver {i + 1}",
            vehicle_type=vt,
            location=destination_point(self.center, bearing, r),
            available=bool(rng.random() < s.available_probability),
            rating=round(rng.uniform(*s.rating_range), 1),
            eta_minutes=max(1, int(rng.integers(lo, hi + 1))),
            speed_kmh=round(spec.avg_speed_kmh * jitter, 1),
            fare_quote_base=to_money(self.base_fare * Decimal(str(spec.multiplier))),
        )

    def _step(self, d: Driver) -> Driver:
        s, rng = self.settings, self.rng
        loc = d.location
        if rng.random() < s.move_probability:
            step = rng.uniform(0.0, s.max_step_km)
            cand = destination_point(loc, rng.uniform(0.0, 360.0), step)
            if distance_km(self.center, cand) > self.radius_km:
                # tethered: head back toward the centre instead of leaving the area
                back = min(step, distance_km(loc, self.center))
                cand = (
                    destination_point(loc, initial_bearing_deg(loc, self.center), back)
                    if back > 0
                    else loc
                )
            loc = cand
        delta = 1 if rng.random() < 0.5 else -1
        eta = min(s.max_eta, max(1, d.eta_minutes + delta))
        available = d.available
        if rng.random() < s.availability_flip_probability:
            available = not available
        return replace(d, location=loc, eta_minutes=eta, available=available)
