# ride_sim/app/controllers/fleet.py
import logging
from collections.abc import Callable

from ride_sim.app.events import FleetTick, SessionEnd
from ride_sim.domain.entities.geography import Coordinate
from ride_sim.domain.fleet import FleetSimulator, FleetSnapshot
from ride_sim.io.business_events import FleetTicked
from ride_sim.io.recorder import Recorder

log = logging.getLogger(__name__)


class FleetTicker:
    """Drives FleetSimulator.tick() from the kernel at a fixed interval."""

    def __init__(
        self,
        sim: FleetSimulator,
        *,
        interval_s: float,
        center: Coordinate,
        count: int,
        radius_km: float,
        recorder: Recorder | None = None,
    ):
        if interval_s <= 0:
            raise ValueError("tick interval must be > 0")
        self.sim = sim
        self.interval_s = interval_s
        self.center, self.count, self.radius_km = center, count, radius_km
        self.recorder = recorder
        self.listeners: list[Callable[[FleetSnapshot], None]] = []
        self.task_id = 0
        self.active = False

    def start(self, t0: float) -> FleetTick:
        """(Re)start the fleet and hand back the first tick for the caller to schedule."""
        self.sim.start(self.center, self.count, self.radius_km)
        self.task_id += 1
        self.active = True
        return FleetTick(t=t0 + self.interval_s, task_id=self.task_id)

    def cancel(self) -> None:
        self.task_id += 1
        self.active = False

    def on_fleet_tick(self, ev: FleetTick):
        if ev.task_id != self.task_id or not self.active:
            return []  # stale
        snap = self.sim.tick()
        if self.recorder:
            self.recorder.emit(
                FleetTicked(
                    run_id=self.recorder.run_id,
                    t=ev.t,
                    name="FleetTicked",
                    tick=snap.tick,
                    drivers=len(snap.drivers),
                    available=snap.available_count,
                )
            )
        for fn in self.listeners:
            fn(snap)
        return [FleetTick(t=ev.t + self.interval_s, task_id=self.task_id)]

    def on_session_end(self, ev: SessionEnd):
        self.cancel()
        self.sim.stop()
        return []
