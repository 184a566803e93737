# ride_sim/app/controllers/resolver.py
from ride_sim.app.events import ResolverPoll, SessionEnd
from ride_sim.io.business_events import LocationResolved
from ride_sim.io.recorder import Recorder
from ride_sim.services.resolver import LocationResolver


class ResolverPump:
    """Polls the resolver's debounced fields so due lookups run on sim time."""

    def __init__(
        self,
        resolver: LocationResolver,
        *,
        interval_s: float = 0.1,
        recorder: Recorder | None = None,
    ):
        if interval_s <= 0:
            raise ValueError("poll interval must be > 0")
        self.resolver = resolver
        self.interval_s = interval_s
        self.recorder = recorder
        self.task_id = 0
        self.active = False

    def start(self, t0: float) -> ResolverPoll:
        self.task_id += 1
        self.active = True
        return ResolverPoll(t=t0 + self.interval_s, task_id=self.task_id)

    def cancel(self) -> None:
        self.task_id += 1
        self.active = False

    def on_resolver_poll(self, ev: ResolverPoll):
        if ev.task_id != self.task_id or not self.active:
            return []
        for r in self.resolver.poll_fields():
            if self.recorder:
                self.recorder.emit(
                    LocationResolved(
                        run_id=self.recorder.run_id,
                        t=ev.t,
                        name="LocationResolved",
                        field=r.field,
                        query=r.query,
                        matches=len(r.locations),
                        error=r.error.kind.value if r.error else None,
                    )
                )
        return [ResolverPoll(t=ev.t + self.interval_s, task_id=self.task_id)]

    def on_session_end(self, ev: SessionEnd):
        self.cancel()
        self.resolver.close()
        return []
