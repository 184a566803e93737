# sim/kernel.py

import heapq
import time
from collections.abc import Callable, Iterable

from .event import BaseEvent
from .hooks import KernelHooks, NoopHooks

Handler = Callable[[BaseEvent], Iterable[BaseEvent] | None]


class Kernel:
    """
    Discrete-event loop. Handlers return follow-up events, which is how the
    periodic fleet tick and resolver poll reschedule themselves.
    """

    def __init__(self, hooks: KernelHooks | None = None):
        self._t = 0.0
        self._q: list[tuple[float, int, BaseEvent]] = []
        self._seq = 0
        self._subs: dict[type[BaseEvent], list[Handler]] = {}
        self._hooks = hooks or NoopHooks()

    @property
    def now(self) -> float:
        return self._t

    @property
    def pending(self) -> int:
        return len(self._q)

    def on(self, etype: type[BaseEvent], handler: Handler) -> None:
        self._subs.setdefault(etype, []).append(handler)

    def schedule(self, ev: BaseEvent) -> None:
        if ev.t + 1e-12 < self._t:
            self._hooks.error(ev, reason="scheduled_past", scheduled_t=ev.t, now=self._t)
            raise RuntimeError(f"cannot schedule {type(ev).__name__} at {ev.t} < now {self._t}")
        self._seq += 1
        heapq.heappush(self._q, (ev.t, self._seq, ev))
        self._hooks.schedule(ev, now=self._t, qsize=len(self._q))

    def clear(self) -> int:
        """Drop every queued event; returns how many were dropped."""
        n = len(self._q)
        self._q.clear()
        return n

    def run(self, until: float | None = None, max_events: int | None = None) -> int:
        t0 = time.perf_counter()
        self._hooks.run_start(until=until, max_events=max_events, qsize=len(self._q))
        processed = 0
        while self._q and (until is None or self._q[0][0] <= until):
            t, seq, ev = heapq.heappop(self._q)
            self._t = t
            handlers = self._subs.get(type(ev), ())
            t1 = time.perf_counter()
            self._hooks.dispatch_start(ev, seq=seq, qsize=len(self._q), handlers=len(handlers))
            produced = 0
            for h in handlers:
                for nxt in h(ev) or ():
                    self.schedule(nxt)
                    produced += 1
            ms = (time.perf_counter() - t1) * 1000
            self._hooks.dispatch_end(ev, produced=produced, qsize=len(self._q), ms=ms)
            processed += 1
            if max_events and processed >= max_events:
                break
        if until is not None and until > self._t and (max_events is None or processed < max_events):
            # idle until the horizon so clocks reading the kernel see it
            self._t = until
        self._hooks.run_end(
            processed=processed,
            last_t=self._t,
            qsize=len(self._q),
            wall_ms=(time.perf_counter() - t0) * 1000,
        )
        return processed
