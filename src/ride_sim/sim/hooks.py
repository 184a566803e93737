# sim/hooks.py
from collections.abc import Iterable
from typing import Protocol

from ride_sim.sim.event import BaseEvent


class KernelHooks(Protocol):
    """Observer of the kernel loop. Hooks must not schedule events themselves."""

    def run_start(self, *, until: float | None, max_events: int | None, qsize: int): ...
    def run_end(self, *, processed: int, last_t: float, qsize: int, wall_ms: float): ...
    def schedule(self, ev: BaseEvent, *, now: float, qsize: int): ...
    def dispatch_start(self, ev: BaseEvent, *, seq: int, qsize: int, handlers: int): ...
    def dispatch_end(self, ev: BaseEvent, *, produced: int, qsize: int, ms: float): ...
    def error(self, ev: BaseEvent, *, reason: str, **kw): ...


class NoopHooks:
    def run_start(self, **_):
        pass

    def run_end(self, **_):
        pass

    def schedule(self, *_, **__):
        pass

    def dispatch_start(self, *_, **__):
        pass

    def dispatch_end(self, *_, **__):
        pass

    def error(self, *_, **__):
        pass


class FanoutHooks:
    """Forwards every callback to each hook in order, e.g. logging plus a test tracer."""

    def __init__(self, hooks: Iterable[KernelHooks]):
        self.hooks = tuple(hooks)

    def run_start(self, **kw):
        for h in self.hooks:
            h.run_start(**kw)

    def run_end(self, **kw):
        for h in self.hooks:
            h.run_end(**kw)

    def schedule(self, ev, **kw):
        for h in self.hooks:
            h.schedule(ev, **kw)

    def dispatch_start(self, ev, **kw):
        for h in self.hooks:
            h.dispatch_start(ev, **kw)

    def dispatch_end(self, ev, **kw):
        for h in self.hooks:
            h.dispatch_end(ev, **kw)

    def error(self, ev, **kw):
        for h in self.hooks:
            h.error(ev, **kw)
