# app/events.py
from dataclasses import dataclass

from ride_sim.sim.event import BaseEvent


# Housekeeping timers. task_id versions them: a cancelled loop leaves its
# already-queued event behind, and the handler ignores it.
@dataclass(order=True)
class FleetTick(BaseEvent):
    task_id: int


@dataclass(order=True)
class ResolverPoll(BaseEvent):
    task_id: int


@dataclass(order=True)
class SessionEnd(BaseEvent):
    reason: str = "closed"
