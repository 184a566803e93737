# ride_sim/io/business_events.py

from dataclasses import dataclass
from typing import Literal


# Base type for analytics events (not scheduled in the kernel!)
@dataclass
class BizEvent:
    run_id: str
    t: float  # simulation (or clock) time
    name: str  # stable event name


@dataclass
class FleetTicked(BizEvent):
    tick: int
    drivers: int
    available: int


@dataclass
class LocationResolved(BizEvent):
    field: str
    query: str
    matches: int
    error: str | None = None


@dataclass
class QuoteIssued(BizEvent):
    pickup: str
    destination: str
    vehicle_type: str
    distance_km: float
    total: float
    currency: str = "INR"


@dataclass
class QuoteFailed(BizEvent):
    pickup: str
    destination: str
    reason: Literal["unresolved_pickup", "unresolved_destination", "invalid_modifiers", "resolver"]
