# domain/entities/driver.py
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ride_sim.domain.entities.geography import Coordinate


class VehicleType(Enum):
    BIKE = "bike"
    AUTO = "auto"
    TAXI = "taxi"
    SUV = "suv"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, v: "VehicleType | str") -> "VehicleType":
        if isinstance(v, VehicleType):
            return v
        try:
            return cls(str(v).lower())
        except ValueError:
            raise ValueError(f"Unknown vehicle type {v!r}") from None


@dataclass(frozen=True)
class Driver:
    """
    One simulated driver. Records are immutable; the fleet simulator replaces
    a driver's record on every tick instead of mutating it.
    """

    id: str
    name: str
    vehicle_type: VehicleType
    location: Coordinate
    available: bool
    rating: float  # 1.0 .. 5.0
    eta_minutes: int  # >= 1
    speed_kmh: float
    fare_quote_base: Decimal

    def to_export(self) -> dict:
        return {
            "id": self.id,
            "vehicleType": self.vehicle_type.value,
            "lat": self.location.lat,
            "lon": self.location.lon,
            "available": self.available,
            "etaMinutes": self.eta_minutes,
            "rating": self.rating,
        }
