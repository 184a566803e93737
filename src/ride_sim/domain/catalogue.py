# ride_sim/domain/catalogue.py
from collections.abc import Mapping
from dataclasses import dataclass

from ride_sim.domain.entities.driver import VehicleType


@dataclass(frozen=True)
class VehicleSpec:
    multiplier: float  # applied to (base + distance) before surcharges
    avg_speed_kmh: float
    eta_range_min: tuple[int, int]  # what the booking screen advertises


DEFAULT_VEHICLES: Mapping[VehicleType, VehicleSpec] = {
    VehicleType.BIKE: VehicleSpec(multiplier=0.5, avg_speed_kmh=28.0, eta_range_min=(2, 3)),
    VehicleType.AUTO: VehicleSpec(multiplier=0.7, avg_speed_kmh=22.0, eta_range_min=(2, 4)),
    VehicleType.TAXI: VehicleSpec(multiplier=1.0, avg_speed_kmh=30.0, eta_range_min=(3, 5)),
    VehicleType.PREMIUM: VehicleSpec(multiplier=1.3, avg_speed_kmh=32.0, eta_range_min=(5, 8)),
    VehicleType.SUV: VehicleSpec(multiplier=1.8, avg_speed_kmh=30.0, eta_range_min=(8, 12)),
}


def vehicle_spec(vehicles: Mapping[VehicleType, VehicleSpec], v: VehicleType | str) -> VehicleSpec:
    vt = VehicleType.parse(v)
    try:
        return vehicles[vt]
    except KeyError:
        raise ValueError(f"Vehicle type {vt.value!r} is not in the catalogue") from None
