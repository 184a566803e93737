# ride_sim/domain/fares.py
"""
Fare estimation.

Application order is fixed so that rounding is deterministic:

  1. subtotal = (base_fare + distance_km * per_km_rate) * vehicle_multiplier
  2. percentage modifiers, ascending by name, each on the running total
  3. flat add-ons, ascending by name
  4. minimum fare: the total never drops below base_fare

Every stage is rounded half-up to paise. Each stage is non-decreasing in its
input, so the total is non-decreasing in distance.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from types import MappingProxyType

from ride_sim.errors import InvalidModifierError

PAISE = Decimal("0.01")


def to_money(x: float | int | str | Decimal) -> Decimal:
    d = x if isinstance(x, Decimal) else Decimal(str(x))
    return d.quantize(PAISE, rounding=ROUND_HALF_UP)


class ModifierKind(Enum):
    PERCENT = "percent"  # 0.15 => +15% of the running total
    FLAT = "flat"  # absolute amount in currency units


@dataclass(frozen=True)
class Modifier:
    kind: ModifierKind
    value: float

    @classmethod
    def percent(cls, value: float) -> "Modifier":
        return cls(ModifierKind.PERCENT, float(value))

    @classmethod
    def flat(cls, value: float) -> "Modifier":
        return cls(ModifierKind.FLAT, float(value))


ModifierInput = Mapping[str, "float | Modifier"]


@dataclass(frozen=True)
class FareQuote:
    base_fare: Decimal
    distance_km: float
    per_km_rate: Decimal
    vehicle_multiplier: float
    surcharge_modifiers: Mapping[str, Modifier]
    breakdown: Mapping[str, Decimal]
    total: Decimal
    currency: str = "INR"
    degenerate: bool = False  # distance <= 0, minimum fare charged

    def to_export(self) -> dict:
        return {
            "total": float(self.total),
            "currency": self.currency,
            "distanceKm": round(self.distance_km, 3),
            "breakdown": {k: float(v) for k, v in self.breakdown.items()},
        }


@dataclass(frozen=True)
class RouteVariant:
    name: str
    distance_km: float
    duration_min: float


@dataclass(frozen=True)
class VariantQuote:
    name: str
    fare: FareQuote
    duration_min: float

    def to_export(self) -> dict:
        return {**self.fare.to_export(), "durationMin": round(self.duration_min, 1)}


@dataclass
class FareEstimator:
    base_fare: Decimal = Decimal("40")
    per_km_rate: Decimal = Decimal("12")
    currency: str = "INR"
    catalogue: Mapping[str, Modifier] = field(default_factory=dict)

    def __post_init__(self):
        self.base_fare = to_money(self.base_fare)
        self.per_km_rate = to_money(self.per_km_rate)
        if self.base_fare < 0 or self.per_km_rate < 0:
            raise ValueError("base_fare and per_km_rate must be >= 0")

    # --------------- Modifiers -----------------------------

    def modifiers_from_names(self, names: Iterable[str]) -> dict[str, Modifier]:
        out: dict[str, Modifier] = {}
        for name in names:
            try:
                out[name] = self.catalogue[name]
            except KeyError:
                raise InvalidModifierError(f"Unknown fare modifier {name!r}") from None
        return out

    def normalize_modifiers(self, modifiers: ModifierInput | None) -> dict[str, Modifier]:
        out: dict[str, Modifier] = {}
        for name, m in (modifiers or {}).items():
            if not isinstance(m, Modifier):
                if isinstance(m, bool) or not isinstance(m, (int, float)):
                    raise InvalidModifierError(f"{name}: expected a number or Modifier, got {m!r}")
                m = Modifier.percent(m)
            if not math.isfinite(m.value):
                raise InvalidModifierError(f"{name}: value must be finite")
            if m.kind is ModifierKind.PERCENT and m.value < -1.0:
                raise InvalidModifierError(f"{name}: percentage below -100%")
            if m.kind is ModifierKind.FLAT and m.value < 0:
                raise InvalidModifierError(f"{name}: flat surcharge must be >= 0")
            out[name] = m
        return out

    # --------------- Quotes --------------------------------

    def estimate(
        self,
        distance_km: float,
        vehicle_multiplier: float = 1.0,
        modifiers: ModifierInput | None = None,
    ) -> FareQuote:
        if not math.isfinite(vehicle_multiplier) or vehicle_multiplier <= 0:
            raise InvalidModifierError(f"vehicle multiplier must be > 0, got {vehicle_multiplier}")
        if not math.isfinite(distance_km):
            raise ValueError(f"distance must be finite, got {distance_km}")
        mods = self.normalize_modifiers(modifiers)

        if distance_km <= 0:
            return FareQuote(
                base_fare=self.base_fare,
                distance_km=0.0,
                per_km_rate=self.per_km_rate,
                vehicle_multiplier=vehicle_multiplier,
                surcharge_modifiers=MappingProxyType(mods),
                breakdown=MappingProxyType({"base_fare": self.base_fare}),
                total=self.base_fare,
                currency=self.currency,
                degenerate=True,
            )

        breakdown: dict[str, Decimal] = {"base_fare": self.base_fare}
        distance_amount = to_money(Decimal(str(distance_km)) * self.per_km_rate)
        breakdown["distance"] = distance_amount
        raw = self.base_fare + distance_amount
        running = to_money(raw * Decimal(str(vehicle_multiplier)))
        breakdown["vehicle_adjustment"] = running - raw

        percents = sorted((n, m) for n, m in mods.items() if m.kind is ModifierKind.PERCENT)
        flats = sorted((n, m) for n, m in mods.items() if m.kind is ModifierKind.FLAT)
        for name, m in percents:
            amount = to_money(running * Decimal(str(m.value)))
            breakdown[name] = amount
            running += amount
        for name, m in flats:
            amount = to_money(m.value)
            breakdown[name] = amount
            running += amount

        if running < self.base_fare:
            breakdown["minimum_fare_adjustment"] = self.base_fare - running
            running = self.base_fare

        return FareQuote(
            base_fare=self.base_fare,
            distance_km=float(distance_km),
            per_km_rate=self.per_km_rate,
            vehicle_multiplier=vehicle_multiplier,
            surcharge_modifiers=MappingProxyType(mods),
            breakdown=MappingProxyType(breakdown),
            total=running,
            currency=self.currency,
        )

    def estimate_variants(
        self,
        variants: Sequence[RouteVariant],
        vehicle_multiplier: float = 1.0,
        modifiers: ModifierInput | None = None,
    ) -> dict[str, VariantQuote]:
        return {
            v.name: VariantQuote(
                name=v.name,
                fare=self.estimate(v.distance_km, vehicle_multiplier, modifiers),
                duration_min=v.duration_min,
            )
            for v in variants
        }
