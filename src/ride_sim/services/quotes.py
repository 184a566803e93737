# ride_sim/services/quotes.py
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ride_sim.domain.catalogue import DEFAULT_VEHICLES, VehicleSpec, vehicle_spec
from ride_sim.domain.entities.driver import VehicleType
from ride_sim.domain.entities.geography import Location
from ride_sim.domain.fares import (
    FareEstimator,
    FareQuote,
    Modifier,
    ModifierInput,
    RouteVariant,
    VariantQuote,
)
from ride_sim.domain.geomath import distance_km
from ride_sim.domain.routes import RouteBuilder, RouteGeometry
from ride_sim.errors import InvalidModifierError, QuoteError, QuoteErrorKind, ResolverError
from ride_sim.io.business_events import QuoteFailed, QuoteIssued
from ride_sim.io.recorder import Recorder
from ride_sim.services.resolver import LocationResolver
from ride_sim.sim.clock import Clock

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariantSpec:
    name: str
    detour_factor: float  # road distance / great-circle distance
    avg_speed_kmh: float


DEFAULT_VARIANTS: tuple[VariantSpec, ...] = (
    VariantSpec("fastest", detour_factor=1.25, avg_speed_kmh=32.0),
    VariantSpec("shortest", detour_factor=1.10, avg_speed_kmh=24.0),
    VariantSpec("toll_avoiding", detour_factor=1.35, avg_speed_kmh=27.0),
)


def minutes_at(dist_km: float, speed_kmh: float) -> float:
    return 0.0 if dist_km <= 0 else dist_km / max(speed_kmh, 0.1) * 60.0


@dataclass(frozen=True)
class TripQuote:
    pickup: Location
    destination: Location
    vehicle_type: VehicleType
    distance_km: float
    duration_min: float
    fare: FareQuote
    route: RouteGeometry
    variants: Mapping[str, VariantQuote]
    pickup_eta_min: tuple[int, int]  # advertised driver arrival window for the vehicle

    def to_export(self) -> dict:
        return {
            "pickup": {
                "name": self.pickup.label(),
                "lat": self.pickup.coordinate.lat,
                "lon": self.pickup.coordinate.lon,
            },
            "destination": {
                "name": self.destination.label(),
                "lat": self.destination.coordinate.lat,
                "lon": self.destination.coordinate.lon,
            },
            "vehicleType": self.vehicle_type.value,
            "durationMin": round(self.duration_min, 1),
            "pickupEtaMin": list(self.pickup_eta_min),
            "fare": self.fare.to_export(),
            "variants": {k: v.to_export() for k, v in self.variants.items()},
            "route": self.route.to_geojson(),
        }


PlaceInput = str | Location


def _label(place: PlaceInput) -> str:
    return place.label() if isinstance(place, Location) else place


ModifierSpec = ModifierInput | Iterable[str] | None


class TripQuoteService:
    """
    The only component that composes the others: resolve both ends, measure,
    build the route, price it.
    """

    def __init__(
        self,
        resolver: LocationResolver,
        fares: FareEstimator,
        routes: RouteBuilder,
        *,
        vehicles: Mapping[VehicleType, VehicleSpec] = DEFAULT_VEHICLES,
        variants: Iterable[VariantSpec] = DEFAULT_VARIANTS,
        retry_backoff_s: float = 0.25,
        sleep: Callable[[float], None] = time.sleep,
        recorder: Recorder | None = None,
        clock: Clock | None = None,
    ):
        self.resolver = resolver
        self.fares = fares
        self.routes = routes
        self.vehicles = dict(vehicles)
        self.variants = tuple(variants)
        self.retry_backoff_s = retry_backoff_s
        self.sleep = sleep
        self.recorder = recorder
        self.clock = clock

    # ------------- public ------------------------------

    def quote(
        self,
        pickup: PlaceInput,
        destination: PlaceInput,
        vehicle_type: VehicleType | str = VehicleType.TAXI,
        modifiers: ModifierSpec = None,
    ) -> TripQuote:
        vt = VehicleType.parse(vehicle_type)
        vehicle_spec(self.vehicles, vt)
        try:
            mods = self._modifiers(modifiers)
            a = self._place(pickup, QuoteErrorKind.UNRESOLVED_PICKUP)
            b = self._place(destination, QuoteErrorKind.UNRESOLVED_DESTINATION)
        except QuoteError as e:
            self._emit_failed(pickup, destination, e.kind.value)
            raise
        except ResolverError:
            self._emit_failed(pickup, destination, "resolver")
            raise
        return self.quote_locations(a, b, vt, mods)

    def quote_locations(
        self,
        pickup: Location,
        destination: Location,
        vehicle_type: VehicleType | str = VehicleType.TAXI,
        modifiers: ModifierSpec = None,
    ) -> TripQuote:
        vt = VehicleType.parse(vehicle_type)
        spec = vehicle_spec(self.vehicles, vt)
        mods = self._modifiers(modifiers)

        d = distance_km(pickup.coordinate, destination.coordinate)
        route = self.routes.build(pickup.coordinate, destination.coordinate)
        fare = self.fares.estimate(d, spec.multiplier, mods)
        legs = [(v.name, d * v.detour_factor, v.avg_speed_kmh) for v in self.variants]
        variants = self.fares.estimate_variants(
            [RouteVariant(name, km, minutes_at(km, kmh)) for name, km, kmh in legs],
            spec.multiplier,
            mods,
        )
        q = TripQuote(
            pickup=pickup,
            destination=destination,
            vehicle_type=vt,
            distance_km=d,
            duration_min=minutes_at(d, spec.avg_speed_kmh),
            fare=fare,
            route=route,
            variants=MappingProxyType(variants),
            pickup_eta_min=spec.eta_range_min,
        )
        log.info(
            "quote_issued",
            extra={
                "extra": {
                    "pickup": pickup.label(),
                    "destination": destination.label(),
                    "vehicle_type": vt.value,
                    "distance_km": round(d, 3),
                    "total": str(fare.total),
                }
            },
        )
        if self.recorder:
            self.recorder.emit(
                QuoteIssued(
                    run_id=self.recorder.run_id,
                    t=self._now(),
                    name="QuoteIssued",
                    pickup=pickup.label(),
                    destination=destination.label(),
                    vehicle_type=vt.value,
                    distance_km=round(d, 3),
                    total=float(fare.total),
                    currency=fare.currency,
                )
            )
        return q

    def quote_all_vehicles(
        self, pickup: PlaceInput, destination: PlaceInput, modifiers: ModifierSpec = None
    ) -> dict[VehicleType, FareQuote]:
        """Fare for every vehicle in the catalogue, as on the vehicle picker."""
        mods = self._modifiers(modifiers)
        a = self._place(pickup, QuoteErrorKind.UNRESOLVED_PICKUP)
        b = self._place(destination, QuoteErrorKind.UNRESOLVED_DESTINATION)
        d = distance_km(a.coordinate, b.coordinate)
        return {
            vt: self.fares.estimate(d, spec.multiplier, mods) for vt, spec in self.vehicles.items()
        }

    # ------------- helpers -----------------------------

    def _modifiers(self, modifiers: ModifierSpec) -> dict[str, Modifier]:
        try:
            if modifiers is None:
                return {}
            if isinstance(modifiers, Mapping):
                return self.fares.normalize_modifiers(modifiers)
            if isinstance(modifiers, str):
                return self.fares.modifiers_from_names([modifiers])
            return self.fares.modifiers_from_names(modifiers)
        except InvalidModifierError as e:
            raise QuoteError(QuoteErrorKind.INVALID_MODIFIERS, str(e)) from e

    def _place(self, place: PlaceInput, missing: QuoteErrorKind) -> Location:
        if isinstance(place, Location):
            return place
        matches = self._lookup(place)
        if not matches:
            raise QuoteError(missing, f"no match for {place!r}")
        return matches[0]

    def _lookup(self, text: str) -> list[Location]:
        try:
            return self.resolver.resolve(text)
        except ResolverError as e:
            if not e.retryable:
                raise
            log.warning("resolver_retry", extra={"extra": {"query": text, "error": e.message}})
            if self.retry_backoff_s > 0:
                self.sleep(self.retry_backoff_s)
            return self.resolver.resolve(text)

    def _now(self) -> float:
        return self.clock.now() if self.clock else 0.0

    def _emit_failed(self, pickup: PlaceInput, destination: PlaceInput, reason: str) -> None:
        if not self.recorder:
            return
        self.recorder.emit(
            QuoteFailed(
                run_id=self.recorder.run_id,
                t=self._now(),
                name="QuoteFailed",
                pickup=_label(pickup),
                destination=_label(destination),
                reason=reason,
            )
        )
