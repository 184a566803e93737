# tests/services/test_quotes.py
from decimal import Decimal

import pytest

from ride_sim.domain.entities.driver import VehicleType
from ride_sim.domain.entities.geography import Coordinate, Location
from ride_sim.domain.fares import FareEstimator, Modifier
from ride_sim.domain.geomath import distance_km
from ride_sim.domain.routes import RouteBuilder
from ride_sim.errors import QuoteError, QuoteErrorKind, ResolverError, ResolverErrorKind
from ride_sim.io.recorder import MemorySink, Recorder
from ride_sim.services.gazetteer import StaticGazetteer
from ride_sim.services.quotes import TripQuoteService
from ride_sim.services.resolver import LocationResolver
from ride_sim.sim.clock import ManualClock


class FlakyGazetteer(StaticGazetteer):
    def __init__(self, *failures):
        super().__init__()
        self.failures = list(failures)
        self.queries = []

    def search(self, query, **kw):
        self.queries.append(query)
        if self.failures:
            raise self.failures.pop(0)
        return super().search(query, **kw)


def network():
    return ResolverError(ResolverErrorKind.NETWORK, "connection reset")


@pytest.fixture
def sink():
    return MemorySink()


def make_service(gaz=None, sink=None, sleeps=None):
    gaz = gaz or FlakyGazetteer()
    clock = ManualClock(12.5)
    fares = FareEstimator(
        catalogue={"female_driver": Modifier.percent(0.15), "airport": Modifier.flat(50)}
    )
    return TripQuoteService(
        LocationResolver(gaz, clock=clock),
        fares,
        RouteBuilder(),
        sleep=(sleeps.append if sleeps is not None else lambda s: None),
        recorder=Recorder(sink, run_id="q-test") if sink is not None else None,
        clock=clock,
    )


def test_quote_between_two_named_places(sink):
    svc = make_service(sink=sink)
    q = svc.quote("Connaught Place", "India Gate", "taxi")

    a, b = q.pickup.coordinate, q.destination.coordinate
    assert q.pickup.display_name.startswith("Connaught Place")
    assert q.distance_km == pytest.approx(distance_km(a, b))
    assert q.fare.total == svc.fares.estimate(q.distance_km, 1.0).total
    assert q.route.start == a and q.route.end == b
    assert len(q.route.points) == 100
    assert set(q.variants) == {"fastest", "shortest", "toll_avoiding"}
    assert q.variants["shortest"].fare.total <= q.variants["toll_avoiding"].fare.total
    assert q.duration_min > 0

    (issued,) = sink.named("QuoteIssued")
    assert issued.run_id == "q-test"
    assert issued.t == 12.5
    assert issued.vehicle_type == "taxi"
    assert issued.total == float(q.fare.total)


def test_modifier_names_and_vehicle(sink):
    svc = make_service(sink=sink)
    q = svc.quote("Mumbai Airport", "Marine Drive", VehicleType.SUV, ["female_driver", "airport"])
    expected = svc.fares.estimate(
        q.distance_km, 1.8, {"female_driver": 0.15, "airport": Modifier.flat(50)}
    )
    assert q.fare.total == expected.total
    assert q.fare.breakdown["airport"] == Decimal("50.00")


def test_invalid_modifier_fails_before_any_lookup(sink):
    gaz = FlakyGazetteer()
    svc = make_service(gaz, sink=sink)
    with pytest.raises(QuoteError) as ei:
        svc.quote("Mumbai", "Chennai", "taxi", ["free_ride"])
    assert ei.value.kind is QuoteErrorKind.INVALID_MODIFIERS
    assert gaz.queries == []
    assert sink.named("QuoteFailed")[0].reason == "invalid_modifiers"

    with pytest.raises(QuoteError):
        svc.quote("Mumbai", "Chennai", "taxi", {"night": "lots"})


def test_unresolved_ends(sink):
    svc = make_service(sink=sink)
    with pytest.raises(QuoteError) as ei:
        svc.quote("Atlantis", "Chennai")
    assert ei.value.kind is QuoteErrorKind.UNRESOLVED_PICKUP
    with pytest.raises(QuoteError) as ei:
        svc.quote("Chennai", "El Dorado")
    assert ei.value.kind is QuoteErrorKind.UNRESOLVED_DESTINATION
    assert [e.reason for e in sink.named("QuoteFailed")] == [
        "unresolved_pickup",
        "unresolved_destination",
    ]
    assert sink.named("QuoteIssued") == []


def test_network_error_is_retried_once_after_backoff():
    sleeps = []
    gaz = FlakyGazetteer(network())
    q = make_service(gaz, sleeps=sleeps).quote("Mumbai", "Marine Drive")
    assert q.pickup.short_name == "Mumbai, Maharashtra"
    assert gaz.queries == ["Mumbai", "Mumbai", "Marine Drive"]
    assert sleeps == [0.25]


def test_second_network_error_propagates(sink):
    gaz = FlakyGazetteer(network(), network())
    with pytest.raises(ResolverError) as ei:
        make_service(gaz, sink=sink).quote("Mumbai", "Marine Drive")
    assert ei.value.kind is ResolverErrorKind.NETWORK
    assert sink.named("QuoteFailed")[0].reason == "resolver"


def test_timeouts_are_not_retried():
    sleeps = []
    gaz = FlakyGazetteer(ResolverError(ResolverErrorKind.TIMEOUT, "slow"))
    with pytest.raises(ResolverError):
        make_service(gaz, sleeps=sleeps).quote("Mumbai", "Marine Drive")
    assert gaz.queries == ["Mumbai"]
    assert sleeps == []


def test_locations_skip_the_resolver():
    gaz = FlakyGazetteer()
    svc = make_service(gaz)
    a = Location("Home", Coordinate(77.2090, 28.6139))
    b = Location("Office", Coordinate(77.3910, 28.5355))
    q = svc.quote(a, b, "auto")
    assert gaz.queries == []
    assert q.pickup is a and q.destination is b
    assert q.to_export()["pickup"]["name"] == "Home"


def test_same_place_is_a_minimum_fare_trip():
    q = make_service().quote("India Gate", "India Gate", "premium")
    assert q.distance_km == 0.0
    assert q.fare.degenerate
    assert q.fare.total == Decimal("40.00")
    assert len(q.route.points) == 1
    assert q.duration_min == 0.0


def test_unknown_vehicle_type():
    with pytest.raises(ValueError):
        make_service().quote("Mumbai", "Marine Drive", "helicopter")


def test_quote_all_vehicles_orders_by_multiplier():
    fares = make_service().quote_all_vehicles("New Delhi", "Mumbai")
    assert set(fares) == set(VehicleType)
    assert (
        fares[VehicleType.BIKE].total
        < fares[VehicleType.AUTO].total
        < fares[VehicleType.TAXI].total
        < fares[VehicleType.PREMIUM].total
        < fares[VehicleType.SUV].total
    )


def test_export_shape():
    out = make_service().quote("Connaught Place", "India Gate").to_export()
    assert set(out) == {
        "pickup",
        "destination",
        "vehicleType",
        "durationMin",
        "pickupEtaMin",
        "fare",
        "variants",
        "route",
    }
    assert out["fare"]["currency"] == "INR"
    assert out["route"]["geometry"]["type"] == "LineString"
    assert set(out["variants"]["fastest"]) == {
        "total",
        "currency",
        "distanceKm",
        "breakdown",
        "durationMin",
    }


def test_dateline_pickup_and_drop_at_the_same_spot():
    a = Location("Taveuni east", Coordinate(180.0, -16.8))
    b = Location("Taveuni west", Coordinate(-180.0, -16.8))
    q = make_service().quote_locations(a, b, "taxi")
    assert q.route.points == (a.coordinate,)
    assert q.fare.total == Decimal("40.00")


def test_quote_carries_the_vehicle_arrival_window():
    q = make_service().quote("Connaught Place", "India Gate", "suv")
    assert q.pickup_eta_min == (8, 12)
    assert q.to_export()["pickupEtaMin"] == [8, 12]
