# tests/domain/test_fares.py
import math
from decimal import Decimal

import pytest

from ride_sim.domain.fares import FareEstimator, Modifier, RouteVariant
from ride_sim.errors import InvalidModifierError


@pytest.fixture
def estimator():
    return FareEstimator(
        base_fare=Decimal("40"),
        per_km_rate=Decimal("12"),
        catalogue={
            "female_driver": Modifier.percent(0.15),
            "night": Modifier.percent(0.25),
            "toll": Modifier.flat(30),
        },
    )


def test_ten_km_taxi_is_160(estimator):
    q = estimator.estimate(10, 1.0, {})
    assert q.total == Decimal("160.00")
    assert q.currency == "INR"
    assert not q.degenerate
    assert q.breakdown["base_fare"] == Decimal("40.00")
    assert q.breakdown["distance"] == Decimal("120.00")
    assert q.breakdown["vehicle_adjustment"] == Decimal("0.00")


def test_female_driver_surcharge_is_184(estimator):
    q = estimator.estimate(10, 1.0, {"female_driver": 0.15})
    assert q.total == Decimal("184.00")
    assert q.breakdown["female_driver"] == Decimal("24.00")


def test_percentages_apply_before_flat_addons(estimator):
    q = estimator.estimate(10, 1.0, {"toll": Modifier.flat(30), "night": 0.25})
    # (160 * 1.25) + 30, not (160 + 30) * 1.25
    assert q.total == Decimal("230.00")
    assert list(q.breakdown) == ["base_fare", "distance", "vehicle_adjustment", "night", "toll"]


def test_percentages_apply_in_name_order(estimator):
    q = estimator.estimate(10, 1.0, {"night": 0.25, "female_driver": 0.15})
    # female_driver first: 160 -> 184, then night: 184 * 0.25 = 46
    assert q.breakdown["female_driver"] == Decimal("24.00")
    assert q.breakdown["night"] == Decimal("46.00")
    assert q.total == Decimal("230.00")


def test_vehicle_multiplier_scales_the_subtotal(estimator):
    q = estimator.estimate(10, 1.8)
    assert q.total == Decimal("288.00")
    assert q.breakdown["vehicle_adjustment"] == Decimal("128.00")


def test_minimum_fare_floor(estimator):
    q = estimator.estimate(1, 0.5)
    # (40 + 12) * 0.5 = 26 < 40
    assert q.total == Decimal("40.00")
    assert q.breakdown["minimum_fare_adjustment"] == Decimal("14.00")


@pytest.mark.parametrize("d", [0, 0.0, -3.5])
def test_non_positive_distance_is_degenerate(estimator, d):
    q = estimator.estimate(d, 1.8, {"night": 0.25})
    assert q.degenerate
    assert q.total == Decimal("40.00")
    assert q.distance_km == 0.0
    assert dict(q.breakdown) == {"base_fare": Decimal("40.00")}


def test_total_is_monotone_in_distance(estimator):
    distances = [-1, 0, 0.001, 0.25, 0.5, 1, 2.5, 3.33, 10, 57.8, 250]
    for mult in (0.5, 0.7, 1.0, 1.8):
        for mods in ({}, {"night": 0.25, "toll": Modifier.flat(30)}, {"discount": -0.2}):
            totals = [estimator.estimate(d, mult, mods).total for d in distances]
            assert totals == sorted(totals), (mult, mods, totals)


def test_rounding_is_half_up_to_paise():
    est = FareEstimator(base_fare=Decimal("0"), per_km_rate=Decimal("10"))
    q = est.estimate(0.0125)
    # 0.125 rounds up, not to even
    assert q.breakdown["distance"] == Decimal("0.13")
    assert q.total == Decimal("0.13")


@pytest.mark.parametrize("mult", [0, -1.0, math.nan, math.inf])
def test_bad_vehicle_multiplier(estimator, mult):
    with pytest.raises(InvalidModifierError):
        estimator.estimate(10, mult)


@pytest.mark.parametrize(
    "mods",
    [
        {"x": "abc"},
        {"x": True},
        {"x": math.nan},
        {"x": -1.5},
        {"x": Modifier.flat(-5)},
        {"x": None},
    ],
)
def test_bad_modifiers(estimator, mods):
    with pytest.raises(InvalidModifierError):
        estimator.estimate(10, 1.0, mods)


def test_non_finite_distance(estimator):
    with pytest.raises(ValueError):
        estimator.estimate(math.inf)


def test_modifiers_by_name(estimator):
    mods = estimator.modifiers_from_names(["female_driver", "toll"])
    assert estimator.estimate(10, 1.0, mods).total == Decimal("214.00")
    with pytest.raises(InvalidModifierError):
        estimator.modifiers_from_names(["free_ride"])


def test_quote_is_immutable(estimator):
    q = estimator.estimate(10)
    with pytest.raises(TypeError):
        q.breakdown["bonus"] = Decimal("1")
    with pytest.raises(AttributeError):
        q.total = Decimal("0")


def test_export_shape(estimator):
    out = estimator.estimate(10, 1.0, {"female_driver": 0.15}).to_export()
    assert out == {
        "total": 184.0,
        "currency": "INR",
        "distanceKm": 10.0,
        "breakdown": {
            "base_fare": 40.0,
            "distance": 120.0,
            "vehicle_adjustment": 0.0,
            "female_driver": 24.0,
        },
    }


def test_variants_are_priced_on_their_own_distance(estimator):
    variants = [RouteVariant("fastest", 12.5, 23.4), RouteVariant("shortest", 11.0, 27.5)]
    out = estimator.estimate_variants(variants, 1.0, {"night": 0.25})
    assert set(out) == {"fastest", "shortest"}
    assert out["fastest"].fare.total == estimator.estimate(12.5, 1.0, {"night": 0.25}).total
    assert out["shortest"].fare.total < out["fastest"].fare.total
    assert out["shortest"].to_export()["durationMin"] == 27.5


def test_negative_rates_rejected():
    with pytest.raises(ValueError):
        FareEstimator(base_fare=Decimal("-1"))
