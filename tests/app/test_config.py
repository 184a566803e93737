# tests/app/test_config.py
import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from ride_sim.app.build import build
from ride_sim.config.models import (
    AppModel,
    DeviceUnavailableModel,
    GazetteerNominatimModel,
    GazetteerStaticModel,
)
from ride_sim.domain.entities.driver import VehicleType
from ride_sim.errors import ResolverError, ResolverErrorKind
from ride_sim.io.config import load_config
from ride_sim.io.recorder import MemorySink
from ride_sim.runtime.registries import make_device_locator, make_gazetteer
from ride_sim.services.gazetteer import NominatimGazetteer, StaticGazetteer


def test_defaults():
    m = AppModel()
    assert m.fare.base_fare == 40.0 and m.fare.per_km_rate == 12.0
    assert m.fare.vehicles[VehicleType.BIKE].multiplier == 0.5
    assert m.fare.modifiers["female_driver"].value == 0.15
    assert m.resolver.debounce_s == 0.3 and m.resolver.min_query_chars == 2
    assert isinstance(m.resolver.gazetteer, GazetteerNominatimModel)


@pytest.mark.parametrize(
    "data",
    [
        {"bogus": 1},
        {"fleet": {"radius_km": 0.05}},  # step would not fit in the area
        {"fleet": {"count": -1}},
        {"fleet": {"initial_eta_range": [5, 2]}},
        {"fare": {"vehicles": {}}},
        {"fare": {"modifiers": {"refund": {"kind": "flat", "value": -10}}}},
        {"fare": {"modifiers": {"free": {"kind": "percent", "value": -2}}}},
        {"resolver": {"gazetteer": {"kind": "carrier-pigeon"}}},
        {"resolver": {"device": {"kind": "unavailable", "reason": "bored"}}},
    ],
)
def test_invalid_configs_are_rejected(data):
    with pytest.raises(ValidationError):
        AppModel.model_validate(data)


def test_load_config_from_json(tmp_path):
    p = tmp_path / "scenario.json"
    p.write_text(json.dumps({"run_id": "file", "fleet": {"count": 3}}), encoding="utf-8")
    m = load_config(p, name="override")
    assert m.run_id == "file" and m.name == "override"
    assert m.fleet.count == 3
    assert load_config().run_id == "local"


def test_fare_config_flows_into_the_estimator():
    cfg = {
        "fare": {
            "base_fare": 50,
            "per_km_rate": 10,
            "modifiers": {"festival": {"kind": "percent", "value": 0.1}},
        },
        "resolver": {"gazetteer": {"kind": "static"}},
    }
    app = build(cfg, sinks=[MemorySink()], use_logging=False)
    mods = app.fares.modifiers_from_names(["festival"])
    assert app.fares.estimate(10, 1.0, mods).total == Decimal("165.00")
    assert app.simulator.base_fare == Decimal("50.00")


def test_gazetteer_registry():
    assert isinstance(make_gazetteer(GazetteerStaticModel()), StaticGazetteer)
    g = make_gazetteer(GazetteerNominatimModel(base_url="http://localhost:8080/"))
    assert isinstance(g, NominatimGazetteer)
    assert g.base_url == "http://localhost:8080"


def test_device_registry_maps_reason_to_error_kind():
    device = make_device_locator(DeviceUnavailableModel(reason="permission_denied"))
    with pytest.raises(ResolverError) as ei:
        device.locate()
    assert ei.value.kind is ResolverErrorKind.PERMISSION_DENIED
