# runtime/registries.py
from collections.abc import Callable

from ride_sim.app.protocols import DeviceLocator, Gazetteer
from ride_sim.config.models import (
    DeviceFixedModel,
    DeviceUnavailableModel,
    DeviceUnion,
    GazetteerNominatimModel,
    GazetteerStaticModel,
    GazetteerUnion,
)
from ride_sim.errors import ResolverErrorKind
from ride_sim.services.device import FixedDeviceLocator, UnavailableDeviceLocator
from ride_sim.services.gazetteer import NominatimGazetteer, StaticGazetteer

GazetteerFactory = Callable[[GazetteerUnion, dict], Gazetteer]
DeviceFactory = Callable[[DeviceUnion, dict], DeviceLocator]

_gazetteer_registry: dict[str, GazetteerFactory] = {}
_device_registry: dict[str, DeviceFactory] = {}


# ------------------- Gazetteers ---------------------------


def register_gazetteer(kind: str):
    def deco(fn: GazetteerFactory):
        _gazetteer_registry[kind] = fn
        return fn

    return deco


def make_gazetteer(cfg: GazetteerUnion, *, deps: dict | None = None) -> Gazetteer:
    try:
        factory = _gazetteer_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown gazetteer kind {cfg.kind!r}") from None
    return factory(cfg, deps or {})


@register_gazetteer("nominatim")
def _make_nominatim(cfg: GazetteerNominatimModel, deps):
    return NominatimGazetteer(
        cfg.base_url,
        user_agent=cfg.user_agent,
        timeout_s=cfg.timeout_s,
        reverse_timeout_s=cfg.reverse_timeout_s,
        session=deps.get("session"),
    )


@register_gazetteer("static")
def _make_static(cfg: GazetteerStaticModel, deps):
    return StaticGazetteer(deps.get("places"), reverse_max_km=cfg.reverse_max_km)


# ------------------- Device locators ----------------------


def register_device(kind: str):
    def deco(fn: DeviceFactory):
        _device_registry[kind] = fn
        return fn

    return deco


def make_device_locator(cfg: DeviceUnion, *, deps: dict | None = None) -> DeviceLocator:
    try:
        factory = _device_registry[cfg.kind]
    except KeyError:
        raise ValueError(f"Unknown device kind {cfg.kind!r}") from None
    return factory(cfg, deps or {})


@register_device("fixed")
def _make_fixed(cfg: DeviceFixedModel, deps):
    return FixedDeviceLocator(cfg.coordinate.to_coordinate())


@register_device("unavailable")
def _make_unavailable(cfg: DeviceUnavailableModel, deps):
    return UnavailableDeviceLocator(ResolverErrorKind(cfg.reason))
