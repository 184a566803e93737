# ride_sim/app/build.py
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from ride_sim.app.controllers.fleet import FleetTicker
from ride_sim.app.controllers.resolver import ResolverPump
from ride_sim.app.events import SessionEnd
from ride_sim.app.wiring import wire
from ride_sim.config.models import AppModel, FareModel, FleetModel
from ride_sim.domain.catalogue import VehicleSpec
from ride_sim.domain.entities.driver import VehicleType
from ride_sim.domain.entities.geography import BoundingBox
from ride_sim.domain.fares import FareEstimator, Modifier, ModifierKind
from ride_sim.domain.fleet import FleetSettings, FleetSimulator, FleetSnapshot
from ride_sim.domain.routes import RouteBuilder
from ride_sim.io.kernel_logging import KernelLogging
from ride_sim.io.recorder import JsonlSink, Recorder, Sink
from ride_sim.runtime.registries import make_device_locator, make_gazetteer
from ride_sim.services.quotes import TripQuoteService, VariantSpec
from ride_sim.services.resolver import LocationResolver
from ride_sim.sim.clock import KernelClock, SimClock
from ride_sim.sim.hooks import FanoutHooks, KernelHooks, NoopHooks
from ride_sim.sim.kernel import Kernel
from ride_sim.sim.rng import RNGRegistry


@dataclass
class App:
    kernel: Kernel
    clock: KernelClock
    sim_clock: SimClock
    rng: RNGRegistry
    recorder: Recorder
    simulator: FleetSimulator
    resolver: LocationResolver
    fares: FareEstimator
    routes: RouteBuilder
    quotes: TripQuoteService
    ticker: FleetTicker
    pump: ResolverPump
    config: AppModel

    def start_session(
        self, t0: float | None = None, *, duration_s: float | None = None
    ) -> FleetSnapshot:
        """Start the fleet, seed the tick and poll timers, optionally schedule the end."""
        t0 = self.kernel.now if t0 is None else t0
        self.kernel.schedule(self.ticker.start(t0))
        self.kernel.schedule(self.pump.start(t0))
        if duration_s is not None:
            self.kernel.schedule(SessionEnd(t=t0 + duration_s, reason="duration"))
        return self.simulator.snapshot()

    def run(self, until: float | None = None, max_events: int | None = None) -> int:
        return self.kernel.run(until=until, max_events=max_events)

    def close(self) -> None:
        """Cancel both timers, close resolver inputs and stop the fleet, then drain."""
        now = self.kernel.now
        self.kernel.schedule(SessionEnd(t=now))
        self.kernel.run(until=now)
        self.kernel.clear()


# ------------------- config -> domain ---------------------------


def _vehicles(model: FareModel) -> dict[VehicleType, VehicleSpec]:
    return {
        vt: VehicleSpec(v.multiplier, v.avg_speed_kmh, tuple(v.eta_range_min))
        for vt, v in model.vehicles.items()
    }


def _modifier_catalogue(model: FareModel) -> dict[str, Modifier]:
    return {name: Modifier(ModifierKind(m.kind), m.value) for name, m in model.modifiers.items()}


def _fleet_settings(model: FleetModel) -> FleetSettings:
    return FleetSettings(
        move_probability=model.move_probability,
        max_step_km=model.max_step_km,
        availability_flip_probability=model.availability_flip_probability,
        available_probability=model.available_probability,
        rating_range=tuple(model.rating_range),
        initial_eta_range=tuple(model.initial_eta_range),
        max_eta=model.max_eta,
        speed_jitter=model.speed_jitter,
    )


def build(
    cfg: AppModel | Mapping,
    *,
    sinks: Iterable[Sink] | None = None,
    deps: dict | None = None,
    hooks: Iterable[KernelHooks] = (),
    worker: int = 0,
    use_logging: bool = True,
) -> App:
    """
    Assemble a session from config. `deps` is handed to the gazetteer and
    device factories (e.g. a requests session, or a place list for the
    static gazetteer). Extra `hooks` observe the kernel next to the logging ones.
    """
    # 0) Validate config
    model = cfg if isinstance(cfg, AppModel) else AppModel.model_validate(cfg)
    deps = deps or {}

    # 1) Clocks & RNG
    sim_clock = SimClock.utc_epoch(*model.sim.epoch)
    rng_registry = RNGRegistry(model.sim.seed, scenario=model.name, worker=worker)

    # 2) Recorder & kernel
    recorder = Recorder(*(sinks if sinks is not None else [JsonlSink()]), run_id=model.run_id)
    base = (
        KernelLogging(
            run_id=model.run_id,
            clock=sim_clock,
            level=model.log.level,
            debug=model.log.debug,
            sample_every=model.log.sample_every,
        )
        if use_logging
        else NoopHooks()
    )
    extra = list(hooks)
    kernel = Kernel(hooks=FanoutHooks([base, *extra]) if extra else base)
    clock = KernelClock(kernel)

    # 3) Domain
    vehicles = _vehicles(model.fare)
    fares = FareEstimator(
        base_fare=model.fare.base_fare,
        per_km_rate=model.fare.per_km_rate,
        currency=model.fare.currency,
        catalogue=_modifier_catalogue(model.fare),
    )
    simulator = FleetSimulator(
        rng_registry.stream("fleet"),
        vehicles=vehicles,
        base_fare=model.fare.base_fare,
        settings=_fleet_settings(model.fleet),
        clock=clock,
    )
    routes = RouteBuilder(
        resolution=model.route.resolution,
        padding_factor=model.route.padding_factor,
        min_padding_deg=model.route.min_padding_deg,
    )

    # 4) Services
    rc = model.resolver
    resolver = LocationResolver(
        make_gazetteer(rc.gazetteer, deps=deps),
        make_device_locator(rc.device, deps=deps),
        clock=clock,
        country_codes=rc.country_codes,
        viewbox=BoundingBox.from_viewbox(*rc.viewbox) if rc.viewbox else None,
        bounded=rc.bounded,
        limit=rc.limit,
        min_query_chars=rc.min_query_chars,
        debounce_s=rc.debounce_s,
        reverse_timeout_s=rc.reverse_timeout_s,
        device_timeout_ms=rc.device_timeout_ms,
        max_cache_age_ms=rc.max_cache_age_ms,
        high_accuracy=rc.high_accuracy,
    )
    quotes = TripQuoteService(
        resolver,
        fares,
        routes,
        vehicles=vehicles,
        variants=[
            VariantSpec(v.name, v.detour_factor, v.avg_speed_kmh) for v in model.fare.variants
        ],
        retry_backoff_s=model.quotes.retry_backoff_s,
        recorder=recorder,
        clock=clock,
    )

    # 5) Controllers & wiring
    ticker = FleetTicker(
        simulator,
        interval_s=model.fleet.tick_interval_s,
        center=model.fleet.center.to_coordinate(),
        count=model.fleet.count,
        radius_km=model.fleet.radius_km,
        recorder=recorder,
    )
    pump = ResolverPump(resolver, interval_s=rc.poll_interval_s, recorder=recorder)
    wire(kernel, ticker=ticker, pump=pump)

    return App(
        kernel=kernel,
        clock=clock,
        sim_clock=sim_clock,
        rng=rng_registry,
        recorder=recorder,
        simulator=simulator,
        resolver=resolver,
        fares=fares,
        routes=routes,
        quotes=quotes,
        ticker=ticker,
        pump=pump,
        config=model,
    )
