# ride_sim/app/wiring.py
from ride_sim.app.controllers.fleet import FleetTicker
from ride_sim.app.controllers.resolver import ResolverPump
from ride_sim.app.events import FleetTick, ResolverPoll, SessionEnd
from ride_sim.sim.kernel import Kernel


def wire(kernel: Kernel, *, ticker: FleetTicker, pump: ResolverPump) -> None:
    k = kernel

    # periodic timers
    k.on(FleetTick, ticker.on_fleet_tick)
    k.on(ResolverPoll, pump.on_resolver_poll)

    # teardown: stop both loops, close inputs, stop the fleet
    k.on(SessionEnd, pump.on_session_end)
    k.on(SessionEnd, ticker.on_session_end)
