# tests/sim/test_clock.py
from datetime import UTC, datetime

import pytest

from ride_sim.sim.clock import MIN, Clock, KernelClock, ManualClock, MonotonicClock, SimClock
from ride_sim.sim.kernel import Kernel


def test_manual_clock_only_moves_forward():
    c = ManualClock(1.0)
    assert c.advance(0.5) == 1.5
    assert c.now() == 1.5
    with pytest.raises(ValueError):
        c.advance(-0.1)


def test_kernel_clock_follows_sim_time():
    k = Kernel()
    c = KernelClock(k)
    assert c.now() == 0.0
    k.run(until=3 * MIN)
    assert c.now() == 180.0


def test_clocks_satisfy_protocol():
    for c in (MonotonicClock(), ManualClock(), KernelClock(Kernel())):
        assert isinstance(c, Clock)


def test_sim_clock_wall_round_trip():
    clock = SimClock.utc_epoch(2025, 1, 1, 0, 0, 0)
    assert clock.to_wall(90.0) == datetime(2025, 1, 1, 0, 1, 30, tzinfo=UTC)
    assert clock.to_sim(datetime(2025, 1, 1, 1, 0, 0)) == 3600.0
