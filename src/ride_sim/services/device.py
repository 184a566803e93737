# ride_sim/services/device.py
from ride_sim.app.protocols import DeviceLocator
from ride_sim.domain.entities.geography import Coordinate
from ride_sim.errors import ResolverError, ResolverErrorKind


class FixedDeviceLocator(DeviceLocator):
    """Reports a fixed position, e.g. from a --here flag or a test."""

    def __init__(self, coord: Coordinate):
        self.coord = coord
        self.calls: list[dict] = []

    def locate(self, *, high_accuracy=True, timeout_ms=10_000, max_cache_age_ms=60_000):
        self.calls.append(
            {
                "high_accuracy": high_accuracy,
                "timeout_ms": timeout_ms,
                "max_cache_age_ms": max_cache_age_ms,
            }
        )
        return self.coord


class UnavailableDeviceLocator(DeviceLocator):
    """A device that cannot (or may not) report its position."""

    def __init__(self, kind: ResolverErrorKind = ResolverErrorKind.UNSUPPORTED):
        self.kind = kind

    def locate(self, *, high_accuracy=True, timeout_ms=10_000, max_cache_age_ms=60_000):
        raise ResolverError(self.kind, "device location unavailable")
