# ride_sim/errors.py
from enum import Enum


class RideSimError(Exception):
    """Root of every error raised by ride_sim."""


# ------------------- Geo ---------------------------


class GeoMathError(RideSimError):
    pass


class InvalidInputError(GeoMathError, ValueError):
    """Degenerate geometry request (n < 2, identical or antipodal endpoints)."""


class InvalidCoordinateError(InvalidInputError):
    pass


# ------------------- Resolver ----------------------


class ResolverErrorKind(Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"
    UNSUPPORTED = "unsupported"


class ResolverError(RideSimError):
    """
    Lookup could not be performed. "Nothing found" is not an error: resolvers
    return an empty list for that.
    """

    def __init__(self, kind: ResolverErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{kind.value}: {self.message}")

    @property
    def retryable(self) -> bool:
        return self.kind is ResolverErrorKind.NETWORK


# ------------------- Quotes ------------------------


class InvalidModifierError(RideSimError, ValueError):
    pass


class QuoteErrorKind(Enum):
    UNRESOLVED_PICKUP = "unresolved_pickup"
    UNRESOLVED_DESTINATION = "unresolved_destination"
    INVALID_MODIFIERS = "invalid_modifiers"


class QuoteError(RideSimError):
    def __init__(self, kind: QuoteErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind.value
        super().__init__(f"{kind.value}: {self.message}")


# ------------------- Simulator ---------------------


class SimulatorError(RideSimError):
    pass


class NotRunningError(SimulatorError):
    pass
