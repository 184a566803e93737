from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from ride_sim.domain.catalogue import DEFAULT_VEHICLES
from ride_sim.domain.entities.driver import VehicleType
from ride_sim.domain.entities.geography import Coordinate


class SimModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    seed: int = 123
    epoch: tuple[int, int, int, int, int, int] = (2025, 1, 1, 0, 0, 0)


class LogModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False
    sample_every: int = Field(1, ge=1)


class CoordinateModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    lon: float = Field(ge=-180.0, le=180.0)
    lat: float = Field(ge=-90.0, le=90.0)

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.lon, self.lat)


# ----------------- FLEET ---------------------


class FleetModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    center: CoordinateModel = Field(
        default_factory=lambda: CoordinateModel(lon=77.2090, lat=28.6139)  # New Delhi
    )
    count: int = Field(8, ge=0)
    radius_km: float = Field(3.0, gt=0)
    tick_interval_s: float = Field(5.0, gt=0)
    move_probability: float = Field(0.5, ge=0, le=1)
    max_step_km: float = Field(0.11, gt=0)
    availability_flip_probability: float = Field(0.05, ge=0, le=1)
    available_probability: float = Field(0.7, ge=0, le=1)
    rating_range: tuple[float, float] = (4.0, 5.0)
    initial_eta_range: tuple[int, int] = (2, 11)
    max_eta: int = Field(15, ge=1)
    speed_jitter: float = Field(0.2, ge=0, lt=1)

    @model_validator(mode="after")
    def _check_ranges(self):
        if self.max_step_km >= self.radius_km:
            raise ValueError("max_step_km must be well below radius_km")
        lo, hi = self.initial_eta_range
        if not 1 <= lo <= hi:
            raise ValueError("initial_eta_range must satisfy 1 <= low <= high")
        r_lo, r_hi = self.rating_range
        if not 1.0 <= r_lo <= r_hi <= 5.0:
            raise ValueError("rating_range must lie within [1, 5]")
        return self


# ----------------- FARES ---------------------


class VehicleModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    multiplier: float = Field(gt=0)
    avg_speed_kmh: float = Field(gt=0)
    eta_range_min: tuple[int, int] = (3, 5)


class ModifierModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["percent", "flat"] = "percent"
    value: float

    @field_validator("value")
    @classmethod
    def _bounded(cls, v: float, info: ValidationInfo) -> float:
        if info.data.get("kind") == "flat" and v < 0:
            raise ValueError("flat surcharges must be >= 0")
        if v < -1.0:
            raise ValueError("percentage below -1 would make fares negative")
        return v


class VariantModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    detour_factor: float = Field(1.0, ge=1.0)
    avg_speed_kmh: float = Field(gt=0)


def _default_vehicles() -> dict[VehicleType, VehicleModel]:
    return {
        vt: VehicleModel(
            multiplier=s.multiplier, avg_speed_kmh=s.avg_speed_kmh, eta_range_min=s.eta_range_min
        )
        for vt, s in DEFAULT_VEHICLES.items()
    }


def _default_modifiers() -> dict[str, ModifierModel]:
    return {
        "female_driver": ModifierModel(kind="percent", value=0.15),
        "night": ModifierModel(kind="percent", value=0.25),
        "airport": ModifierModel(kind="flat", value=50.0),
        "toll": ModifierModel(kind="flat", value=30.0),
    }


def _default_variants() -> list[VariantModel]:
    return [
        VariantModel(name="fastest", detour_factor=1.25, avg_speed_kmh=32.0),
        VariantModel(name="shortest", detour_factor=1.10, avg_speed_kmh=24.0),
        VariantModel(name="toll_avoiding", detour_factor=1.35, avg_speed_kmh=27.0),
    ]


class FareModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    base_fare: float = Field(40.0, ge=0)
    per_km_rate: float = Field(12.0, ge=0)
    currency: str = "INR"
    vehicles: dict[VehicleType, VehicleModel] = Field(default_factory=_default_vehicles)
    modifiers: dict[str, ModifierModel] = Field(default_factory=_default_modifiers)
    variants: list[VariantModel] = Field(default_factory=_default_variants)

    @field_validator("vehicles")
    @classmethod
    def _non_empty(cls, v):
        if not v:
            raise ValueError("at least one vehicle type is required")
        return v


# ----------------- RESOLVER ---------------------


class GazetteerNominatimModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["nominatim"] = "nominatim"
    base_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "ride-sim/0.1"
    timeout_s: float = Field(8.0, gt=0)
    reverse_timeout_s: float = Field(10.0, gt=0)


class GazetteerStaticModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["static"] = "static"
    reverse_max_km: float = Field(25.0, gt=0)


GazetteerUnion = Annotated[
    GazetteerNominatimModel | GazetteerStaticModel, Field(discriminator="kind")
]


class DeviceFixedModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["fixed"] = "fixed"
    coordinate: CoordinateModel


class DeviceUnavailableModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kind: Literal["unavailable"] = "unavailable"
    reason: Literal["permission_denied", "timeout", "unsupported"] = "unsupported"


DeviceUnion = Annotated[DeviceFixedModel | DeviceUnavailableModel, Field(discriminator="kind")]


class ResolverModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    gazetteer: GazetteerUnion = Field(default_factory=GazetteerNominatimModel)
    device: DeviceUnion = Field(default_factory=DeviceUnavailableModel)
    country_codes: str | None = "in"
    viewbox: tuple[float, float, float, float] | None = (
        68.1766451354,
        7.96553477623,
        97.4025614766,
        35.4940095078,
    )
    bounded: bool = True
    limit: int = Field(5, ge=1, le=50)
    min_query_chars: int = Field(2, ge=1)
    debounce_s: float = Field(0.3, ge=0)
    poll_interval_s: float = Field(0.1, gt=0)
    reverse_timeout_s: float = Field(10.0, gt=0)
    device_timeout_ms: int = Field(10_000, gt=0)
    max_cache_age_ms: int = Field(60_000, ge=0)
    high_accuracy: bool = True


# ----------------- ROUTES / QUOTES ---------------------


class RouteModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    resolution: int = Field(100, ge=2)
    padding_factor: float = Field(0.1, ge=0)
    min_padding_deg: float = Field(0.005, ge=0)


class QuotesModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    retry_backoff_s: float = Field(0.25, ge=0)


# ------------------------------------------------------------------


class AppModel(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str = "ride-sim"
    run_id: str = "local"
    sim: SimModel = SimModel()
    log: LogModel = LogModel()
    fleet: FleetModel = Field(default_factory=FleetModel)
    fare: FareModel = Field(default_factory=FareModel)
    resolver: ResolverModel = Field(default_factory=ResolverModel)
    route: RouteModel = RouteModel()
    quotes: QuotesModel = QuotesModel()
