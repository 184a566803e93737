# io/kernel_logging.py
import json
import logging
import sys
from dataclasses import asdict, is_dataclass

from ride_sim.sim.clock import SimClock
from ride_sim.sim.hooks import NoopHooks


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(name: str = "ride_sim", level: str = "INFO", stream=None) -> logging.Logger:
    """JSON lines on stdout for the package logger; idempotent."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler(stream or sys.stdout)
        h.setFormatter(JsonFormatter())
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


class KernelLogging(NoopHooks):
    """
    Shapes and emits structured logs for the session kernel. Periodic
    housekeeping events (ticks, polls) only show up in debug mode, sampled.
    """

    BUSINESS = {"SessionEnd"}

    def __init__(
        self,
        run_id: str = "local",
        clock: SimClock | None = None,
        level: str = "INFO",
        debug: bool = False,
        sample_every: int = 1,
        logger: logging.Logger | None = None,
    ):
        self.run_id, self.clock, self.debug = run_id, clock, debug
        self.sample_every = max(1, sample_every)
        self.log = logger or configure_logging(level=level)
        self._processed = 0

    # --------------- Helpers -----------------------------

    def _emit(self, level: str, msg: str, **extra):
        payload = {"run_id": self.run_id}
        if self.clock is not None and extra.get("t") is not None:
            payload["wall"] = self.clock.to_wall(extra["t"]).isoformat()
        self.log.log(getattr(logging, level), msg, extra={"extra": {**payload, **extra}})

    def _shape_event(self, ev) -> tuple[str, dict]:
        name = type(ev).__name__
        base = {"t": getattr(ev, "t", None)}
        if is_dataclass(ev):
            data = {k: v for k, v in asdict(ev).items() if k != "t"}
            if data:
                base["data"] = data
        return name, base

    # --------------- engine lifecycle ----------------------

    def run_start(self, *, until, max_events, qsize):
        self._emit("INFO", "run_start", until=until, max_events=max_events, qsize=qsize)

    def run_end(self, *, processed, last_t, qsize, wall_ms):
        self._emit(
            "INFO", "run_end", processed=processed, last_t=last_t, qsize=qsize, wall_ms=wall_ms
        )

    def schedule(self, ev, *, now, qsize):
        if self.debug and (qsize % self.sample_every) == 0:
            name, extra = self._shape_event(ev)
            self._emit("DEBUG", "schedule", event=name, now=now, qsize=qsize, **extra)

    def dispatch_start(self, ev, *, seq, qsize, handlers):
        self._processed += 1
        name, extra = self._shape_event(ev)
        if name in self.BUSINESS:
            self._emit("INFO", name, seq=seq, qsize=qsize, handlers=handlers, **extra)
        elif self.debug and (self._processed % self.sample_every) == 0:
            self._emit("DEBUG", name, seq=seq, qsize=qsize, handlers=handlers, **extra)

    def dispatch_end(self, ev, *, produced, qsize, ms):
        if self.debug and (self._processed % self.sample_every) == 0:
            self._emit("DEBUG", "dispatch_done", produced=produced, qsize=qsize, ms=round(ms, 3))

    def error(self, ev, *, reason, **kw):
        name, extra = self._shape_event(ev)
        self._emit("ERROR", "kernel_error", event=name, reason=reason, **{**extra, **kw})
