# ride_sim/io/recorder.py
import json
import logging
import sys
from dataclasses import asdict
from typing import Protocol

log = logging.getLogger(__name__)


class Sink(Protocol):
    def write(self, ev) -> None: ...


class JsonlSink:
    def __init__(self, fp=None):
        self.fp = fp or sys.stdout

    def write(self, ev) -> None:
        self.fp.write(json.dumps(asdict(ev)) + "\n")


class MemorySink:
    def __init__(self):
        self.events: list = []

    def write(self, ev) -> None:
        self.events.append(ev)

    def named(self, name: str) -> list:
        return [e for e in self.events if e.name == name]


class Recorder:
    def __init__(self, *sinks: Sink, run_id: str = "local"):
        self.sinks = sinks or (JsonlSink(),)
        self.run_id = run_id

    def emit(self, ev) -> None:
        for s in self.sinks:
            try:
                s.write(ev)
            except Exception:
                # analytics must never break the simulation
                log.exception("recorder_sink_failed", extra={"extra": {"sink": type(s).__name__}})
