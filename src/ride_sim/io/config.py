# src/ride_sim/io/config.py
import json
import os
from pathlib import Path

from ride_sim.config.models import AppModel


def load_config(path: str | os.PathLike | None = None, **overrides) -> AppModel:
    """Read a JSON scenario file (or start from defaults) and validate it."""
    data: dict = {}
    if path is not None:
        p = Path(os.path.expandvars(os.path.expanduser(str(path))))
        data = json.loads(p.read_text(encoding="utf-8"))
    data.update(overrides)
    return AppModel.model_validate(data)
