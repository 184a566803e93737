# sim/rng.py
from __future__ import annotations

from dataclasses import dataclass
from zlib import crc32

import numpy as np

_U32 = 0xFFFFFFFF


def _part_u32(p: object) -> int:
    if isinstance(p, (int, np.integer)):
        return int(p) & _U32
    return crc32((p if isinstance(p, str) else repr(p)).encode("utf-8")) & _U32


@dataclass(frozen=True)
class RNGKey:
    stream: str
    parts: tuple[int, ...]  # u32 words, stream name first

    @classmethod
    def from_parts(cls, stream: str, *parts: object) -> RNGKey:
        return cls(stream, tuple(_part_u32(p) for p in (stream, *parts)))


class RNGRegistry:
    """
    Named numpy Generators derived from one master seed.

    A stream's draws depend only on (seed, scenario, worker, name, parts), so
    adding a new stream, or creating streams in a different order, never
    shifts the numbers an existing stream produces. The fleet draws from
    `stream("fleet")`; anything else that needs randomness gets its own name.
    """

    def __init__(self, master_seed: int, *, scenario: str | int = 0, worker: int = 0):
        self.master_seed = _part_u32(master_seed)
        self.root = (self.master_seed, _part_u32(str(scenario)), _part_u32(worker))
        self._gens: dict[RNGKey, np.random.Generator] = {}

    def generator(self, key: RNGKey) -> np.random.Generator:
        g = self._gens.get(key)
        if g is None:
            seq = np.random.SeedSequence(entropy=[*self.root, *key.parts])
            g = self._gens[key] = np.random.Generator(np.random.PCG64(seq))
        return g

    def stream(self, name: str) -> np.random.Generator:
        return self.generator(RNGKey.from_parts(name))

    def substream(self, name: str, *parts: object) -> np.random.Generator:
        return self.generator(RNGKey.from_parts(name, *parts))

    @property
    def streams(self) -> list[str]:
        return sorted({k.stream for k in self._gens})
