"""
Deterministic generator.

Every random draw in the simulation is a pure function of
``(seed, tick, salt)``. There is no generator object carried between
ticks, so replaying the same seed and operator sequence reproduces the
same draws bit for bit.
"""

from __future__ import annotations

import zlib

import numpy as np

_MASK = 0xFFFFFFFFFFFFFFFF


def seeded_unit(seed: int, tick: int, salt: int) -> float:
    """Return a float in [0, 1) determined only by the three keys."""
    rng = np.random.default_rng([int(seed) & _MASK, int(tick) & _MASK, int(salt) & _MASK])
    return float(rng.random())


def seeded_units(seed: int, tick: int, salt: int, n: int) -> np.ndarray:
    """Return ``n`` floats in [0, 1) keyed on ``(seed, tick, salt)``."""
    rng = np.random.default_rng([int(seed) & _MASK, int(tick) & _MASK, int(salt) & _MASK])
    return rng.random(n)


def id_salt(label: str) -> int:
    """Stable integer salt for a string key (entity ids, basin ids)."""
    return zlib.crc32(label.encode("utf-8"))
