"""
World entities: invariants (anchors and dynamic entities), probes, basins.

Positions and velocities are float64 numpy vectors of shape (2,).
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

import numpy as np

PROBE_TRAIL_LENGTH = 20


def saturating_strength(energy: float, s_max: float) -> float:
    """``s_max * e / (1 + e)`` on the non-negative part of ``energy``."""
    safe = max(0.0, energy)
    return s_max * safe / (1.0 + safe)


def stability_from_energy(energy: float, scale: float) -> float:
    """Energy against ``scale``, clamped to [0, 1]."""
    return float(np.clip(max(0.0, energy) / scale, 0.0, 1.0))


def _vec(values=(0.0, 0.0)) -> np.ndarray:
    return np.array(values, dtype=np.float64)


@dataclass
class Invariant:
    """
    An anchor or a dynamic entity.

    Anchors are fixed: their position, energy and strength never change and
    they take no part in competition or lifecycle. Dynamic entities are born
    from basins and mutated by the economics and physics operators.
    """

    # === Identity ===
    id: str
    handle: int  # Registry arena index
    dynamic: bool

    # === Kinematics ===
    position: np.ndarray = field(default_factory=_vec)
    velocity: np.ndarray = field(default_factory=_vec)
    mass: float = 1.0

    # === Economy ===
    strength: float = 1.0
    energy: float = 0.0
    stability: float = 1.0

    # === Lifecycle ===
    birth_tick: int = 0
    distress_deadline: int | None = None

    # === Origin ===
    origin_basin_id: str | None = None
    origin_offset: np.ndarray | None = None

    @property
    def in_distress(self) -> bool:
        return self.distress_deadline is not None

    def __repr__(self) -> str:
        kind = "dynamic" if self.dynamic else "anchor"
        return (
            f"Invariant(id={self.id!r}, {kind}, pos=({self.position[0]:.3f}, "
            f"{self.position[1]:.3f}), energy={self.energy:.4f})"
        )


@dataclass
class Probe:
    """A resource-carrying particle following the negative field gradient."""

    position: np.ndarray
    previous_position: np.ndarray
    velocity: np.ndarray = field(default_factory=_vec)
    mass: float = 1.0
    speed: float = 0.0
    age: int = 0
    trail: deque = field(default_factory=lambda: deque(maxlen=PROBE_TRAIL_LENGTH))

    @classmethod
    def at(cls, x: float, y: float, mass: float = 1.0) -> Probe:
        pos = _vec((x, y))
        return cls(position=pos, previous_position=pos.copy(), mass=mass)


@dataclass
class Basin:
    """A spatially persistent dense cluster of probes."""

    id: str
    x: float
    y: float
    count: int
    frames: int = 1
    matched: bool = True
    promoted: bool = False


@dataclass
class SnapLock:
    """Pinned separation between two close, closing entities."""

    distance: float
    ticks_left: int
