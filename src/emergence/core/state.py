"""
World state: the single aggregate owned by the stepping loop.

Anchors and dynamic entities are kept in separate ordered collections;
``invariants`` is their concatenation (anchors first). Operators mutate the
state in place between the engine's tick-boundary bookkeeping.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from emergence.core.alignment import AlignmentControl
from emergence.core.config import FieldConfig
from emergence.core.entities import Basin, Invariant, Probe, SnapLock
from emergence.core.events import SimEvent
from emergence.core.fields import FieldFunctions
from emergence.core.registry import InvariantRegistry
from emergence.core.rng import seeded_units
from emergence.metrics.collector import SimMetrics

CONSTITUTION_HASH = "constitutional-field-v2"

PROBE_INIT_SALT = 7919


@dataclass(frozen=True)
class AnchorSpec:
    id: str
    position: tuple[float, float]
    strength: float = 1.0


def configured_anchors(extended: bool = False, strength: float = 1.0) -> list[AnchorSpec]:
    """The constitutional anchor set: ``B``/``Ci`` plus the optional rotations."""
    base = [
        AnchorSpec("B", (-0.5, 0.0), strength),
        AnchorSpec("Ci", (0.5, 0.0), strength),
    ]
    if not extended:
        return base

    diagonal = 0.5 / math.sqrt(2.0)
    return base + [
        AnchorSpec("B-y", (0.0, -0.5), strength),
        AnchorSpec("Ci-y", (0.0, 0.5), strength),
        AnchorSpec("B-r90", (-diagonal, -diagonal), strength),
        AnchorSpec("Ci-r90", (diagonal, -diagonal), strength),
        AnchorSpec("B-y-r90", (diagonal, diagonal), strength),
        AnchorSpec("Ci-y-r90", (-diagonal, diagonal), strength),
    ]


@dataclass
class SimGlobals:
    tick: int = 0
    time: float = 0.0
    seed: int = 0
    budget: float = 0.3
    domain_half_extents: tuple[float, float] = (1.1, 1.1)
    probe_half_extents: tuple[float, float] = (1.0, 1.0)
    regulator_integral: float = 0.0
    constitution_hash: str = CONSTITUTION_HASH
    energy_enabled: bool = False


@dataclass
class WorldState:
    anchors: list[Invariant]
    dynamics: list[Invariant]
    fields: FieldFunctions
    probes: list[Probe]
    basins: list[Basin]
    globals: SimGlobals
    registry: InvariantRegistry
    events: list[SimEvent] = field(default_factory=list)
    metrics: SimMetrics = field(default_factory=SimMetrics)
    alignment: AlignmentControl = field(default_factory=AlignmentControl)
    # Pairwise snap-lock state keyed by sorted (id, id); owned per simulation.
    snap_locks: dict[tuple[str, str], SnapLock] = field(default_factory=dict)
    anchor_specs: list[AnchorSpec] = field(default_factory=list)
    config: FieldConfig = field(default_factory=FieldConfig)

    @property
    def invariants(self) -> list[Invariant]:
        return self.anchors + self.dynamics

    def partition(self) -> None:
        """Re-split anchors and dynamic entities at the tick boundary."""
        everything = self.invariants
        self.anchors = [inv for inv in everything if not inv.dynamic]
        self.dynamics = [inv for inv in everything if inv.dynamic]

    def invariant_map(self) -> dict[str, Invariant]:
        return {inv.id: inv for inv in self.invariants}

    def find(self, invariant_id: str) -> Invariant | None:
        for inv in self.invariants:
            if inv.id == invariant_id:
                return inv
        return None

    def add_anchor(self, spec: AnchorSpec) -> Invariant:
        """Create an anchor if one with this id does not already exist."""
        existing = self.find(spec.id)
        if existing is not None:
            return existing
        anchor = Invariant(
            id=spec.id,
            handle=self.registry.allocate(),
            dynamic=False,
            position=np.array(spec.position, dtype=np.float64),
            strength=spec.strength,
            energy=0.0,
            stability=1.0,
            birth_tick=self.globals.tick,
        )
        self.anchors.append(anchor)
        self.registry.register_birth(anchor, self.globals.tick)
        return anchor

    def remove_dynamic(self, invariant_id: str) -> None:
        """Purge a dynamic entity and any snap locks it holds."""
        self.dynamics = [inv for inv in self.dynamics if inv.id != invariant_id]
        for key in [k for k in self.snap_locks if invariant_id in k]:
            del self.snap_locks[key]


def _initial_probes(config: FieldConfig) -> list[Probe]:
    half_w, half_h = config.viewport_half_width, config.viewport_half_height
    n = config.probe_count
    draws = seeded_units(config.random_seed, 0, PROBE_INIT_SALT, 3 * n).reshape(n, 3)
    return [
        Probe.at((u[0] * 2 - 1) * half_w, (u[1] * 2 - 1) * half_h, mass=0.6 + 0.8 * u[2])
        for u in draws
    ]


def create_world_state(config: FieldConfig) -> WorldState:
    """Build tick-0 state: anchors registered at birth tick 0, probe pool seeded."""
    globals_ = SimGlobals(
        seed=config.random_seed,
        budget=config.global_budget,
        domain_half_extents=config.domain_half_extents,
        probe_half_extents=(config.viewport_half_width, config.viewport_half_height),
    )
    state = WorldState(
        anchors=[],
        dynamics=[],
        fields=FieldFunctions(),
        probes=_initial_probes(config),
        basins=[],
        globals=globals_,
        registry=InvariantRegistry(),
        metrics=SimMetrics(budget=config.global_budget, conserved_delta=-config.global_budget),
        anchor_specs=configured_anchors(config.extended_anchors, config.anchor_strength),
        config=config,
    )
    for spec in state.anchor_specs:
        state.add_anchor(spec)
    return state
