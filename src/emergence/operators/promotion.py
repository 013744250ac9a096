"""
Emergent promotion: persistent basins become dynamic entities.

A basin is promoted once it has persisted long enough and holds enough
probes, provided the spot is free, the population is under both the
per-cluster ceiling and the lattice cap, no anchor is too close, and the
local flow gradient is below the settle threshold (a near-equilibrium
location rather than an active flow).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.core.entities import Invariant, saturating_strength, stability_from_energy
from emergence.core.events import EventType
from emergence.core.fields import flow_gradient
from emergence.core.rng import id_salt, seeded_units
from emergence.operators.base import Operator, OperatorContext, OperatorParams

if TYPE_CHECKING:
    from emergence.core.entities import Basin
    from emergence.core.state import WorldState

logger = logging.getLogger(__name__)


class PromotionOperator(Operator):
    """Creates dynamic entities at eligible basins."""

    @property
    def name(self) -> str:
        return "promotion"

    @property
    def description(self) -> str:
        return "Promotes persistent, settled basins into dynamic entities"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "requires": ["basin_detection"],
            "min_frames": 18,
            "min_count": 25,
            "occupancy_radius": 0.1,
            "anchor_exclusion": 0.15,
            "settle_gradient": 0.5,
            "alpha": 0.3,
            "cluster_radius": 0.35,
            "cluster_ceiling": 4,
            "initial_energy": 0.2,
            "launch_speed_min": 0.1,
            "launch_speed_range": 0.3,
            "mass_min": 0.8,
            "mass_range": 0.4,
            "s_max": 1.5,
            "stability_scale": 0.8,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        for basin in state.basins:
            if len(state.dynamics) >= params.max_invariants:
                break
            if not self.is_eligible(state, basin, cfg):
                continue
            created = self.promote(state, basin, cfg)
            ctx.emit(EventType.PROMOTION, invariant_id=created.id, related_ids=[basin.id])
            ctx.emit(EventType.BIRTH, invariant_id=created.id,
                     reason="promoted from persistent basin")
            logger.debug("Promoted %s at basin %s (tick %d)", created.id, basin.id, state.globals.tick)

    def is_eligible(self, state: WorldState, basin: Basin, cfg: dict[str, Any]) -> bool:
        if basin.frames < cfg["min_frames"] or basin.count < cfg["min_count"]:
            return False

        here = np.array([basin.x, basin.y])
        nearby = 0
        for inv in state.dynamics:
            distance = float(np.linalg.norm(inv.position - here))
            if distance < cfg["occupancy_radius"]:
                return False
            if distance < cfg["cluster_radius"]:
                nearby += 1
        if nearby >= cfg["cluster_ceiling"]:
            return False

        for anchor in state.anchors:
            if float(np.linalg.norm(anchor.position - here)) < cfg["anchor_exclusion"]:
                return False

        grad = flow_gradient(state, here, cfg["alpha"])[0]
        return float(np.hypot(grad[0], grad[1])) <= cfg["settle_gradient"]

    def promote(self, state: WorldState, basin: Basin, cfg: dict[str, Any]) -> Invariant:
        g = state.globals
        handle = state.registry.allocate()
        inv_id = f"dyn-{g.tick}-{handle}"

        u = seeded_units(g.seed, g.tick, id_salt(inv_id), 3)
        angle = 2.0 * np.pi * u[0]
        speed = cfg["launch_speed_min"] + cfg["launch_speed_range"] * u[1]
        energy = cfg["initial_energy"]

        created = Invariant(
            id=inv_id,
            handle=handle,
            dynamic=True,
            position=np.array([basin.x, basin.y], dtype=np.float64),
            velocity=np.array([np.cos(angle), np.sin(angle)]) * speed,
            mass=cfg["mass_min"] + cfg["mass_range"] * u[2],
            strength=saturating_strength(energy, cfg["s_max"]),
            energy=energy,
            stability=stability_from_energy(energy, cfg["stability_scale"]),
            birth_tick=g.tick,
            origin_basin_id=basin.id,
            origin_offset=np.zeros(2),
        )
        state.dynamics.append(created)
        basin.promoted = True
        return created
