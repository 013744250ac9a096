"""
Membrane cohesion: the terminal, fully populated regime.

Activates only once the dynamic population reaches the lattice cap. The
entities are treated as a mass-spring network: springs toward a common
rest distance between neighbours, viscosity toward the local neighbour
average, and a radial surface tension pulling each entity toward the
population's mean radius from its centroid.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.operators.base import Operator, OperatorContext, OperatorParams

if TYPE_CHECKING:
    from emergence.core.state import WorldState


class MembraneOperator(Operator):
    """Population-gated spring network giving a cohesive gel."""

    @property
    def name(self) -> str:
        return "membrane"

    @property
    def description(self) -> str:
        return "Mass-spring cohesion once the lattice cap is reached"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "rest_distance": 0.18,
            "neighbor_radius": 0.35,
            "spring": 6.0,
            "viscosity": 2.0,
            "surface_tension": 3.0,
        }

    def is_active(self, state: WorldState, params: OperatorParams) -> bool:
        n = len(state.dynamics)
        return n >= 2 and n >= params.max_invariants

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        if not self.is_active(state, params):
            return
        cfg = self.settings(params.config)
        acc = self.accelerations(np.array([inv.position for inv in state.dynamics]), cfg)
        for inv, a in zip(state.dynamics, acc):
            inv.velocity = inv.velocity + (a / inv.mass) * dt

    def accelerations(self, pos: np.ndarray, cfg: dict[str, Any]) -> np.ndarray:
        n = len(pos)
        delta = pos[None, :, :] - pos[:, None, :]  # delta[i, j] = pos[j] - pos[i]
        dist = np.linalg.norm(delta, axis=2)
        neighbours = (dist < cfg["neighbor_radius"]) & ~np.eye(n, dtype=bool)
        safe = np.where(dist > 0, dist, 1.0)
        units = delta / safe[:, :, None]

        stretch = np.where(neighbours, dist - cfg["rest_distance"], 0.0)
        acc = cfg["spring"] * (stretch[:, :, None] * units).sum(axis=1)

        counts = neighbours.sum(axis=1)
        has = counts > 0
        local_mean = np.zeros_like(pos)
        local_mean[has] = (neighbours[has].astype(float) @ pos) / counts[has, None]
        acc[has] += cfg["viscosity"] * (local_mean[has] - pos[has])

        centroid = pos.mean(axis=0)
        radial = pos - centroid
        r = np.linalg.norm(radial, axis=1)
        mean_r = r.mean()
        outward = np.where(r[:, None] > 0, radial / np.where(r > 0, r, 1.0)[:, None], 0.0)
        acc += cfg["surface_tension"] * (mean_r - r)[:, None] * outward
        return acc
