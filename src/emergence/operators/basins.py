"""
Basin detection: probe flow, clustering, and basin persistence.

Each tick every probe takes one damped explicit-Euler step down the flow
gradient ``-grad(E) - alpha * grad(D)``, scaled by its inverse mass. Probes
leaving the domain respawn around a live dynamic entity (the origin when
there is none) until the population reaches the lattice cap; from then on
they are deleted so the substrate drains into the lattice.

The probe cloud is clustered greedily and dense clusters are matched to
the existing basins. Matched basins blend toward the cluster and gain a
persistence frame; unmatched basins lose one and are dropped at zero.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.core.entities import Basin, Probe
from emergence.core.fields import PointCluster, cluster_points, flow_gradient
from emergence.core.rng import seeded_units
from emergence.operators.base import Operator, OperatorContext, OperatorParams

if TYPE_CHECKING:
    from emergence.core.state import WorldState

RESPAWN_SALT = 10007


class BasinDetectionOperator(Operator):
    """Moves probes and tracks persistent dense clusters as basins."""

    @property
    def name(self) -> str:
        return "basin_detection"

    @property
    def description(self) -> str:
        return "Probe gradient flow with greedy clustering into persistent basins"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "requires": ["closure"],
            "min_step": 0.003,
            "step_scale": 0.6,
            "alpha": 0.3,
            "damping": 0.55,
            "cluster_radius": 0.12,
            "min_cluster_count": 8,
            "match_radius": 0.14,
            "ema_keep": 0.65,
            "respawn_spread": 0.25,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        self.advance_probes(state, params, dt, cfg)
        clusters = cluster_points(
            np.array([p.position for p in state.probes]).reshape(-1, 2),
            cfg["cluster_radius"],
        )
        self.update_basins(state, clusters, cfg)

    # ------------------------------------------------------------------
    # Probe flow
    # ------------------------------------------------------------------
    def advance_probes(
        self, state: WorldState, params: OperatorParams, dt: float,
        cfg: dict[str, Any],
    ) -> None:
        if not state.probes:
            return

        step = max(cfg["min_step"], dt * cfg["step_scale"])
        damping = cfg["damping"]
        half_x, half_y = state.globals.probe_half_extents
        saturated = len(state.dynamics) >= params.max_invariants

        positions = np.array([p.position for p in state.probes])
        grad = flow_gradient(state, positions, cfg["alpha"])

        survivors: list[Probe] = []
        for i, probe in enumerate(state.probes):
            probe.previous_position = probe.position.copy()
            probe.velocity = damping * probe.velocity - grad[i] * (step / probe.mass)
            probe.position = probe.position + probe.velocity
            probe.speed = float(np.hypot(*probe.velocity))
            probe.age += 1
            probe.trail.append((float(probe.position[0]), float(probe.position[1])))

            x, y = probe.position
            if abs(x) <= half_x and abs(y) <= half_y:
                survivors.append(probe)
                continue
            if saturated:
                continue
            survivors.append(self._respawn(state, i, cfg["respawn_spread"], probe.mass))

        state.probes = survivors

    def _respawn(self, state: WorldState, index: int, spread: float, mass: float) -> Probe:
        g = state.globals
        u = seeded_units(g.seed, g.tick, RESPAWN_SALT + index, 3)
        center = np.zeros(2)
        if state.dynamics:
            host = state.dynamics[min(int(u[0] * len(state.dynamics)), len(state.dynamics) - 1)]
            center = host.position
        half_x, half_y = g.probe_half_extents
        x = float(np.clip(center[0] + (u[1] * 2 - 1) * spread, -half_x, half_x))
        y = float(np.clip(center[1] + (u[2] * 2 - 1) * spread, -half_y, half_y))
        return Probe.at(x, y, mass=mass)

    # ------------------------------------------------------------------
    # Basin persistence
    # ------------------------------------------------------------------
    def update_basins(
        self, state: WorldState, clusters: list[PointCluster], cfg: dict[str, Any],
    ) -> None:
        for basin in state.basins:
            basin.matched = False

        keep = cfg["ema_keep"]
        for i, cluster in enumerate(clusters):
            if cluster.count < cfg["min_cluster_count"]:
                continue

            best: Basin | None = None
            best_distance = float("inf")
            for basin in state.basins:
                distance = float(np.hypot(cluster.x - basin.x, cluster.y - basin.y))
                if distance < cfg["match_radius"] and distance < best_distance:
                    best = basin
                    best_distance = distance

            if best is None:
                state.basins.append(Basin(
                    id=f"basin-{state.globals.tick}-{i}",
                    x=cluster.x,
                    y=cluster.y,
                    count=cluster.count,
                ))
                continue

            best.x = best.x * keep + cluster.x * (1.0 - keep)
            best.y = best.y * keep + cluster.y * (1.0 - keep)
            best.count = cluster.count
            best.frames += 1
            best.matched = True

        for basin in state.basins:
            if not basin.matched:
                basin.frames -= 1
                basin.count = 0
        state.basins = [b for b in state.basins if b.frames > 0]
