"""Soft per-cluster population ceiling."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.core.events import EventType
from emergence.core.fields import assign_clusters
from emergence.operators.base import Operator, OperatorContext, OperatorParams
from emergence.operators.economics import refresh_vitals

if TYPE_CHECKING:
    from emergence.core.state import WorldState


class ClusterCeilingOperator(Operator):
    """
    Taxes the weakest members of over-full spatial clusters.

    Dynamic entities are grouped with the same greedy clustering used for
    basins. In a cluster holding more than ``ceiling`` members, everyone
    beyond the ``ceiling`` strongest pays ``penalty`` energy this tick.
    """

    @property
    def name(self) -> str:
        return "cluster_ceiling"

    @property
    def description(self) -> str:
        return "Soft per-cluster ceiling on dynamic population"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "cluster_radius": 0.35,
            "ceiling": 4,
            "penalty": 0.01,
            "s_max": 1.5,
            "stability_scale": 0.8,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        dynamics = state.dynamics
        if len(dynamics) <= cfg["ceiling"]:
            return

        labels, _, counts = assign_clusters(
            np.array([inv.position for inv in dynamics]), cfg["cluster_radius"],
        )
        for label, count in enumerate(counts):
            if count <= cfg["ceiling"]:
                continue
            members = [inv for inv, lab in zip(dynamics, labels) if lab == label]
            members.sort(key=lambda inv: (-inv.energy, inv.id))
            leader = members[0]
            for inv in members[cfg["ceiling"]:]:
                inv.energy -= cfg["penalty"]
                refresh_vitals(inv, cfg["s_max"], cfg["stability_scale"])
                ctx.emit(EventType.SUPPRESSED, invariant_id=inv.id,
                         related_ids=[leader.id], reason="cluster ceiling")
