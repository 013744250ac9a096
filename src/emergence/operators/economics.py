"""
Competitive economics and global selection pressure.

Local competition: every close pair of dynamic entities costs the poorer
one a fixed penalty. Intake: income proportional to the probes inside the
capture radius. With selection pressure on, intake-only growth is replaced
by a budget-normalised share, and a dominance cap taxes any entity holding
too large a share of total strength.

Strength is always ``S_max * e / (1 + e)`` on the non-negative energy, and
stability is energy against a fixed scale clamped to [0, 1].
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.core.entities import saturating_strength, stability_from_energy
from emergence.core.events import EventType
from emergence.operators.base import Operator, OperatorContext, OperatorParams

if TYPE_CHECKING:
    from emergence.core.entities import Invariant
    from emergence.core.state import WorldState


def probe_intake(state: WorldState, capture_radius: float) -> np.ndarray:
    """Number of probes within ``capture_radius`` of each dynamic entity."""
    n = len(state.dynamics)
    if n == 0 or not state.probes:
        return np.zeros(n)
    centers = np.array([inv.position for inv in state.dynamics])
    probes = np.array([p.position for p in state.probes])
    dist = np.linalg.norm(centers[:, None, :] - probes[None, :, :], axis=2)
    return (dist < capture_radius).sum(axis=1).astype(np.float64)


def refresh_vitals(inv: Invariant, s_max: float, stability_scale: float) -> None:
    inv.strength = saturating_strength(inv.energy, s_max)
    inv.stability = stability_from_energy(inv.energy, stability_scale)


def contest(a: Invariant, b: Invariant) -> tuple[Invariant, Invariant]:
    """Return (winner, loser). On equal energy the lower id loses."""
    if a.energy > b.energy:
        return a, b
    if b.energy > a.energy:
        return b, a
    return (b, a) if a.id < b.id else (a, b)


class CompetitiveEconomicsOperator(Operator):
    """Pairwise suppression plus probe-intake income."""

    @property
    def name(self) -> str:
        return "competitive_economics"

    @property
    def description(self) -> str:
        return "Local competition between close entities and probe intake"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "suppression_radius": 0.25,
            "suppression_penalty": 0.02,
            "capture_radius": 0.2,
            "intake_rate": 0.001,
            "decay": 0.005,
            "s_max": 1.5,
            "stability_scale": 0.8,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        dynamics = state.dynamics
        if not dynamics:
            return

        intake = probe_intake(state, cfg["capture_radius"])

        radius = cfg["suppression_radius"]
        for i in range(len(dynamics)):
            for j in range(i + 1, len(dynamics)):
                a, b = dynamics[i], dynamics[j]
                if float(np.linalg.norm(a.position - b.position)) >= radius:
                    continue
                winner, loser = contest(a, b)
                loser.energy -= cfg["suppression_penalty"]
                ctx.emit(EventType.SUPPRESSED, invariant_id=loser.id,
                         related_ids=[winner.id], reason="local competition")

        # Selection pressure replaces intake-only growth when it is in the pipeline.
        if not params.selection_pressure:
            for inv, count in zip(dynamics, intake):
                inv.energy += count * cfg["intake_rate"] - cfg["decay"]

        for inv in dynamics:
            refresh_vitals(inv, cfg["s_max"], cfg["stability_scale"])


class SelectionPressureOperator(Operator):
    """Budget-normalised income with a dominance cap."""

    @property
    def name(self) -> str:
        return "selection_pressure"

    @property
    def description(self) -> str:
        return "Global budget selection with a dominance tax"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "requires": ["competitive_economics"],
            "budget_floor": 0.05,
            "intake_weight": 0.7,
            "equal_weight": 0.3,
            "capture_radius": 0.2,
            "decay": 0.005,
            "dominance_share_cap": 0.35,
            "s_max": 1.5,
            "stability_scale": 0.8,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        dynamics = state.dynamics
        n = len(dynamics)
        if n == 0:
            return

        budget = max(cfg["budget_floor"], state.globals.budget)
        intake = probe_intake(state, cfg["capture_radius"])
        total_intake = intake.sum()
        shares = intake / total_intake if total_intake > 0 else np.zeros(n)

        for inv, share in zip(dynamics, shares):
            gain = (cfg["intake_weight"] * share + cfg["equal_weight"] / n) * budget
            inv.energy += gain - cfg["decay"]
            refresh_vitals(inv, cfg["s_max"], cfg["stability_scale"])

        self.apply_dominance_cap(state, cfg)

    def apply_dominance_cap(self, state: WorldState, cfg: dict[str, Any]) -> None:
        """Tax entities whose strength share exceeds both the cap and a fair share."""
        dynamics = state.dynamics
        n = len(dynamics)
        if n < 2:
            return
        strengths = np.array([max(0.0, inv.strength) for inv in dynamics])
        total = strengths.sum()
        if total <= 0:
            return

        cap = max(cfg["dominance_share_cap"], 1.0 / n)
        penalty = state.alignment.dominance_penalty
        for inv, strength in zip(dynamics, strengths):
            excess = strength / total - cap
            if excess <= 0:
                continue
            inv.energy -= penalty * max(0.0, inv.energy) * excess / (1.0 - cap)
            refresh_vitals(inv, cfg["s_max"], cfg["stability_scale"])
