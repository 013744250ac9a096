"""
Budget regulator: closed-loop PI control of total dynamic energy.

The error is ``total_energy - budget``. Inside the deadband the integral
decays and nothing is applied. Outside it the integral accumulates
``error * dt`` (clamped) and the control ``Kp * error + Ki * integral`` is
applied: an excess is removed in proportion to each entity's share of
total energy, a deficit is added with a blend of inverse-energy and equal
shares. Gains and deadband are scaled by the alignment control.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.operators.base import Operator, OperatorContext, OperatorParams
from emergence.operators.economics import refresh_vitals

if TYPE_CHECKING:
    from emergence.core.state import WorldState


class BudgetRegulatorOperator(Operator):
    """PI controller nudging total dynamic energy toward the global budget."""

    @property
    def name(self) -> str:
        return "budget_regulation"

    @property
    def description(self) -> str:
        return "Closed-loop regulation of total energy toward the budget"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "kp": 0.35,
            "ki": 0.5,
            "deadband": 0.02,
            "integral_limit": 2.0,
            "integral_decay": 0.9,
            "inverse_floor": 0.01,
            "s_max": 1.5,
            "stability_scale": 0.8,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        g = state.globals
        dynamics = state.dynamics
        control = state.alignment

        energies = np.array([max(0.0, inv.energy) for inv in dynamics])
        total = float(energies.sum())
        error = total - g.budget

        deadband = cfg["deadband"] * control.deadband_scale
        if not dynamics or abs(error) < deadband:
            g.regulator_integral *= cfg["integral_decay"]
            return

        limit = cfg["integral_limit"]
        g.regulator_integral = float(np.clip(g.regulator_integral + error * dt, -limit, limit))

        kp = cfg["kp"] * control.budget_gain_scale
        ki = cfg["ki"] * control.budget_gain_scale
        signal = kp * error + ki * g.regulator_integral

        if signal > 0:
            self.remove_excess(dynamics, energies, min(signal, total))
        elif signal < 0:
            self.add_deficit(dynamics, energies, -signal, control.equity_boost, cfg["inverse_floor"])

        for inv in dynamics:
            refresh_vitals(inv, cfg["s_max"], cfg["stability_scale"])

    @staticmethod
    def remove_excess(dynamics, energies: np.ndarray, amount: float) -> None:
        """Take ``amount`` from entities in proportion to their energy share."""
        total = energies.sum()
        if total <= 0 or amount <= 0:
            return
        for inv, share in zip(dynamics, energies / total):
            inv.energy -= amount * share

    @staticmethod
    def add_deficit(
        dynamics, energies: np.ndarray, amount: float, equity: float, floor: float,
    ) -> None:
        """Add ``amount`` favouring the weakest: inverse-energy blended with equal share."""
        n = len(dynamics)
        inverse = 1.0 / (energies + floor)
        weights = equity * inverse / inverse.sum() + (1.0 - equity) / n
        for inv, w in zip(dynamics, weights):
            inv.energy += amount * w
