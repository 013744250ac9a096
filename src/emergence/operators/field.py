"""Closure and oscillation: the two field-level operators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from emergence.operators.base import Operator, OperatorContext, OperatorParams

if TYPE_CHECKING:
    from emergence.core.state import WorldState


class ClosureOperator(Operator):
    """Base closure law: fixed anchors present, energy field off."""

    @property
    def name(self) -> str:
        return "closure"

    @property
    def description(self) -> str:
        return "Base closure law with fixed constitutional anchors"

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        state.globals.energy_enabled = False
        for spec in state.anchor_specs:
            state.add_anchor(spec)


class OscillationOperator(Operator):
    """Switches on the time-varying energy field."""

    @property
    def name(self) -> str:
        return "oscillation"

    @property
    def description(self) -> str:
        return "Adds the oscillating energy field"

    def get_default_config(self) -> dict[str, Any]:
        return {"requires": ["closure"]}

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        state.globals.energy_enabled = True
