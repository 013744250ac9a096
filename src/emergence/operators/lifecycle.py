"""
Distress lifecycle: spawning -> competing -> (distress) -> dead.

Distress starts on the first tick an entity's energy is negative, with a
deadline ``tick + grace_window``. Recovering above the recovery threshold
before the deadline clears it; reaching the deadline still in deficit
removes the entity (STARVATION then DEATH).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from emergence.core.events import EventType
from emergence.operators.base import Operator, OperatorContext, OperatorParams

if TYPE_CHECKING:
    from emergence.core.state import WorldState

logger = logging.getLogger(__name__)


class DistressLifecycleOperator(Operator):
    """Grace-period death for entities in sustained energy deficit."""

    @property
    def name(self) -> str:
        return "distress_lifecycle"

    @property
    def description(self) -> str:
        return "Distress deadlines, recovery, and starvation deaths"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "grace_window": 60,
            "recovery_threshold": 0.01,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        tick = state.globals.tick
        dead: list[str] = []

        for inv in state.dynamics:
            if inv.distress_deadline is None:
                if inv.energy < 0:
                    inv.distress_deadline = tick + cfg["grace_window"]
                    ctx.emit(EventType.DISTRESS, invariant_id=inv.id,
                             reason=f"deadline {inv.distress_deadline}")
                continue

            if inv.energy > cfg["recovery_threshold"]:
                inv.distress_deadline = None
                ctx.emit(EventType.RECOVERY, invariant_id=inv.id)
            elif tick >= inv.distress_deadline:
                ctx.emit(EventType.STARVATION, invariant_id=inv.id)
                ctx.emit(EventType.DEATH, invariant_id=inv.id,
                         reason="sustained energy deficit")
                dead.append(inv.id)

        for inv_id in dead:
            state.remove_dynamic(inv_id)
            logger.debug("Removed %s at tick %d", inv_id, tick)
