"""
Post-step constraint validator.

All violations are soft: the engine folds them into a single SUPPRESSED
event and the next tick runs as normal.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from emergence.core.state import WorldState

BOUNDED_DOMAIN = "BOUNDED_DOMAIN"
FINITE_VALUES = "FINITE_VALUES"
FINITE_BUDGET = "FINITE_BUDGET"
CONSTITUTION_IMMUTABLE = "CONSTITUTION_IMMUTABLE"


@dataclass(frozen=True)
class ConstraintViolation:
    code: str
    message: str


def validate_state(state: WorldState, expected_constitution_hash: str) -> list[ConstraintViolation]:
    issues: list[ConstraintViolation] = []
    half_x, half_y = state.globals.domain_half_extents

    for inv in state.invariants:
        x, y = float(inv.position[0]), float(inv.position[1])
        if not (abs(x) <= half_x and abs(y) <= half_y):
            issues.append(ConstraintViolation(
                BOUNDED_DOMAIN, f"Invariant {inv.id} escaped bounded domain",
            ))
        if not all(math.isfinite(v) for v in (inv.energy, inv.strength, inv.stability)):
            issues.append(ConstraintViolation(
                FINITE_VALUES, f"Invariant {inv.id} has non-finite numeric values",
            ))

    budget = state.globals.budget
    if not math.isfinite(budget) or budget < 0:
        issues.append(ConstraintViolation(
            FINITE_BUDGET, "Global budget must be finite and non-negative",
        ))

    if state.globals.constitution_hash != expected_constitution_hash:
        issues.append(ConstraintViolation(
            CONSTITUTION_IMMUTABLE, "Constitution changed during runtime",
        ))

    return issues


def violation_reason(issues: list[ConstraintViolation]) -> str:
    """Comma-joined violation codes, as carried on the SUPPRESSED event."""
    return ",".join(issue.code for issue in issues)
