"""Per-tick pipeline operators."""

from emergence.operators.base import (
    Operator,
    OperatorContext,
    OperatorParams,
    StepFn,
    compose,
)
from emergence.operators.registry import OperatorRegistry, validate_pipeline
from emergence.operators.field import ClosureOperator, OscillationOperator
from emergence.operators.basins import BasinDetectionOperator
from emergence.operators.promotion import PromotionOperator
from emergence.operators.economics import (
    CompetitiveEconomicsOperator,
    SelectionPressureOperator,
)
from emergence.operators.physics import WorldPhysicsOperator
from emergence.operators.membrane import MembraneOperator
from emergence.operators.ceiling import ClusterCeilingOperator
from emergence.operators.lifecycle import DistressLifecycleOperator
from emergence.operators.regulator import BudgetRegulatorOperator


def default_registry() -> OperatorRegistry:
    """Registry holding every built-in operator, in canonical pipeline order."""
    registry = OperatorRegistry()
    for op in (
        ClosureOperator(),
        OscillationOperator(),
        BasinDetectionOperator(),
        PromotionOperator(),
        CompetitiveEconomicsOperator(),
        SelectionPressureOperator(),
        WorldPhysicsOperator(),
        MembraneOperator(),
        ClusterCeilingOperator(),
        DistressLifecycleOperator(),
        BudgetRegulatorOperator(),
    ):
        registry.register(op)
    return registry


__all__ = [
    "Operator",
    "OperatorContext",
    "OperatorParams",
    "StepFn",
    "compose",
    "OperatorRegistry",
    "validate_pipeline",
    "default_registry",
    "ClosureOperator",
    "OscillationOperator",
    "BasinDetectionOperator",
    "PromotionOperator",
    "CompetitiveEconomicsOperator",
    "SelectionPressureOperator",
    "WorldPhysicsOperator",
    "MembraneOperator",
    "ClusterCeilingOperator",
    "DistressLifecycleOperator",
    "BudgetRegulatorOperator",
]
