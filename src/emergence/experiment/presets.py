"""
Stage presets: ordered operator pipelines.

Each preset is an ordered operator list plus cosmetic flags that only a
renderer reads. Stages build on each other; ``full`` runs the complete
pipeline including physics, membrane, ceiling, distress and regulation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from emergence.operators import default_registry
from emergence.operators.base import Operator, StepFn, compose
from emergence.operators.registry import validate_pipeline


@dataclass
class StagePreset:
    id: str
    label: str
    description: str
    operators: list[Operator]
    color_mode: str = "energy"  # 'grayscale' | 'energy'
    show_probes: bool = True
    show_basins: bool = True
    _step: StepFn | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        validate_pipeline(self.operators)

    @property
    def operator_names(self) -> list[str]:
        return [op.name for op in self.operators]

    @property
    def selection_pressure(self) -> bool:
        return "selection_pressure" in self.operator_names

    @property
    def step(self) -> StepFn:
        """Lazily compose and cache the pipeline step function."""
        if self._step is None:
            self._step = compose(self.operators)
        return self._step


_CLOSURE = ["closure"]
_OSCILLATION = _CLOSURE + ["oscillation"]
_BASINS = _OSCILLATION + ["basin_detection"]
_ECOSYSTEM = _BASINS + [
    "promotion", "competitive_economics", "world_physics", "distress_lifecycle",
]
_SELECTION = _BASINS + [
    "promotion", "competitive_economics", "selection_pressure",
    "world_physics", "distress_lifecycle",
]
_FULL = _BASINS + [
    "promotion",
    "competitive_economics",
    "selection_pressure",
    "world_physics",
    "membrane",
    "cluster_ceiling",
    "distress_lifecycle",
    "budget_regulation",
]


def _build(names: list[str]) -> list[Operator]:
    return default_registry().build(names)


def closure() -> StagePreset:
    """Base closure law with fixed anchors."""
    return StagePreset(
        id="stage-1-closure",
        label="Stage 1 - Closure",
        description="Base closure law with fixed anchors.",
        operators=_build(_CLOSURE),
        color_mode="grayscale",
        show_probes=False,
        show_basins=False,
    )


def oscillation() -> StagePreset:
    return StagePreset(
        id="stage-2-oscillation",
        label="Stage 2 - Oscillation",
        description="Adds oscillating energy field.",
        operators=_build(_OSCILLATION),
        show_probes=False,
        show_basins=False,
    )


def basin_detection() -> StagePreset:
    return StagePreset(
        id="stage-3-basin-detection",
        label="Stage 3 - Basin Detection",
        description="Adds probes and basin detection over oscillation.",
        operators=_build(_BASINS),
    )


def promotion_ecosystem() -> StagePreset:
    return StagePreset(
        id="stage-4-promotion-ecosystem",
        label="Stage 4 - Promotion + Ecosystem",
        description="Promotes persistent basins and introduces local competition.",
        operators=_build(_ECOSYSTEM),
    )


def selection_pressure() -> StagePreset:
    return StagePreset(
        id="stage-5-selection-pressure",
        label="Stage 5 - Selection Pressure",
        description="Adds global budget selection on top of local ecosystem dynamics.",
        operators=_build(_SELECTION),
    )


def full() -> StagePreset:
    """Every operator: membrane, cluster ceiling and budget regulation included."""
    return StagePreset(
        id="full",
        label="Full Lattice",
        description="Complete pipeline with membrane cohesion and budget regulation.",
        operators=_build(_FULL),
    )


# Registry of all presets
PRESETS: dict[str, Callable[[], StagePreset]] = {
    "stage-1-closure": closure,
    "stage-2-oscillation": oscillation,
    "stage-3-basin-detection": basin_detection,
    "stage-4-promotion-ecosystem": promotion_ecosystem,
    "stage-5-selection-pressure": selection_pressure,
    "full": full,
}


def get_preset(name: str) -> StagePreset:
    """Get a preset by id."""
    if name not in PRESETS:
        raise KeyError(f"Unknown preset: '{name}'. Available: {list(PRESETS.keys())}")
    return PRESETS[name]()


def list_presets() -> list[str]:
    """Return list of available preset ids."""
    return list(PRESETS.keys())
