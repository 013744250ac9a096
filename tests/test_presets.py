"""Tests for stage presets and pipeline composition."""

import pytest

from emergence.core.config import FieldConfig
from emergence.core.state import create_world_state
from emergence.experiment.presets import (
    PRESETS,
    StagePreset,
    get_preset,
    list_presets,
)
from emergence.operators import (
    ClosureOperator,
    OperatorContext,
    OperatorParams,
    OperatorRegistry,
    OscillationOperator,
    PromotionOperator,
    compose,
    default_registry,
)
from emergence.operators.base import Operator


class _Recorder(Operator):
    """Operator that appends its label to a shared log."""

    def __init__(self, label: str, log: list[str]) -> None:
        self._label = label
        self._log = log

    @property
    def name(self) -> str:
        return self._label

    @property
    def description(self) -> str:
        return "records calls"

    def apply(self, state, params, dt, ctx):
        self._log.append(self._label)


class TestPresetRegistry:
    def test_all_presets_listed(self):
        assert list_presets() == [
            "stage-1-closure",
            "stage-2-oscillation",
            "stage-3-basin-detection",
            "stage-4-promotion-ecosystem",
            "stage-5-selection-pressure",
            "full",
        ]

    def test_get_preset(self):
        preset = get_preset("stage-1-closure")
        assert preset.operator_names == ["closure"]
        assert preset.color_mode == "grayscale"
        assert not preset.show_probes

    def test_unknown_preset(self):
        with pytest.raises(KeyError, match="Unknown preset"):
            get_preset("stage-9")

    def test_every_preset_builds(self):
        for name, factory in PRESETS.items():
            assert factory().id == name

    def test_full_pipeline_order(self):
        assert get_preset("full").operator_names == [
            "closure",
            "oscillation",
            "basin_detection",
            "promotion",
            "competitive_economics",
            "selection_pressure",
            "world_physics",
            "membrane",
            "cluster_ceiling",
            "distress_lifecycle",
            "budget_regulation",
        ]

    def test_selection_pressure_flag(self):
        assert not get_preset("stage-4-promotion-ecosystem").selection_pressure
        assert get_preset("stage-5-selection-pressure").selection_pressure
        assert get_preset("full").selection_pressure


class TestPresetValidation:
    def test_empty_pipeline_rejected(self):
        with pytest.raises(ValueError, match="at least one operator"):
            StagePreset(id="x", label="x", description="x", operators=[])

    def test_unmet_requires_rejected(self):
        with pytest.raises(ValueError, match="requires 'basin_detection'"):
            StagePreset(
                id="x", label="x", description="x",
                operators=[ClosureOperator(), PromotionOperator()],
            )

    def test_requires_must_come_earlier(self):
        with pytest.raises(ValueError):
            StagePreset(
                id="x", label="x", description="x",
                operators=[OscillationOperator(), ClosureOperator()],
            )


class TestOperatorRegistry:
    def test_default_registry_names(self):
        assert len(default_registry().registered_names) == 11

    def test_duplicate_rejected(self):
        reg = OperatorRegistry()
        reg.register(ClosureOperator())
        with pytest.raises(ValueError):
            reg.register(ClosureOperator())

    def test_unknown_operator(self):
        with pytest.raises(KeyError):
            OperatorRegistry().get("closure")


class TestCompose:
    def test_strict_order(self):
        log: list[str] = []
        step = compose([_Recorder("a", log), _Recorder("b", log), _Recorder("c", log)])
        state = create_world_state(FieldConfig(probe_count=0))
        params = OperatorParams(preset_id="t", max_invariants=24, config=state.config)
        ctx = OperatorContext(lambda e: None, lambda: 0)

        result = step(state, params, 0.008, ctx)
        assert log == ["a", "b", "c"]
        assert result is state

    def test_step_is_cached(self):
        preset = get_preset("stage-2-oscillation")
        assert preset.step is preset.step
