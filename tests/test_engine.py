"""
Tests for the stepping loop and SimulationEngine.

Covers the tick bookkeeping, external position writes, and the end-to-end
properties: determinism, finiteness, lifecycle consistency and the
reference scenarios.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from emergence.core.config import FieldConfig
from emergence.core.engine import SimulationEngine, step_simulation
from emergence.core.entities import Invariant, saturating_strength
from emergence.core.events import EventType
from emergence.core.state import create_world_state
from emergence.experiment.presets import StagePreset, get_preset
from emergence.operators import default_registry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_config(**kwargs) -> FieldConfig:
    defaults = dict(random_seed=424242)
    defaults.update(kwargs)
    return FieldConfig(**defaults)


def _custom_preset(names: list[str]) -> StagePreset:
    return StagePreset(
        id="custom", label="Custom", description="test pipeline",
        operators=default_registry().build(names),
    )


def _add_dynamic(state, inv_id: str, position=(0.0, 0.0), energy: float = 0.2) -> Invariant:
    inv = Invariant(
        id=inv_id, handle=state.registry.allocate(), dynamic=True,
        position=np.array(position, dtype=np.float64), energy=energy,
    )
    state.dynamics.append(inv)
    state.registry.register_birth(inv, state.globals.tick)
    return inv


class TestStepSimulation:
    def test_tick_and_time_advance(self):
        state = create_world_state(_make_config())
        state = step_simulation(state, get_preset("stage-1-closure"), 0.008)
        state = step_simulation(state, get_preset("stage-1-closure"), 0.008)
        assert state.globals.tick == 2
        assert state.globals.time == pytest.approx(0.016)

    def test_events_cleared_each_tick(self):
        state = create_world_state(_make_config(probe_count=0))
        _add_dynamic(state, "a", (0.0, 0.0), energy=5.0)
        _add_dynamic(state, "b", (0.1, 0.0), energy=1.0)
        preset = _custom_preset(["closure", "competitive_economics"])
        state = step_simulation(state, preset, 0.008)
        assert len(state.events) == 1
        state.dynamics[1].position = np.array([0.9, 0.9])
        state = step_simulation(state, preset, 0.008)
        assert state.events == []

    def test_events_stamped_with_tick(self):
        state = create_world_state(_make_config(probe_count=0))
        _add_dynamic(state, "a", (0.0, 0.0), energy=5.0)
        _add_dynamic(state, "b", (0.1, 0.0), energy=1.0)
        state = step_simulation(state, _custom_preset(["closure", "competitive_economics"]), 0.008)
        assert all(e.tick == 1 for e in state.events)

    def test_registry_sampled_every_tick(self):
        state = create_world_state(_make_config())
        preset = get_preset("stage-1-closure")
        for _ in range(5):
            state = step_simulation(state, preset, 0.008)
        # Birth sample plus one per tick.
        assert len(state.registry.get("B").energy_history) == 6

    def test_alignment_control_refreshed(self):
        state = create_world_state(_make_config(probe_count=0))
        _add_dynamic(state, "a", (0.5, 0.5), energy=3.0)
        state = step_simulation(state, get_preset("stage-1-closure"), 0.008)
        # Conserved delta 2.7 is critical.
        assert state.alignment.budget_gain_scale == pytest.approx(1.65)

    def test_violation_becomes_suppressed_event(self, caplog):
        state = create_world_state(_make_config(probe_count=0))
        state.globals.constitution_hash = "tampered"
        with caplog.at_level("WARNING", logger="emergence.core.engine"):
            state = step_simulation(state, get_preset("stage-1-closure"), 0.008)
        suppressed = [e for e in state.events if e.type == EventType.SUPPRESSED]
        assert len(suppressed) == 1
        assert suppressed[0].reason == "CONSTITUTION_IMMUTABLE"
        assert suppressed[0].related_ids == []
        assert "CONSTITUTION_IMMUTABLE" in caplog.text

    def test_violation_does_not_block_next_tick(self):
        state = create_world_state(_make_config(probe_count=0))
        state.globals.budget = float("nan")
        preset = get_preset("stage-1-closure")
        state = step_simulation(state, preset, 0.008)
        state = step_simulation(state, preset, 0.008)
        assert state.globals.tick == 2


class TestSimulationEngine:
    def test_defaults_to_full_preset(self):
        engine = SimulationEngine()
        assert engine.preset.id == "full"
        assert engine.tick == 0

    def test_run_returns_metrics_trace(self):
        engine = SimulationEngine(_make_config(), "stage-3-basin-detection")
        trace = engine.run(5)
        assert [m.tick for m in trace] == [1, 2, 3, 4, 5]
        assert len(engine.collector.metrics_history) == 5

    def test_telemetry_cadence(self):
        engine = SimulationEngine(_make_config(telemetry_interval=5), "stage-1-closure")
        received = []
        engine.subscribe(received.append)
        engine.run(12)
        assert [s.tick for s in received] == [5, 10]
        assert engine.last_telemetry.tick == 10

    def test_reset(self):
        engine = SimulationEngine(_make_config(), "stage-1-closure")
        engine.run(3)
        engine.reset(seed=7)
        assert engine.tick == 0
        assert engine.state.globals.seed == 7
        assert engine.collector.metrics_history == []

    def test_reset_leaves_caller_config_alone(self):
        config = _make_config()
        engine = SimulationEngine(config, "stage-1-closure")
        engine.reset(seed=7)
        assert config.random_seed == 424242
        assert engine.config.random_seed == 7
        assert engine.config is not config

    def test_set_preset(self):
        engine = SimulationEngine(_make_config(), "stage-1-closure")
        engine.set_preset("stage-2-oscillation")
        engine.step()
        assert engine.state.globals.energy_enabled is True


class TestMoveInvariant:
    def _engine(self) -> SimulationEngine:
        engine = SimulationEngine(_make_config(probe_count=0), "stage-1-closure")
        _add_dynamic(engine.state, "dyn-0-2", (0.1, 0.1))
        return engine

    def test_move_position_and_velocity(self):
        engine = self._engine()
        engine.move_invariant("dyn-0-2", (0.4, -0.2), velocity=(0.1, 0.0))
        inv = engine.state.find("dyn-0-2")
        np.testing.assert_array_equal(inv.position, [0.4, -0.2])
        np.testing.assert_array_equal(inv.velocity, [0.1, 0.0])

    def test_unknown_id(self):
        with pytest.raises(KeyError):
            self._engine().move_invariant("nobody", (0.0, 0.0))

    def test_anchor_cannot_move(self):
        with pytest.raises(KeyError):
            self._engine().move_invariant("B", (0.0, 0.0))

    def test_non_finite_rejected(self):
        engine = self._engine()
        with pytest.raises(ValueError):
            engine.move_invariant("dyn-0-2", (float("nan"), 0.0))
        np.testing.assert_array_equal(engine.state.find("dyn-0-2").position, [0.1, 0.1])

    def test_moves_are_replayable(self):
        traces = []
        for _ in range(2):
            engine = SimulationEngine(_make_config(), "full")
            engine.run(40)
            if engine.state.dynamics:
                engine.move_invariant(engine.state.dynamics[0].id, (0.2, 0.2))
            engine.run(20)
            traces.append([m.to_dict() for m in engine.collector.metrics_history])
        assert traces[0] == traces[1]


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

class TestDeterminism:
    def test_identical_runs(self):
        a = SimulationEngine(_make_config(), "full")
        b = SimulationEngine(_make_config(), "full")
        a.run(150)
        b.run(150)
        assert a.collector.export_for_visualization() == b.collector.export_for_visualization()
        assert (
            {e.id: (e.birth_tick, e.death_tick) for e in a.state.registry.entries()}
            == {e.id: (e.birth_tick, e.death_tick) for e in b.state.registry.entries()}
        )

    def test_seed_changes_outcome(self):
        a = SimulationEngine(_make_config(random_seed=1), "stage-3-basin-detection")
        b = SimulationEngine(_make_config(random_seed=2), "stage-3-basin-detection")
        a.run(5)
        b.run(5)
        pa = np.array([p.position for p in a.state.probes])
        pb = np.array([p.position for p in b.state.probes])
        assert not np.array_equal(pa, pb)


class TestFiniteness:
    def test_values_stay_finite(self):
        engine = SimulationEngine(_make_config(), "full")
        for _ in range(300):
            engine.step()
            for inv in engine.state.invariants:
                assert math.isfinite(inv.energy)
                assert math.isfinite(inv.strength)
                assert 0.0 <= inv.stability <= 1.0
                assert np.all(np.isfinite(inv.position))


class TestSaturatingGrowth:
    def test_monotone_and_bounded(self):
        energies = np.linspace(0.0, 1e6, 2000)
        strengths = [saturating_strength(e, 1.5) for e in energies]
        assert all(b > a for a, b in zip(strengths, strengths[1:]))
        assert all(s < 1.5 for s in strengths)
        assert strengths[-1] == pytest.approx(1.5, rel=1e-5)

    def test_negative_energy_clamped(self):
        assert saturating_strength(-3.0, 1.5) == 0.0


class TestLifecycleConsistency:
    def test_starved_entity_sealed_with_death_event(self):
        state = create_world_state(_make_config(probe_count=0))
        inv = _add_dynamic(state, "dyn-0-2", (0.3, 0.3), energy=-0.5)
        preset = _custom_preset(["closure", "distress_lifecycle"])

        death_events = {}
        for _ in range(70):
            state = step_simulation(state, preset, 0.008)
            for e in state.events:
                if e.type == EventType.DEATH:
                    death_events[e.invariant_id] = e.tick

        entry = state.registry.get(inv.id)
        assert entry.death_tick == 61
        assert entry.birth_tick < entry.death_tick
        assert death_events == {inv.id: 61}
        assert state.dynamics == []

    def test_full_run_deaths_have_events(self):
        engine = SimulationEngine(_make_config(), "full")
        death_ticks = {}
        for _ in range(400):
            engine.step()
            for e in engine.events_of(EventType.DEATH):
                death_ticks[e.invariant_id] = e.tick
        for entry in engine.state.registry.entries():
            if entry.death_tick is not None:
                assert entry.birth_tick < entry.death_tick
                assert death_ticks[entry.id] == entry.death_tick


class TestBoundedness:
    def test_no_domain_violations(self):
        engine = SimulationEngine(_make_config(), "full")
        for _ in range(300):
            engine.step()
            reasons = [e.reason or "" for e in engine.events_of(EventType.SUPPRESSED)]
            assert not any("BOUNDED_DOMAIN" in r for r in reasons)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_closure_only(self):
        engine = SimulationEngine(_make_config(), "stage-1-closure")
        metrics = engine.step()
        assert [a.id for a in engine.state.anchors] == ["B", "Ci"]
        np.testing.assert_array_equal(engine.state.anchors[0].position, [-0.5, 0.0])
        np.testing.assert_array_equal(engine.state.anchors[1].position, [0.5, 0.0])
        assert engine.state.dynamics == []
        assert metrics.living_invariants == 0

    def test_full_preset_promotes_within_cap(self):
        engine = SimulationEngine(_make_config(), "full")
        promotions = 0
        for _ in range(500):
            engine.step()
            promotions += len(engine.events_of(EventType.PROMOTION))
            assert len(engine.state.dynamics) <= engine.config.max_invariants
        assert promotions >= 1

    def test_local_competition(self):
        state = create_world_state(_make_config(probe_count=0))
        strong = _add_dynamic(state, "dyn-0-2", (0.0, 0.3), energy=5.0)
        weak = _add_dynamic(state, "dyn-0-3", (0.1, 0.3), energy=1.0)
        preset = _custom_preset(["closure", "competitive_economics"])
        state = step_simulation(state, preset, 0.008)

        assert weak.energy < 1.0
        suppressed = [e for e in state.events if e.type == EventType.SUPPRESSED]
        assert any(e.invariant_id == weak.id and strong.id in e.related_ids for e in suppressed)
        assert state.registry.get(strong.id).kills == 1
