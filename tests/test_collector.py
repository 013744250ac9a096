"""Tests for metric computation and the MetricsCollector."""

import numpy as np
import pytest

from emergence.core.entities import Basin, Invariant
from emergence.metrics.collector import (
    MetricsCollector,
    SimMetrics,
    compute_metrics,
    dominance_index,
    shannon_entropy,
)


def _add_dynamic(state, inv_id, energy, strength, **kwargs):
    inv = Invariant(
        id=inv_id, handle=state.registry.allocate(), dynamic=True,
        energy=energy, strength=strength, **kwargs,
    )
    state.dynamics.append(inv)
    return inv


class TestSummaryStatistics:
    def test_entropy_even_spread(self):
        assert shannon_entropy(np.ones(4)) == pytest.approx(1.0)

    def test_entropy_single_holder(self):
        assert shannon_entropy(np.array([1.0, 0.0, 0.0])) == pytest.approx(0.0)

    def test_entropy_empty(self):
        assert shannon_entropy(np.array([])) == 0.0

    def test_dominance_top_three(self):
        assert dominance_index(np.ones(4)) == pytest.approx(0.75)
        assert dominance_index(np.array([5.0, 1.0, 1.0, 1.0, 2.0])) == pytest.approx(0.8)

    def test_dominance_empty(self):
        assert dominance_index(np.zeros(3)) == 0.0


class TestComputeMetrics:
    def test_fresh_world(self, world):
        m = compute_metrics(world)
        assert m.living_invariants == 0
        assert m.total_energy == 0.0
        assert m.conserved_delta == pytest.approx(-0.3)
        assert m.probe_count == 260

    def test_anchors_are_not_counted(self, world):
        assert compute_metrics(world).living_invariants == 0
        assert len(world.anchors) == 2

    def test_population_detail(self, world):
        _add_dynamic(world, "a", 0.5, 0.5, distress_deadline=40, stability=0.2)
        _add_dynamic(world, "b", -0.2, 0.0, stability=0.0)
        world.basins = [Basin("basin-0-0", 0.1, 0.1, 10, frames=10)]
        m = compute_metrics(world)
        assert m.living_invariants == 2
        assert m.total_energy == pytest.approx(0.5)
        assert m.distressed_count == 1
        assert m.mean_stability == pytest.approx(0.1)
        assert m.basin_occupancy_stability == pytest.approx(0.5)
        assert 0.0 <= m.alignment_score <= 1.0


class TestMetricsCollector:
    def test_collect_copies(self, world):
        collector = MetricsCollector()
        world.metrics = SimMetrics(tick=1, total_energy=0.4)
        collected = collector.collect(world)
        world.metrics.total_energy = 9.0
        assert collected.total_energy == 0.4

    def test_time_series(self, world):
        collector = MetricsCollector()
        for tick in range(3):
            world.metrics = SimMetrics(tick=tick, living_invariants=tick)
            collector.collect(world)
        assert collector.get_time_series("living_invariants") == [0, 1, 2]

    def test_export(self, world):
        collector = MetricsCollector()
        collector.collect(world)
        exported = collector.export_for_visualization()
        assert isinstance(exported[0], dict)
        assert "dominance_index" in exported[0]

    def test_summary(self, world):
        collector = MetricsCollector()
        assert collector.summary() == {}
        for tick in range(4):
            world.metrics = SimMetrics(tick=tick, living_invariants=tick, conserved_delta=-0.2)
            collector.collect(world)
        summary = collector.summary()
        assert summary["peak_population"] == 3.0
        assert summary["mean_abs_conserved_delta"] == pytest.approx(0.2)
