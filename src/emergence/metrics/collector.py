"""
Metrics Collector: per-tick observable summary of world state.

``compute_metrics`` derives the scalar summary the alignment evaluator and
the telemetry layer read. ``MetricsCollector`` keeps the trace across ticks
and provides time series extraction and export.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.core.alignment import evaluate_alignment

if TYPE_CHECKING:
    from emergence.core.state import WorldState

DOMINANCE_TOP_K = 3
BASIN_STABLE_FRAMES = 20


@dataclass
class SimMetrics:
    """Scalar summary for a single tick."""

    tick: int = 0
    total_energy: float = 0.0
    budget: float = 0.0
    conserved_delta: float = 0.0
    living_invariants: int = 0
    entropy_spread: float = 0.0
    dominance_index: float = 0.0
    basin_occupancy_stability: float = 0.0
    alignment_score: float = 0.0

    # Population detail
    distressed_count: int = 0
    mean_stability: float = 0.0
    probe_count: int = 0
    basin_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def shannon_entropy(weights: np.ndarray) -> float:
    """Entropy of the weight distribution, normalised by log2(max(2, n))."""
    weights = np.asarray(weights, dtype=np.float64)
    total = weights.sum()
    if total <= 0:
        return 0.0
    probs = weights[weights > 0] / total
    entropy = float(-np.sum(probs * np.log2(probs)))
    return entropy / float(np.log2(max(2, len(weights))))


def dominance_index(strengths: np.ndarray, top_k: int = DOMINANCE_TOP_K) -> float:
    """Share of total strength held by the strongest ``top_k`` entities."""
    strengths = np.asarray(strengths, dtype=np.float64)
    total = strengths.sum()
    if total <= 0:
        return 0.0
    top = np.sort(strengths)[::-1][:top_k]
    return float(top.sum() / total)


def compute_metrics(state: WorldState) -> SimMetrics:
    """Compute the metric summary and score it with the alignment evaluator."""
    dynamics = state.dynamics
    energies = np.array([max(0.0, inv.energy) for inv in dynamics], dtype=np.float64)
    strengths = np.array([max(0.0, inv.strength) for inv in dynamics], dtype=np.float64)

    total_energy = float(energies.sum())
    budget = state.globals.budget

    basin_stability = 0.0
    if state.basins:
        basin_stability = float(np.mean([
            min(1.0, basin.frames / BASIN_STABLE_FRAMES) for basin in state.basins
        ]))

    metrics = SimMetrics(
        tick=state.globals.tick,
        total_energy=total_energy,
        budget=budget,
        conserved_delta=total_energy - budget,
        living_invariants=len(dynamics),
        entropy_spread=shannon_entropy(strengths),
        dominance_index=dominance_index(strengths),
        basin_occupancy_stability=basin_stability,
        distressed_count=sum(1 for inv in dynamics if inv.in_distress),
        mean_stability=float(np.mean([inv.stability for inv in dynamics])) if dynamics else 0.0,
        probe_count=len(state.probes),
        basin_count=len(state.basins),
    )
    metrics.alignment_score = evaluate_alignment(metrics).score
    return metrics


class MetricsCollector:
    """
    Collects metrics across ticks.

    Works alongside the simulation engine; the engine computes metrics every
    tick and the collector keeps the trace for analysis and replay checks.
    """

    def __init__(self) -> None:
        self.metrics_history: list[SimMetrics] = []

    def collect(self, state: WorldState) -> SimMetrics:
        """Record the state's current metrics (a copy) and return it."""
        metrics = SimMetrics(**state.metrics.to_dict())
        self.metrics_history.append(metrics)
        return metrics

    def get_time_series(self, field_name: str) -> list[Any]:
        """Extract a time series for a specific metric field."""
        return [getattr(m, field_name) for m in self.metrics_history]

    def export_for_visualization(self) -> list[dict[str, Any]]:
        """Export all metrics as a list of JSON-serializable dicts."""
        return [m.to_dict() for m in self.metrics_history]

    def summary(self) -> dict[str, float]:
        """Aggregate statistics over the collected trace."""
        if not self.metrics_history:
            return {}
        living = self.get_time_series("living_invariants")
        deltas = np.abs(self.get_time_series("conserved_delta"))
        return {
            "ticks": float(len(self.metrics_history)),
            "peak_population": float(max(living)),
            "mean_population": float(np.mean(living)),
            "mean_abs_conserved_delta": float(np.mean(deltas)),
            "mean_alignment_score": float(np.mean(self.get_time_series("alignment_score"))),
        }
