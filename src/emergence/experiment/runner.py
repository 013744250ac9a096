"""
Experiment Runner: single runs, preset comparisons and multi-seed batches.

Also verifies the replay contract: the same seed, preset and dt sequence
reproduce an identical metrics trace.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from emergence.core.config import FieldConfig
from emergence.core.engine import SimulationEngine
from emergence.core.events import EventType
from emergence.metrics.collector import SimMetrics


@dataclass
class ExperimentResult:
    """Result of a single experiment run."""
    config: FieldConfig
    preset_id: str
    ticks: int
    metrics: list[SimMetrics]
    event_counts: dict[str, int]
    births: dict[str, int]  # id -> birth tick
    deaths: dict[str, int]  # id -> death tick
    final_population: int
    mean_alignment_score: float

    @property
    def promotions(self) -> int:
        return self.event_counts.get(EventType.PROMOTION.value, 0)

    def trace(self) -> list[dict[str, Any]]:
        return [m.to_dict() for m in self.metrics]


@dataclass
class ComparisonResult:
    """Result of running several presets against one config."""
    results: dict[str, ExperimentResult]
    summaries: dict[str, dict[str, float]] = field(default_factory=dict)


class ExperimentRunner:
    """
    Run, compare and replay field simulations.
    """

    def run_experiment(
        self,
        config: FieldConfig,
        preset: str = "full",
        ticks: int = 500,
    ) -> ExperimentResult:
        """Run one preset for ``ticks`` ticks and return results."""
        engine = SimulationEngine(config, preset)

        event_counts: dict[str, int] = {}
        for _ in range(ticks):
            engine.step()
            for event in engine.state.events:
                event_counts[event.type.value] = event_counts.get(event.type.value, 0) + 1

        metrics = engine.collector.metrics_history
        entries = engine.state.registry.entries()
        scores = [m.alignment_score for m in metrics]

        return ExperimentResult(
            config=config,
            preset_id=engine.preset.id,
            ticks=ticks,
            metrics=list(metrics),
            event_counts=event_counts,
            births={e.id: e.birth_tick for e in entries},
            deaths={e.id: e.death_tick for e in entries if e.death_tick is not None},
            final_population=len(engine.state.dynamics),
            mean_alignment_score=float(np.mean(scores)) if scores else 0.0,
        )

    def compare_presets(
        self,
        config: FieldConfig,
        presets: list[str],
        ticks: int = 500,
    ) -> ComparisonResult:
        """Run every preset from the same config and summarise each."""
        results: dict[str, ExperimentResult] = {}
        summaries: dict[str, dict[str, float]] = {}
        for name in presets:
            result = self.run_experiment(FieldConfig.from_dict(config.to_dict()), name, ticks)
            results[name] = result
            summaries[name] = {
                "final_population": float(result.final_population),
                "promotions": float(result.promotions),
                "deaths": float(len(result.deaths)),
                "mean_alignment_score": result.mean_alignment_score,
            }
        return ComparisonResult(results=results, summaries=summaries)

    def run_multi_seed(
        self,
        config: FieldConfig,
        seeds: list[int],
        preset: str = "full",
        ticks: int = 500,
    ) -> list[ExperimentResult]:
        """
        Run the same configuration with multiple random seeds.

        Useful for measuring variance in outcomes.
        """
        results: list[ExperimentResult] = []
        for seed in seeds:
            config_dict = config.to_dict()
            config_dict["random_seed"] = seed
            config_dict["experiment_name"] = f"{config.experiment_name}_seed{seed}"
            results.append(self.run_experiment(FieldConfig.from_dict(config_dict), preset, ticks))
        return results

    def verify_replay(
        self,
        config: FieldConfig,
        preset: str = "full",
        ticks: int = 200,
    ) -> bool:
        """Run twice from scratch and check the traces and life tables match."""
        first = self.run_experiment(FieldConfig.from_dict(config.to_dict()), preset, ticks)
        second = self.run_experiment(FieldConfig.from_dict(config.to_dict()), preset, ticks)
        return (
            first.trace() == second.trace()
            and first.births == second.births
            and first.deaths == second.deaths
        )
