#!/usr/bin/env python3
"""Run the full field simulation and print a metrics table."""

from emergence.core.config import FieldConfig
from emergence.core.engine import SimulationEngine
from emergence.core.events import EventType


def main():
    config = FieldConfig(experiment_name="baseline", random_seed=424242)
    ticks = 600

    engine = SimulationEngine(config, "full")
    print(f"=== Emergence field: {config.experiment_name} ===")
    print(f"Preset: {engine.preset.label}")
    print(f"Operators: {', '.join(engine.preset.operator_names)}")
    print(f"Lattice cap: {config.max_invariants}  Budget: {config.global_budget}")
    print()

    print(f"{'Tick':>5} {'Live':>5} {'Energy':>8} {'Delta':>8} {'Entropy':>8} "
          f"{'Dom':>6} {'Align':>6} {'Basins':>6} {'Probes':>6}")
    print("-" * 68)

    promotions = deaths = 0
    for _ in range(ticks):
        m = engine.step()
        promotions += len(engine.events_of(EventType.PROMOTION))
        deaths += len(engine.events_of(EventType.DEATH))
        if m.tick % 50 == 0:
            print(
                f"{m.tick:5d} {m.living_invariants:5d} {m.total_energy:8.3f} "
                f"{m.conserved_delta:8.3f} {m.entropy_spread:8.3f} "
                f"{m.dominance_index:6.3f} {m.alignment_score:6.2f} "
                f"{m.basin_count:6d} {m.probe_count:6d}"
            )

    print()
    print(f"=== Final State (Tick {engine.tick}) ===")
    print(f"Promotions: {promotions}")
    print(f"Deaths: {deaths}")
    for key, value in engine.collector.summary().items():
        print(f"  {key:26s}: {value:.3f}")

    print("\nLongest-lived entities:")
    living = sorted(engine.state.registry.living(), key=lambda e: e.birth_tick)
    for entry in living[:5]:
        print(f"  {entry.id:12s} born {entry.birth_tick:4d}  "
              f"peak strength {entry.peak_strength:.3f}  wins {entry.territory_wins}")


if __name__ == "__main__":
    main()
