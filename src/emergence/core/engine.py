"""
Main simulation engine.

``step_simulation`` advances the world by exactly one tick:

1. Clear the event buffer, advance tick and time
2. Run the preset's operator pipeline in order
3. Re-partition anchors and dynamic entities
4. Sample every living entity into the registry
5. Fold the tick's events into the registry
6. Recompute metrics and the alignment control
7. Validate constraints; violations become one SUPPRESSED event

``SimulationEngine`` wraps a world state with a preset, the telemetry
cadence and the single accepted external write (entity repositioning).
"""

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np

from emergence.core.alignment import derive_alignment_control, evaluate_alignment
from emergence.core.config import FieldConfig
from emergence.core.events import EventType, SimEvent
from emergence.core.state import CONSTITUTION_HASH, WorldState, create_world_state
from emergence.core.validator import validate_state, violation_reason
from emergence.experiment.presets import StagePreset, get_preset
from emergence.metrics.collector import MetricsCollector, SimMetrics, compute_metrics
from emergence.operators.base import OperatorContext, OperatorParams
from emergence.telemetry import TelemetrySnapshot, build_telemetry

logger = logging.getLogger(__name__)


def step_simulation(state: WorldState, preset: StagePreset, dt: float) -> WorldState:
    """Advance ``state`` by one tick of ``preset``. Never raises on world values."""
    events: list[SimEvent] = []
    state.events = events
    state.globals.tick += 1
    state.globals.time += dt
    tick = state.globals.tick

    params = OperatorParams(
        preset_id=preset.id,
        max_invariants=state.config.max_invariants,
        config=state.config,
        selection_pressure=preset.selection_pressure,
    )
    ctx = OperatorContext(events.append, lambda: tick)

    state = preset.step(state, params, dt, ctx)
    state.events = events

    state.partition()
    for inv in state.invariants:
        state.registry.sample(inv)
    state.registry.apply_events(events, state.invariant_map())

    state.metrics = compute_metrics(state)
    state.alignment = derive_alignment_control(evaluate_alignment(state.metrics))

    violations = validate_state(state, CONSTITUTION_HASH)
    if violations:
        reason = violation_reason(violations)
        logger.warning("Constraint violations at tick %d: %s", tick, reason)
        events.append(SimEvent(type=EventType.SUPPRESSED, tick=tick, reason=reason))

    return state


class SimulationEngine:
    """
    Owns one world state and steps it with a preset.

    A telemetry snapshot is built every ``config.telemetry_interval`` ticks,
    stored as ``last_telemetry`` and passed to every subscriber.
    """

    def __init__(
        self,
        config: FieldConfig | None = None,
        preset: StagePreset | str = "full",
    ):
        self.config = config or FieldConfig()
        self.preset = get_preset(preset) if isinstance(preset, str) else preset
        self.state = create_world_state(self.config)
        self.collector = MetricsCollector()
        self.last_telemetry: TelemetrySnapshot | None = None
        self._subscribers: list[Callable[[TelemetrySnapshot], None]] = []

    @property
    def tick(self) -> int:
        return self.state.globals.tick

    def step(self, dt: float | None = None) -> SimMetrics:
        """Run one tick and return its metrics."""
        self.state = step_simulation(
            self.state, self.preset, self.config.dt if dt is None else dt,
        )
        metrics = self.collector.collect(self.state)

        interval = max(1, self.config.telemetry_interval)
        if self.state.globals.tick % interval == 0:
            self.last_telemetry = self.telemetry()
            for callback in self._subscribers:
                callback(self.last_telemetry)
        return metrics

    def run(self, ticks: int, dt: float | None = None) -> list[SimMetrics]:
        """Run ``ticks`` ticks and return their metrics trace."""
        return [self.step(dt) for _ in range(ticks)]

    def reset(self, seed: int | None = None) -> None:
        """Rebuild tick-0 state, optionally with a new seed on a copied config."""
        if seed is not None:
            config_dict = self.config.to_dict()
            config_dict["random_seed"] = seed
            self.config = FieldConfig.from_dict(config_dict)
        self.state = create_world_state(self.config)
        self.collector = MetricsCollector()
        self.last_telemetry = None

    def set_preset(self, preset: StagePreset | str) -> None:
        self.preset = get_preset(preset) if isinstance(preset, str) else preset

    def subscribe(self, callback: Callable[[TelemetrySnapshot], None]) -> None:
        self._subscribers.append(callback)

    def telemetry(self) -> TelemetrySnapshot:
        """Immutable snapshot of the current tick."""
        return build_telemetry(self.state, self.preset.id)

    def events_of(self, event_type: EventType) -> list[SimEvent]:
        return [e for e in self.state.events if e.type == event_type]

    # ------------------------------------------------------------------
    # External writes
    # ------------------------------------------------------------------
    def move_invariant(
        self,
        invariant_id: str,
        position: tuple[float, float],
        velocity: tuple[float, float] | None = None,
    ) -> None:
        """
        Overwrite a dynamic entity's position (and optionally velocity).

        This is the one external write the core accepts, made between ticks.
        Anchors cannot be moved.
        """
        inv = next((d for d in self.state.dynamics if d.id == invariant_id), None)
        if inv is None:
            raise KeyError(f"No living dynamic entity '{invariant_id}'")

        new_position = np.array(position, dtype=np.float64)
        if new_position.shape != (2,) or not all(math.isfinite(v) for v in new_position):
            raise ValueError(f"Invalid position for '{invariant_id}': {position!r}")
        inv.position = new_position

        if velocity is not None:
            new_velocity = np.array(velocity, dtype=np.float64)
            if new_velocity.shape != (2,) or not all(math.isfinite(v) for v in new_velocity):
                raise ValueError(f"Invalid velocity for '{invariant_id}': {velocity!r}")
            inv.velocity = new_velocity
