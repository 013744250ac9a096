"""
Serializers converting live simulation objects into telemetry models.

Handles numpy scalars/arrays and bounded history deques.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from emergence.telemetry.schemas import (
    AnchorModel,
    MetricsModel,
    RegistryEntryModel,
    TelemetrySnapshot,
)

if TYPE_CHECKING:
    from emergence.core.registry import RegistryEntry
    from emergence.core.state import WorldState


def serialize_registry_entry(entry: RegistryEntry) -> RegistryEntryModel:
    return RegistryEntryModel(
        id=entry.id,
        handle=entry.handle,
        birth_tick=entry.birth_tick,
        death_tick=entry.death_tick,
        lineage_parent_ids=tuple(entry.lineage_parent_ids),
        energy_history=tuple(float(e) for e in entry.energy_history),
        position_history=tuple((float(x), float(y)) for x, y in entry.position_history),
        peak_strength=float(entry.peak_strength),
        kills=entry.kills,
        territory_wins=entry.territory_wins,
    )


def build_telemetry(state: WorldState, preset_id: str) -> TelemetrySnapshot:
    """Deep, immutable snapshot of the observable state after a tick."""
    return TelemetrySnapshot(
        tick=state.globals.tick,
        preset_id=preset_id,
        metrics=MetricsModel(**state.metrics.to_dict()),
        registry_entries=tuple(serialize_registry_entry(e) for e in state.registry.entries()),
        event_count=len(state.events),
        anchors=tuple(
            AnchorModel(id=a.id, position=(float(a.position[0]), float(a.position[1])))
            for a in state.anchors
        ),
    )
