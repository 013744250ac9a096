"""
Pydantic models for the telemetry snapshot handed to presentation layers.

All models are frozen; a snapshot is built from fresh Python values so a
consumer never observes a half-updated tick.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class MetricsModel(_Frozen):
    tick: int
    total_energy: float
    budget: float
    conserved_delta: float
    living_invariants: int
    entropy_spread: float
    dominance_index: float
    basin_occupancy_stability: float
    alignment_score: float
    distressed_count: int = 0
    mean_stability: float = 0.0
    probe_count: int = 0
    basin_count: int = 0


class RegistryEntryModel(_Frozen):
    id: str
    handle: int
    birth_tick: int
    death_tick: int | None = None
    lineage_parent_ids: tuple[str, ...] = ()
    energy_history: tuple[float, ...] = ()
    position_history: tuple[tuple[float, float], ...] = ()
    peak_strength: float = 0.0
    kills: int = 0
    territory_wins: int = 0


class AnchorModel(_Frozen):
    id: str
    position: tuple[float, float]


class TelemetrySnapshot(_Frozen):
    tick: int
    preset_id: str
    metrics: MetricsModel
    registry_entries: tuple[RegistryEntryModel, ...] = Field(default_factory=tuple)
    event_count: int = 0
    anchors: tuple[AnchorModel, ...] = Field(default_factory=tuple)
