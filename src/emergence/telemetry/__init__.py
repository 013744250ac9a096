"""Read-only telemetry snapshots for presentation layers."""

from emergence.telemetry.schemas import (
    AnchorModel,
    MetricsModel,
    RegistryEntryModel,
    TelemetrySnapshot,
)
from emergence.telemetry.serializers import build_telemetry, serialize_registry_entry

__all__ = [
    "AnchorModel",
    "MetricsModel",
    "RegistryEntryModel",
    "TelemetrySnapshot",
    "build_telemetry",
    "serialize_registry_entry",
]
