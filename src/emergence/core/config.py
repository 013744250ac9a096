"""
Master configuration for the field simulation.

World-level tunables live on ``FieldConfig``. Operator-specific constants
live in each operator's ``get_default_config()`` and are overridden per
operator through ``FieldConfig.operators``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class FieldConfig:
    """
    Master configuration for one simulation run.

    Use ``to_dict()`` / ``from_dict()`` for serialization and comparison.
    """

    # === Experiment identity ===
    experiment_name: str = "default"
    random_seed: int = 424242

    # === Time ===
    dt: float = 0.008

    # === Population ===
    max_invariants: int = 24  # Lattice cap on dynamic entities

    # === Economy ===
    global_budget: float = 0.3

    # === Domain ===
    # Viewport half-extents only size the bounded domain; nothing renders here.
    viewport_half_width: float = 1.0
    viewport_half_height: float = 1.0
    overflow_margin: float = 0.1

    # === Probes ===
    probe_count: int = 260

    # === Anchors ===
    extended_anchors: bool = False
    anchor_strength: float = 1.0

    # === Telemetry ===
    telemetry_interval: int = 10  # Snapshot every N ticks

    # === Operator overrides ===
    # Maps operator name -> dict of constant overrides.
    operators: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def domain_half_extents(self) -> tuple[float, float]:
        """Half-extents of the bounded domain (viewport plus overflow margin)."""
        return (
            self.viewport_half_width + self.overflow_margin,
            self.viewport_half_height + self.overflow_margin,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        d: dict[str, Any] = {}
        for k, v in self.__dict__.items():
            if k.startswith("_"):
                continue
            d[k] = v
        return d

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> FieldConfig:
        """Deserialize from a dict."""
        return cls(**{k: v for k, v in d.items() if not k.startswith("_")})

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    @classmethod
    def from_json(cls, s: str) -> FieldConfig:
        return cls.from_dict(json.loads(s))

    def configure_operator(self, name: str, **kwargs: Any) -> None:
        """Update constant overrides for a named operator."""
        if name not in self.operators:
            self.operators[name] = {}
        self.operators[name].update(kwargs)

    def diff(self, other: FieldConfig) -> dict[str, tuple[Any, Any]]:
        """Return parameters that differ between two configs."""
        diffs: dict[str, tuple[Any, Any]] = {}
        for k in self.to_dict():
            v1 = getattr(self, k)
            v2 = getattr(other, k)
            if v1 != v2:
                diffs[k] = (v1, v2)
        return diffs
