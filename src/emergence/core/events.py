"""
Tick-scoped simulation events.

Events are the only channel by which operators report births, deaths and
suppressions to the registry and validator. The list is cleared at the
start of every tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EventType(str, Enum):
    BIRTH = "BIRTH"
    DEATH = "DEATH"
    DISTRESS = "DISTRESS"
    RECOVERY = "RECOVERY"
    PROMOTION = "PROMOTION"
    STARVATION = "STARVATION"
    SUPPRESSED = "SUPPRESSED"
    MERGE = "MERGE"
    SPLIT = "SPLIT"


@dataclass
class SimEvent:
    type: EventType
    tick: int
    invariant_id: str | None = None
    related_ids: list[str] = field(default_factory=list)
    reason: str | None = None
