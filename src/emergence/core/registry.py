"""
Invariant registry: the append-only life ledger.

Entries live in an arena addressed by integer handle; the string id is a
label with a lookup index. The registry owns all history, the live entity
owns its current kinematic state. An entry is sealed when its death tick is
set and is never mutated again.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from emergence.core.events import EventType

if TYPE_CHECKING:
    from emergence.core.entities import Invariant
    from emergence.core.events import SimEvent

HISTORY_LIMIT = 1200


@dataclass
class RegistryEntry:
    id: str
    handle: int
    birth_tick: int
    death_tick: int | None = None
    lineage_parent_ids: list[str] = field(default_factory=list)
    energy_history: deque = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))
    position_history: deque = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))
    peak_strength: float = 0.0
    kills: int = 0
    territory_wins: int = 0

    @property
    def sealed(self) -> bool:
        return self.death_tick is not None


class InvariantRegistry:
    """Arena of ``RegistryEntry`` records with a string-id index."""

    def __init__(self) -> None:
        self._entries: list[RegistryEntry | None] = []
        self._index: dict[str, int] = {}

    def allocate(self) -> int:
        """Reserve the next handle; the entry is filled on birth."""
        self._entries.append(None)
        return len(self._entries) - 1

    def register_birth(
        self, inv: Invariant, tick: int, lineage_parent_ids: list[str] | None = None,
    ) -> RegistryEntry:
        """Create the entry for ``inv``. Repeated births are ignored."""
        existing = self.get(inv.id)
        if existing is not None:
            return existing

        while inv.handle >= len(self._entries):
            self._entries.append(None)

        entry = RegistryEntry(
            id=inv.id,
            handle=inv.handle,
            birth_tick=tick,
            lineage_parent_ids=list(lineage_parent_ids or []),
            peak_strength=inv.strength,
        )
        entry.energy_history.append(inv.energy)
        entry.position_history.append((float(inv.position[0]), float(inv.position[1])))
        self._entries[inv.handle] = entry
        self._index[inv.id] = inv.handle
        return entry

    def register_death(self, invariant_id: str, tick: int) -> None:
        """Seal an entry. Only the first death is recorded."""
        entry = self.get(invariant_id)
        if entry is None or entry.sealed:
            return
        entry.death_tick = tick

    def sample(self, inv: Invariant) -> None:
        """Append the current energy/position of a living entity."""
        entry = self.by_handle(inv.handle)
        if entry is None or entry.sealed:
            return
        entry.energy_history.append(inv.energy)
        entry.position_history.append((float(inv.position[0]), float(inv.position[1])))
        entry.peak_strength = max(entry.peak_strength, inv.strength)

    def register_win(self, winner_id: str) -> None:
        entry = self.get(winner_id)
        if entry is None or entry.sealed:
            return
        entry.kills += 1
        entry.territory_wins += 1

    def apply_events(self, events: list[SimEvent], invariants: dict[str, Invariant]) -> None:
        """Fold one tick's events into the ledger."""
        for evt in events:
            if evt.type in (EventType.BIRTH, EventType.PROMOTION):
                inv = invariants.get(evt.invariant_id or "")
                if inv is None:
                    continue
                self.register_birth(inv, evt.tick, evt.related_ids)
            elif evt.type in (EventType.DEATH, EventType.STARVATION):
                if evt.invariant_id:
                    self.register_death(evt.invariant_id, evt.tick)
            elif evt.type == EventType.SUPPRESSED:
                if evt.related_ids:
                    self.register_win(evt.related_ids[0])

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def get(self, invariant_id: str) -> RegistryEntry | None:
        handle = self._index.get(invariant_id)
        return None if handle is None else self._entries[handle]

    def by_handle(self, handle: int) -> RegistryEntry | None:
        if 0 <= handle < len(self._entries):
            return self._entries[handle]
        return None

    def entries(self) -> list[RegistryEntry]:
        """All entries in handle (birth) order."""
        return [e for e in self._entries if e is not None]

    def living(self) -> Iterator[RegistryEntry]:
        return (e for e in self._entries if e is not None and not e.sealed)

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, invariant_id: str) -> bool:
        return invariant_id in self._index
