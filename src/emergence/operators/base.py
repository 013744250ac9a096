"""
Base class for pipeline operators.

An operator is a state transform applied once per tick. Operators mutate
the world state in place (or return a replacement) and report births,
deaths and suppressions only through the context's ``emit``. Constants come
from ``get_default_config()`` merged with ``FieldConfig.operators[name]``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from emergence.core.events import EventType, SimEvent

if TYPE_CHECKING:
    from emergence.core.config import FieldConfig
    from emergence.core.state import WorldState


@dataclass(frozen=True)
class OperatorParams:
    """Per-run parameters threaded through every operator."""
    preset_id: str
    max_invariants: int
    config: FieldConfig
    selection_pressure: bool = False


class OperatorContext:
    """Event sink handed to operators; the caller stamps the tick."""

    def __init__(self, sink: Callable[[SimEvent], None], tick: Callable[[], int]) -> None:
        self._sink = sink
        self._tick = tick

    def emit(
        self,
        event_type: EventType,
        invariant_id: str | None = None,
        related_ids: list[str] | None = None,
        reason: str | None = None,
    ) -> None:
        self._sink(SimEvent(
            type=event_type,
            tick=self._tick(),
            invariant_id=invariant_id,
            related_ids=list(related_ids or []),
            reason=reason,
        ))


class Operator(ABC):
    """
    Abstract base for one stage of the per-tick pipeline.

    ``apply`` may return a replacement state; returning ``None`` keeps the
    (mutated) input state.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this operator."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""

    def get_default_config(self) -> dict[str, Any]:
        """
        Return default constants for this operator.

        May include a ``"requires"`` key listing operator names that must
        appear earlier in the pipeline.
        """
        return {}

    def settings(self, config: FieldConfig) -> dict[str, Any]:
        """Defaults merged with the run's overrides for this operator."""
        merged = self.get_default_config()
        for k, v in config.operators.get(self.name, {}).items():
            if k != "requires":
                merged[k] = v
        return merged

    @property
    def requires(self) -> list[str]:
        return list(self.get_default_config().get("requires", []))

    @abstractmethod
    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> WorldState | None:
        """Advance ``state`` by one tick of this operator's concern."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


StepFn = Callable[["WorldState", OperatorParams, float, OperatorContext], "WorldState"]


def compose(operators: list[Operator]) -> StepFn:
    """Chain operators strictly in list order, threading the state through."""
    ops = list(operators)

    def step(state: WorldState, params: OperatorParams, dt: float, ctx: OperatorContext) -> WorldState:
        current = state
        for op in ops:
            result = op.apply(current, params, dt, ctx)
            if result is not None:
                current = result
        return current

    return step
