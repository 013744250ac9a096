"""
Operator registry with dependency checking.

Holds the available operators by name and validates an ordered pipeline:
every operator's ``requires`` must appear earlier in the list.
"""

from __future__ import annotations

from emergence.operators.base import Operator


class OperatorRegistry:
    """
    Manages the catalogue of pipeline operators.

    Usage::

        registry = OperatorRegistry()
        registry.register(ClosureOperator())
        registry.register(OscillationOperator())
        pipeline = registry.build(["closure", "oscillation"])
    """

    def __init__(self) -> None:
        self._operators: dict[str, Operator] = {}

    def register(self, operator: Operator) -> None:
        if operator.name in self._operators:
            raise ValueError(f"Operator '{operator.name}' is already registered")
        self._operators[operator.name] = operator

    def get(self, name: str) -> Operator:
        if name not in self._operators:
            raise KeyError(
                f"Operator '{name}' is not registered. "
                f"Available: {list(self._operators.keys())}"
            )
        return self._operators[name]

    def build(self, names: list[str]) -> list[Operator]:
        """Resolve names to operators and validate their order."""
        pipeline = [self.get(name) for name in names]
        validate_pipeline(pipeline)
        return pipeline

    @property
    def registered_names(self) -> list[str]:
        return list(self._operators.keys())


def validate_pipeline(operators: list[Operator]) -> None:
    """Raise ``ValueError`` for an empty list or an unmet ``requires``."""
    if not operators:
        raise ValueError("A pipeline needs at least one operator")

    seen: set[str] = set()
    for op in operators:
        for dep in op.requires:
            if dep not in seen:
                raise ValueError(
                    f"Operator '{op.name}' requires '{dep}' earlier in the pipeline"
                )
        seen.add(op.name)
