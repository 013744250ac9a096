"""Tests for the post-step constraint validator."""

import numpy as np

from emergence.core.state import CONSTITUTION_HASH
from emergence.core.validator import (
    BOUNDED_DOMAIN,
    CONSTITUTION_IMMUTABLE,
    FINITE_BUDGET,
    FINITE_VALUES,
    validate_state,
    violation_reason,
)


class TestValidateState:
    def test_fresh_world_is_clean(self, world):
        assert validate_state(world, CONSTITUTION_HASH) == []

    def test_escaped_position(self, world):
        world.anchors[0].position = np.array([1.5, 0.0])
        codes = [v.code for v in validate_state(world, CONSTITUTION_HASH)]
        assert codes == [BOUNDED_DOMAIN]

    def test_within_overflow_margin_is_allowed(self, world):
        world.anchors[0].position = np.array([1.05, -1.05])
        assert validate_state(world, CONSTITUTION_HASH) == []

    def test_nan_position_is_flagged(self, world):
        world.anchors[0].position = np.array([np.nan, 0.0])
        codes = [v.code for v in validate_state(world, CONSTITUTION_HASH)]
        assert BOUNDED_DOMAIN in codes

    def test_non_finite_values(self, world):
        world.anchors[1].energy = float("inf")
        codes = [v.code for v in validate_state(world, CONSTITUTION_HASH)]
        assert codes == [FINITE_VALUES]

    def test_bad_budget(self, world):
        world.globals.budget = -1.0
        codes = [v.code for v in validate_state(world, CONSTITUTION_HASH)]
        assert codes == [FINITE_BUDGET]

    def test_constitution_changed(self, world):
        world.globals.constitution_hash = "tampered"
        codes = [v.code for v in validate_state(world, CONSTITUTION_HASH)]
        assert codes == [CONSTITUTION_IMMUTABLE]


class TestViolationReason:
    def test_comma_joined(self, world):
        world.globals.budget = float("nan")
        world.globals.constitution_hash = "x"
        reason = violation_reason(validate_state(world, CONSTITUTION_HASH))
        assert reason == "FINITE_BUDGET,CONSTITUTION_IMMUTABLE"
