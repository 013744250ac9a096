"""
World physics for dynamic entities.

Per tick: distance-scaled gravity toward the origin (capped), short-range
pairwise repulsion, pairwise snap-locks, drag, a minimum-speed floor, a hard
speed cap, then explicit integration with wall reflection at the domain
bounds.

Snap-lock: a close pair that is still closing gets its separation pinned
and its relative slip damped for a fixed number of ticks, then is released
with an outward plus tangential impulse. Lock state lives on the world
state so separate simulations never share it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from emergence.core.entities import SnapLock
from emergence.operators.base import Operator, OperatorContext, OperatorParams

if TYPE_CHECKING:
    from emergence.core.entities import Invariant
    from emergence.core.state import WorldState

_EPS = 1e-9


def _perp(v: np.ndarray) -> np.ndarray:
    return np.array([-v[1], v[0]])


def _unit_between(a: Invariant, b: Invariant) -> tuple[np.ndarray, float]:
    delta = b.position - a.position
    d = float(np.hypot(delta[0], delta[1]))
    if d < _EPS:
        return np.array([1.0, 0.0]), d
    return delta / d, d


def lock_key(a_id: str, b_id: str) -> tuple[str, str]:
    return (a_id, b_id) if a_id < b_id else (b_id, a_id)


class WorldPhysicsOperator(Operator):
    """Gravity, contact, snap-locks and speed limits for dynamic entities."""

    @property
    def name(self) -> str:
        return "world_physics"

    @property
    def description(self) -> str:
        return "Gravity, repulsion, snap-lock contacts, drag and speed limits"

    def get_default_config(self) -> dict[str, Any]:
        return {
            "gravity_gain": 0.6,
            "gravity_cap": 1.2,
            "contact_radius": 0.08,
            "repulsion": 4.0,
            "snap_radius": 0.06,
            "snap_ticks": 12,
            "slip_damping": 0.5,
            "release_outward": 0.25,
            "release_tangential": 0.15,
            "drag": 0.02,
            "min_speed": 0.05,
            "max_speed": 1.5,
            "restitution": 0.5,
        }

    def apply(
        self, state: WorldState, params: OperatorParams, dt: float,
        ctx: OperatorContext,
    ) -> None:
        cfg = self.settings(params.config)
        dynamics = state.dynamics
        if not dynamics:
            state.snap_locks.clear()
            return

        acc = self.gravity(dynamics, cfg) + self.repulsion(dynamics, cfg)
        for inv, a in zip(dynamics, acc):
            inv.velocity = inv.velocity + a * dt

        self.engage_snap_locks(state, cfg)
        self.hold_snap_locks(state, cfg)

        for inv in dynamics:
            inv.velocity = self.limit_speed(inv, cfg)
            inv.position = inv.position + inv.velocity * dt
            self.reflect_walls(inv, state.globals.domain_half_extents, cfg["restitution"])

    # ------------------------------------------------------------------
    # Forces
    # ------------------------------------------------------------------
    def gravity(self, dynamics: list[Invariant], cfg: dict[str, Any]) -> np.ndarray:
        pos = np.array([inv.position for inv in dynamics])
        r = np.linalg.norm(pos, axis=1)
        gain = np.minimum(cfg["gravity_cap"], cfg["gravity_gain"] * r)
        safe_r = np.where(r > _EPS, r, 1.0)
        return -(pos / safe_r[:, None]) * gain[:, None] * (r > _EPS)[:, None]

    def repulsion(self, dynamics: list[Invariant], cfg: dict[str, Any]) -> np.ndarray:
        acc = np.zeros((len(dynamics), 2))
        contact = cfg["contact_radius"]
        for i in range(len(dynamics)):
            for j in range(i + 1, len(dynamics)):
                normal, d = _unit_between(dynamics[i], dynamics[j])
                if d >= contact:
                    continue
                push = cfg["repulsion"] * (contact - d) / contact
                acc[i] -= normal * push / dynamics[i].mass
                acc[j] += normal * push / dynamics[j].mass
        return acc

    # ------------------------------------------------------------------
    # Snap-lock
    # ------------------------------------------------------------------
    def engage_snap_locks(self, state: WorldState, cfg: dict[str, Any]) -> None:
        dynamics = state.dynamics
        for i in range(len(dynamics)):
            for j in range(i + 1, len(dynamics)):
                a, b = dynamics[i], dynamics[j]
                key = lock_key(a.id, b.id)
                if key in state.snap_locks:
                    continue
                normal, d = _unit_between(a, b)
                if d >= cfg["snap_radius"]:
                    continue
                closing = float(np.dot(b.velocity - a.velocity, normal)) < 0.0
                if closing:
                    state.snap_locks[key] = SnapLock(distance=d, ticks_left=cfg["snap_ticks"])

    def hold_snap_locks(self, state: WorldState, cfg: dict[str, Any]) -> None:
        by_id = {inv.id: inv for inv in state.dynamics}
        for key in list(state.snap_locks):
            lock = state.snap_locks[key]
            a, b = by_id.get(key[0]), by_id.get(key[1])
            if a is None or b is None:
                del state.snap_locks[key]
                continue

            normal, d = _unit_between(a, b)
            correction = (d - lock.distance) / 2.0
            a.position = a.position + normal * correction
            b.position = b.position - normal * correction

            mean = (a.velocity + b.velocity) / 2.0
            rel = b.velocity - a.velocity
            tangent = _perp(normal)
            slip = float(np.dot(rel, tangent)) * (1.0 - cfg["slip_damping"])
            a.velocity = mean - tangent * slip / 2.0
            b.velocity = mean + tangent * slip / 2.0

            lock.ticks_left -= 1
            if lock.ticks_left <= 0:
                impulse = normal * cfg["release_outward"] + tangent * cfg["release_tangential"]
                a.velocity = a.velocity - impulse
                b.velocity = b.velocity + impulse
                del state.snap_locks[key]

    # ------------------------------------------------------------------
    # Speed limits and bounds
    # ------------------------------------------------------------------
    def limit_speed(self, inv: Invariant, cfg: dict[str, Any]) -> np.ndarray:
        v = inv.velocity * (1.0 - cfg["drag"])
        speed = float(np.hypot(v[0], v[1]))

        min_speed = cfg["min_speed"]
        if speed < min_speed:
            r = float(np.hypot(inv.position[0], inv.position[1]))
            tangent = _perp(inv.position / r) if r > _EPS else np.array([1.0, 0.0])
            if float(np.dot(v, tangent)) < 0.0:
                tangent = -tangent
            v = v + tangent * (min_speed - speed)
            speed = float(np.hypot(v[0], v[1]))
            if speed < min_speed:
                v = v * (min_speed / speed) if speed > _EPS else tangent * min_speed
                speed = min_speed

        if speed > cfg["max_speed"]:
            v = v * (cfg["max_speed"] / speed)
        return v

    def reflect_walls(
        self, inv: Invariant, half_extents: tuple[float, float], restitution: float,
    ) -> None:
        pos = inv.position.copy()
        vel = inv.velocity.copy()
        for axis, limit in enumerate(half_extents):
            if pos[axis] > limit:
                pos[axis] = limit
                vel[axis] = -abs(vel[axis]) * restitution
            elif pos[axis] < -limit:
                pos[axis] = -limit
                vel[axis] = abs(vel[axis]) * restitution
        inv.position = pos
        inv.velocity = vel
