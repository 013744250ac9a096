"""
Scalar fields over the plane.

The density field is a Gaussian bump plus an exponential contribution from
every invariant (anchors weigh 1.5x). The energy field is a closed-form
time-varying pattern of radial waves, angular lobes and a global pulse,
and reads as zero until an operator enables it. Gradients use forward
differences. All evaluators take an ``(n, 2)`` array of points and return
one value (or gradient row) per point.

Also holds the greedy nearest-center clustering used for basins and for
the per-cluster population ceiling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

import numpy as np

if TYPE_CHECKING:
    from emergence.core.state import WorldState

GRADIENT_EPS = 0.001
INVARIANT_FALLOFF = 4.0
ANCHOR_INFLUENCE = 1.5

FieldFn = Callable[[np.ndarray, np.ndarray, float], np.ndarray]


def gaussian_density(x: np.ndarray, y: np.ndarray, t: float) -> np.ndarray:
    return np.exp(-(x * x + y * y))


def oscillating_energy(x: np.ndarray, y: np.ndarray, t: float) -> np.ndarray:
    r = np.sqrt(x * x + y * y)
    theta = np.arctan2(y, x)
    radial = np.sin(6.0 * r - t * 2.0) * 0.3
    angular = np.cos(3.0 * theta + t) * 0.2
    pulse = np.sin(t * 0.5) * 0.1
    return radial + angular + pulse


@dataclass
class FieldFunctions:
    """The two closed-form fields, as functions of (x, y, t)."""
    density: FieldFn = field(default=gaussian_density)
    energy: FieldFn = field(default=oscillating_energy)


def as_points(coords) -> np.ndarray:
    """Coerce a single (x, y) pair or a sequence of pairs to shape (n, 2)."""
    pts = np.asarray(coords, dtype=np.float64)
    if pts.ndim == 1:
        pts = pts.reshape(1, 2)
    return pts


# ---------------------------------------------------------------------------
# Field evaluation
# ---------------------------------------------------------------------------

def density_at(state: WorldState, coords) -> np.ndarray:
    """Base density plus the influence of every invariant."""
    pts = as_points(coords)
    base = state.fields.density(pts[:, 0], pts[:, 1], state.globals.time)

    invariants = state.invariants
    if not invariants:
        return base

    centers = np.array([inv.position for inv in invariants])
    influence = np.array([
        inv.strength if inv.dynamic else inv.strength * ANCHOR_INFLUENCE
        for inv in invariants
    ])
    dist = np.linalg.norm(pts[:, None, :] - centers[None, :, :], axis=2)
    return base + (influence[None, :] * np.exp(-dist * INVARIANT_FALLOFF)).sum(axis=1)


def energy_at(state: WorldState, coords) -> np.ndarray:
    """Energy field, or zeros while the field is disabled."""
    pts = as_points(coords)
    if not state.globals.energy_enabled:
        return np.zeros(len(pts))
    return state.fields.energy(pts[:, 0], pts[:, 1], state.globals.time)


def _forward_gradient(fn, state: WorldState, pts: np.ndarray) -> np.ndarray:
    base = fn(state, pts)
    dx = fn(state, pts + np.array([GRADIENT_EPS, 0.0]))
    dy = fn(state, pts + np.array([0.0, GRADIENT_EPS]))
    return np.stack([(dx - base) / GRADIENT_EPS, (dy - base) / GRADIENT_EPS], axis=1)


def energy_gradient(state: WorldState, coords) -> np.ndarray:
    return _forward_gradient(energy_at, state, as_points(coords))


def density_gradient(state: WorldState, coords) -> np.ndarray:
    return _forward_gradient(density_at, state, as_points(coords))


def flow_gradient(state: WorldState, coords, alpha: float) -> np.ndarray:
    """``grad(energy) + alpha * grad(density)``; probes descend this."""
    pts = as_points(coords)
    return energy_gradient(state, pts) + alpha * density_gradient(state, pts)


# ---------------------------------------------------------------------------
# Greedy nearest-center clustering
# ---------------------------------------------------------------------------

@dataclass
class PointCluster:
    x: float
    y: float
    count: int


def assign_clusters(points, radius: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Greedy single-pass clustering.

    Each point joins the nearest existing center strictly within ``radius``
    (first-created cluster wins exact ties), otherwise it opens a new cluster.
    Centers are running means.

    Returns (labels, centers, counts).
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    n = len(pts)
    labels = np.full(n, -1, dtype=np.int64)
    sums = np.zeros((n, 2))
    counts = np.zeros(n, dtype=np.int64)
    k = 0

    for i in range(n):
        if k > 0:
            centers = sums[:k] / counts[:k, None]
            dist = np.linalg.norm(centers - pts[i], axis=1)
            best = int(np.argmin(dist))
            if dist[best] < radius:
                sums[best] += pts[i]
                counts[best] += 1
                labels[i] = best
                continue
        sums[k] = pts[i]
        counts[k] = 1
        labels[i] = k
        k += 1

    return labels, sums[:k] / np.maximum(counts[:k, None], 1), counts[:k]


def cluster_points(points, radius: float) -> list[PointCluster]:
    """Cluster a point set and return one ``PointCluster`` per cluster."""
    _, centers, counts = assign_clusters(points, radius)
    return [
        PointCluster(x=float(c[0]), y=float(c[1]), count=int(n))
        for c, n in zip(centers, counts)
    ]
