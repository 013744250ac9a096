"""
Alignment evaluator.

Classifies the current metrics into risk levels (conserved delta,
dominance, entropy) and derives the multipliers the budget regulator and
the dominance cap use. Gains rise as the classification worsens.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from emergence.metrics.collector import SimMetrics


class AlignmentLevel(str, Enum):
    GOOD = "good"
    WARN = "warn"
    CRITICAL = "critical"


_POINTS = {
    AlignmentLevel.GOOD: 1.0,
    AlignmentLevel.WARN: 0.5,
    AlignmentLevel.CRITICAL: 0.0,
}


@dataclass(frozen=True)
class AlignmentDiagnostics:
    score: float
    overall: AlignmentLevel
    conserved_delta: AlignmentLevel
    dominance: AlignmentLevel
    entropy: AlignmentLevel


@dataclass(frozen=True)
class AlignmentControl:
    """Runtime multipliers for the regulator and the dominance cap."""
    budget_gain_scale: float = 1.0
    deadband_scale: float = 1.0
    dominance_penalty: float = 0.04
    equity_boost: float = 0.35


def classify_conserved_delta(delta: float) -> AlignmentLevel:
    magnitude = abs(delta)
    if magnitude <= 0.1:
        return AlignmentLevel.GOOD
    if magnitude <= 0.4:
        return AlignmentLevel.WARN
    return AlignmentLevel.CRITICAL


def classify_dominance(dominance: float) -> AlignmentLevel:
    if 0.45 <= dominance <= 0.65:
        return AlignmentLevel.GOOD
    if 0.35 <= dominance <= 0.8:
        return AlignmentLevel.WARN
    return AlignmentLevel.CRITICAL


def classify_entropy(entropy: float) -> AlignmentLevel:
    if entropy >= 0.5:
        return AlignmentLevel.GOOD
    if entropy >= 0.35:
        return AlignmentLevel.WARN
    return AlignmentLevel.CRITICAL


def _overall(score: float) -> AlignmentLevel:
    if score >= 0.8:
        return AlignmentLevel.GOOD
    if score >= 0.45:
        return AlignmentLevel.WARN
    return AlignmentLevel.CRITICAL


def evaluate_alignment(metrics: SimMetrics) -> AlignmentDiagnostics:
    """Score the metrics: mean of per-axis points (1 / 0.5 / 0)."""
    conserved = classify_conserved_delta(metrics.conserved_delta)
    dominance = classify_dominance(metrics.dominance_index)
    entropy = classify_entropy(metrics.entropy_spread)
    score = (_POINTS[conserved] + _POINTS[dominance] + _POINTS[entropy]) / 3.0
    return AlignmentDiagnostics(
        score=score,
        overall=_overall(score),
        conserved_delta=conserved,
        dominance=dominance,
        entropy=entropy,
    )


def derive_alignment_control(diagnostics: AlignmentDiagnostics) -> AlignmentControl:
    """Map the risk classification to controller multipliers."""
    if diagnostics.conserved_delta == AlignmentLevel.CRITICAL:
        budget_gain_scale = 1.65
    elif diagnostics.conserved_delta == AlignmentLevel.WARN:
        budget_gain_scale = 1.25
    else:
        budget_gain_scale = 1.0

    # Wider deadband once conserved delta is healthy.
    deadband_scale = 1.2 if diagnostics.conserved_delta == AlignmentLevel.GOOD else 0.9

    if diagnostics.dominance == AlignmentLevel.CRITICAL:
        dominance_penalty = 0.14
    elif diagnostics.dominance == AlignmentLevel.WARN:
        dominance_penalty = 0.08
    else:
        dominance_penalty = 0.04

    levels = (diagnostics.entropy, diagnostics.dominance)
    if AlignmentLevel.CRITICAL in levels:
        equity_boost = 0.8
    elif AlignmentLevel.WARN in levels:
        equity_boost = 0.55
    else:
        equity_boost = 0.35

    return AlignmentControl(
        budget_gain_scale=budget_gain_scale,
        deadband_scale=deadband_scale,
        dominance_penalty=dominance_penalty,
        equity_boost=equity_boost,
    )
