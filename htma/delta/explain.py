"""
Score Delta Explainer
=====================
Rule-based "why this changed" engine, tied to the locked Health Score
semantics and to the reference range version in force.

Point pools mirror the score weights: 60 minerals, 30 ratios, 10 flags,
each split evenly across its tracked items.

Direction (optimal is the only good status):
- non-optimal -> optimal   improved   +share
- optimal -> non-optimal   worsened   -share
- anything else            unchanged   0 (limiter -share/4 if still abnormal)

Guarantees:
- explain(A, A) has delta 0 and no driver with nonzero impact
- explain(B, A) negates every impact of explain(A, B) and swaps from/to

Ranking: |impact| desc, |limiter| desc, category (mineral, ratio,
red_flag), then the item's canonical display order.

Version: 1.0.0
"""

import logging
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..ranges.classify import classify, compute_ratio_values, normalize_values
from ..ranges.models import MeasurementStatus, RangeKind, ReferenceRangeVersion
from ..scoring.models import HealthScoreBreakdown
from ..scoring.semantics import HEALTH_SCORE_SEMANTICS_VERSION, HEALTH_SCORE_WEIGHTS
from .models import (
    AnalysisInput,
    DeltaDriver,
    DeltaEngineStamp,
    DriverCategory,
    DriverDirection,
    DriverStatus,
    ScoreDeltaExplanation,
)

logger = logging.getLogger("htma.delta")

DELTA_ENGINE_NAME = "scoreDeltaExplainer"
DELTA_ENGINE_VERSION = "1.0.0"

TOP_DRIVER_COUNT = 6
LIMITER_FRACTION = 0.25
RED_FLAG_KEY = "Red Flags"

_CATEGORY_RANK = {
    DriverCategory.MINERAL: 0,
    DriverCategory.RATIO: 1,
    DriverCategory.RED_FLAG: 2,
}

RATIO_SIGNIFICANCE = {
    "Ca/Mg": "thyroid/metabolic rate",
    "Na/K": "adrenal function",
    "Ca/P": "bone metabolism",
    "Zn/Cu": "immune function",
    "Fe/Cu": "oxygen transport",
    "Ca/K": "thyroid activity",
}

_STATUS = {
    MeasurementStatus.LOW: DriverStatus.LOW,
    MeasurementStatus.OPTIMAL: DriverStatus.OPTIMAL,
    MeasurementStatus.HIGH: DriverStatus.HIGH,
}


def round1(value: float) -> float:
    """Half-up on the magnitude, so round1(-x) == -round1(x)."""
    magnitude = math.floor(abs(value) * 10 + 0.5) / 10
    return math.copysign(magnitude, value) + 0.0


def pools() -> Tuple[float, float, float]:
    return (
        round(100 * HEALTH_SCORE_WEIGHTS.mineral),
        round(100 * HEALTH_SCORE_WEIGHTS.ratio),
        round(100 * HEALTH_SCORE_WEIGHTS.red_flag),
    )


def direction(from_status: DriverStatus, to_status: DriverStatus) -> DriverDirection:
    if from_status != DriverStatus.OPTIMAL and to_status == DriverStatus.OPTIMAL:
        return DriverDirection.IMPROVED
    if from_status == DriverStatus.OPTIMAL and to_status != DriverStatus.OPTIMAL:
        return DriverDirection.WORSENED
    return DriverDirection.UNCHANGED


def _attribute(
    from_status: DriverStatus,
    to_status: DriverStatus,
    share: float,
) -> Tuple[DriverDirection, float, float]:
    """Returns (direction, impact, limiter)."""
    dir_ = direction(from_status, to_status)
    if dir_ == DriverDirection.IMPROVED:
        return dir_, round1(share), 0.0
    if dir_ == DriverDirection.WORSENED:
        return dir_, round1(-share), 0.0
    if from_status != DriverStatus.OPTIMAL and to_status != DriverStatus.OPTIMAL:
        return dir_, 0.0, round1(-share * LIMITER_FRACTION)
    return dir_, 0.0, 0.0


def _mineral_note(key: str, dir_: DriverDirection, from_status: DriverStatus, to_status: DriverStatus) -> str:
    if dir_ == DriverDirection.IMPROVED:
        return f"{key} moved closer to the optimal band."
    if dir_ == DriverDirection.WORSENED:
        return f"{key} moved away from the optimal band."
    if from_status != to_status:
        return f"{key} crossed from {from_status.value} to {to_status.value} and remained outside optimal."
    return f"{key} remained outside optimal and may be limiting progress."


def _ratio_note(
    key: str,
    dir_: DriverDirection,
    from_value: float,
    to_value: float,
    from_status: DriverStatus,
    to_status: DriverStatus,
) -> str:
    significance = RATIO_SIGNIFICANCE.get(key, "mineral balance")
    if dir_ == DriverDirection.IMPROVED:
        return f"{key} improved ({from_value:.2f}→{to_value:.2f}), supporting {significance}."
    if dir_ == DriverDirection.WORSENED:
        return f"{key} declined ({from_value:.2f}→{to_value:.2f}), affecting {significance}."
    if from_status != to_status:
        return f"{key} crossed from {from_status.value} to {to_status.value} ({from_value:.2f}→{to_value:.2f}), may be limiting {significance}."
    return f"{key} remained {to_status.value} ({to_value:.2f}), may be limiting {significance}."


def _ratio_values(analysis: AnalysisInput, version: ReferenceRangeVersion) -> Dict[str, float]:
    values = compute_ratio_values(analysis.minerals, version)
    for name, value in (analysis.ratios or {}).items():
        if name in values and value is not None:
            values[name] = float(value)
    return values


def _mineral_drivers(
    prev: AnalysisInput,
    next_: AnalysisInput,
    version: ReferenceRangeVersion,
    share: float,
) -> List[Tuple[int, DeltaDriver]]:
    prev_values = normalize_values(prev.minerals)
    next_values = normalize_values(next_.minerals)
    drivers = []
    for order, rng in enumerate(sorted(version.mineral_ranges, key=lambda r: r.display_order)):
        pv = prev_values.get(rng.symbol, 0.0)
        nv = next_values.get(rng.symbol, 0.0)
        from_status = _STATUS[classify(pv, rng.min_ideal, rng.max_ideal, RangeKind.MINERAL)]
        to_status = _STATUS[classify(nv, rng.min_ideal, rng.max_ideal, RangeKind.MINERAL)]
        dir_, impact, limiter = _attribute(from_status, to_status, share)
        if impact == 0 and limiter == 0:
            continue
        drivers.append((order, DeltaDriver(
            category=DriverCategory.MINERAL,
            key=rng.symbol,
            from_status=from_status,
            to_status=to_status,
            from_value=pv,
            to_value=nv,
            direction=dir_,
            impact_points=impact,
            limiter_points=limiter,
            note=_mineral_note(rng.symbol, dir_, from_status, to_status),
        )))
    return drivers


def _ratio_drivers(
    prev: AnalysisInput,
    next_: AnalysisInput,
    version: ReferenceRangeVersion,
    share: float,
) -> List[Tuple[int, DeltaDriver]]:
    prev_values = _ratio_values(prev, version)
    next_values = _ratio_values(next_, version)
    drivers = []
    for order, rng in enumerate(sorted(version.ratio_ranges, key=lambda r: r.display_order)):
        pv = prev_values[rng.name]
        nv = next_values[rng.name]
        from_status = _STATUS[classify(pv, rng.min_ideal, rng.max_ideal, RangeKind.RATIO)]
        to_status = _STATUS[classify(nv, rng.min_ideal, rng.max_ideal, RangeKind.RATIO)]
        dir_, impact, limiter = _attribute(from_status, to_status, share)
        if impact == 0 and limiter == 0:
            continue
        drivers.append((order, DeltaDriver(
            category=DriverCategory.RATIO,
            key=rng.name,
            from_status=from_status,
            to_status=to_status,
            from_value=pv,
            to_value=nv,
            direction=dir_,
            impact_points=impact,
            limiter_points=limiter,
            note=_ratio_note(rng.name, dir_, pv, nv, from_status, to_status),
        )))
    return drivers


def _red_flag_driver(prev_count: int, next_count: int, pool: float) -> Optional[DeltaDriver]:
    if prev_count == 0 and next_count == 0:
        return None
    per_flag = pool / max(prev_count, next_count)

    if next_count < prev_count:
        return DeltaDriver(
            category=DriverCategory.RED_FLAG,
            key=RED_FLAG_KEY,
            from_status=DriverStatus.HIGH,
            to_status=DriverStatus.OPTIMAL,
            from_value=float(prev_count),
            to_value=float(next_count),
            direction=DriverDirection.IMPROVED,
            impact_points=round1((prev_count - next_count) * per_flag),
            note=f"Fewer critical flags detected ({prev_count} → {next_count}).",
        )
    if next_count > prev_count:
        return DeltaDriver(
            category=DriverCategory.RED_FLAG,
            key=RED_FLAG_KEY,
            from_status=DriverStatus.OPTIMAL,
            to_status=DriverStatus.HIGH,
            from_value=float(prev_count),
            to_value=float(next_count),
            direction=DriverDirection.WORSENED,
            impact_points=round1(-(next_count - prev_count) * per_flag),
            note=f"More critical flags detected ({prev_count} → {next_count}).",
        )
    return DeltaDriver(
        category=DriverCategory.RED_FLAG,
        key=RED_FLAG_KEY,
        from_status=DriverStatus.HIGH,
        to_status=DriverStatus.HIGH,
        from_value=float(prev_count),
        to_value=float(next_count),
        direction=DriverDirection.UNCHANGED,
        impact_points=0.0,
        limiter_points=round1(-LIMITER_FRACTION * pool),
        note=f"Critical flags persisted ({next_count}).",
    )


def rank_drivers(drivers: Sequence[Tuple[int, DeltaDriver]]) -> List[DeltaDriver]:
    """Total order; ties never depend on input order."""
    ranked = sorted(
        drivers,
        key=lambda item: (
            -abs(item[1].impact_points),
            -abs(item[1].limiter_points),
            _CATEGORY_RANK[item[1].category],
            item[0],
        ),
    )
    return [driver for _, driver in ranked]


def make_headline(delta: float) -> str:
    if delta >= 1:
        return f"Health Score improved by +{delta:g}"
    if delta <= -1:
        return f"Health Score declined by {abs(delta):g}"
    return "Health Score stayed about the same"


def make_summary(drivers: Sequence[DeltaDriver], delta: float) -> str:
    improved = [d for d in drivers if d.direction == DriverDirection.IMPROVED][:2]
    worsened = [d for d in drivers if d.direction == DriverDirection.WORSENED][:1]
    limiters = [d for d in drivers if d.limiter_points != 0][:1]

    parts = []
    if improved:
        parts.append("Main improvements: " + ", ".join(f"{d.key} moved toward optimal" for d in improved) + ".")
    if worsened:
        parts.append(f"Main limiter: {worsened[0].key} moved away from optimal.")
    elif limiters:
        parts.append(f"Main limiter: {limiters[0].key} stayed outside optimal.")
    if not parts:
        parts.append("No major drivers detected; changes were small across minerals/ratios.")
    parts.append(f"Net change: {'+' if delta >= 0 else ''}{delta:g} points.")
    return " ".join(parts)


def explain_score_delta(
    prev: AnalysisInput,
    next_: AnalysisInput,
    version: ReferenceRangeVersion,
) -> ScoreDeltaExplanation:
    """
    Attribute the score change between two analyses to named drivers.

    Both analyses are classified under the same range version.
    """
    minerals_pool, ratios_pool, flags_pool = pools()
    per_mineral = minerals_pool / len(version.mineral_ranges) if version.mineral_ranges else 0.0
    per_ratio = ratios_pool / len(version.ratio_ranges) if version.ratio_ranges else 0.0

    delta = round1(next_.score - prev.score)

    drivers: List[Tuple[int, DeltaDriver]] = []
    drivers += _mineral_drivers(prev, next_, version, per_mineral)
    drivers += _ratio_drivers(prev, next_, version, per_ratio)
    flag_driver = _red_flag_driver(len(prev.flags), len(next_.flags), flags_pool)
    if flag_driver is not None:
        drivers.append((0, flag_driver))

    ranked = rank_drivers(drivers)
    top = ranked[:TOP_DRIVER_COUNT]
    logger.info(f"Explained score delta {delta:+g} with {len(ranked)} drivers (ranges v{version.version})")

    return ScoreDeltaExplanation(
        engine=DeltaEngineStamp(
            name=DELTA_ENGINE_NAME,
            version=DELTA_ENGINE_VERSION,
            semantics_version=HEALTH_SCORE_SEMANTICS_VERSION,
            reference_range_version=version.version,
        ),
        delta=delta,
        headline=make_headline(delta),
        summary=make_summary(ranked, delta),
        top_drivers=tuple(top),
        all_drivers=tuple(ranked),
    )


def analysis_input(
    values: Mapping[str, Optional[float]],
    breakdown: HealthScoreBreakdown,
    ratios: Optional[Mapping[str, float]] = None,
) -> AnalysisInput:
    """Build one side of a comparison from a composed Health Score."""
    return AnalysisInput(
        minerals=dict(values),
        ratios=dict(ratios) if ratios is not None else None,
        score=breakdown.total_score,
        flags=breakdown.critical_issues,
    )
