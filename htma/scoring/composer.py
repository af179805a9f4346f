"""
Health Score Composer
=====================
Pure function of one full measurement set.

    mineral_score  = optimal minerals / tracked minerals x 60
    ratio_score    = optimal ratios / tracked ratios x 30
    red_flag_score = max(0, 10 - penalty)

Penalty:
- 2 points per mineral below 50% of its minimum
- 2 points per mineral above 150% of its maximum
- 1 point per critical ratio outside its emergency bounds

No side effects.
"""

from typing import List, Mapping, Optional, Tuple

from ..ranges.classify import calculate_ratio, measure_minerals, measure_ratios, normalize_values
from ..ranges.models import MeasurementStatus, ReferenceRangeVersion
from ..shared.versions import ANALYSIS_ENGINE_VERSION
from .models import HealthScoreBreakdown, StatusCounts
from .semantics import (
    HEALTH_SCORE_SEMANTICS_VERSION,
    HEALTH_SCORE_WEIGHTS,
    get_score_band,
    round_half_up,
)

SEVERE_DEFICIENCY_MULTIPLIER = 0.5
SEVERE_EXCESS_MULTIPLIER = 1.5
SEVERE_MINERAL_PENALTY = 2
CRITICAL_RATIO_PENALTY = 1

# (ratio, numerator, denominator, emergency low, emergency high)
CRITICAL_RATIO_THRESHOLDS: Tuple[Tuple[str, str, str, float, float], ...] = (
    ("Ca/Mg", "Ca", "Mg", 4.0, 10.0),
    ("Na/K", "Na", "K", 1.5, 4.0),
    ("Zn/Cu", "Zn", "Cu", 3.0, 10.0),
)


def _red_flags(values: Mapping[str, float], version: ReferenceRangeVersion) -> Tuple[int, List[str]]:
    penalty = 0
    issues: List[str] = []

    for rng in sorted(version.mineral_ranges, key=lambda r: r.display_order):
        value = values.get(rng.symbol, 0.0)
        if value < rng.min_ideal * SEVERE_DEFICIENCY_MULTIPLIER:
            issues.append(f"Severe {rng.name} deficiency")
            penalty += SEVERE_MINERAL_PENALTY
        if value > rng.max_ideal * SEVERE_EXCESS_MULTIPLIER:
            issues.append(f"Severe {rng.name} excess")
            penalty += SEVERE_MINERAL_PENALTY

    for name, numerator, denominator, low, high in CRITICAL_RATIO_THRESHOLDS:
        ratio = calculate_ratio(values.get(numerator, 0.0), values.get(denominator, 0.0))
        if ratio > high or ratio < low:
            issues.append(f"Critical {name} imbalance")
            penalty += CRITICAL_RATIO_PENALTY

    return penalty, issues


def calculate_health_score(
    values: Mapping[str, Optional[float]],
    version: ReferenceRangeVersion,
) -> HealthScoreBreakdown:
    """
    Compose the Health Score for one analysis under a given range version.
    """
    normalized = normalize_values(values)
    minerals = measure_minerals(normalized, version)
    ratios = measure_ratios(normalized, version)

    optimal = sum(1 for m in minerals if m.status == MeasurementStatus.OPTIMAL)
    low = sum(1 for m in minerals if m.status == MeasurementStatus.LOW)
    high = sum(1 for m in minerals if m.status == MeasurementStatus.HIGH)
    optimal_ratios = sum(1 for r in ratios if r.status == MeasurementStatus.OPTIMAL)

    mineral_score = optimal / len(minerals) * (HEALTH_SCORE_WEIGHTS.mineral * 100) if minerals else 0.0
    ratio_score = optimal_ratios / len(ratios) * (HEALTH_SCORE_WEIGHTS.ratio * 100) if ratios else 0.0

    penalty, issues = _red_flags(normalized, version)
    red_flag_score = max(0.0, HEALTH_SCORE_WEIGHTS.red_flag * 100 - penalty)

    total = round_half_up(mineral_score + ratio_score + red_flag_score)
    band = get_score_band(total)

    return HealthScoreBreakdown(
        total_score=int(total),
        mineral_score=int(round_half_up(mineral_score)),
        ratio_score=int(round_half_up(ratio_score)),
        red_flag_score=int(round_half_up(red_flag_score)),
        grade=band.grade,
        interpretation=band.interpretation,
        color_hex=band.color_hex,
        status_counts=StatusCounts(optimal=optimal, low=low, high=high),
        critical_issues=tuple(issues),
        reference_range_version=version.version,
        semantics_version=HEALTH_SCORE_SEMANTICS_VERSION,
        engine_version=ANALYSIS_ENGINE_VERSION,
    )
