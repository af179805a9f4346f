"""
Health Score Semantics (LOCKED)
===============================
What a Health Score means, and how it is composed.

- Weights are fixed constants and must sum to 1.0 (checked at import)
- Score bands tile 0-100 with no gaps (checked at import)
- Any change here requires a HEALTH_SCORE_SEMANTICS_VERSION bump

❌ Cannot be modified at runtime
❌ Cannot be A/B tested
❌ Cannot be reworded without review

Version: 1.0.0
"""

import logging
import math
from typing import Any, Dict, Sequence, Tuple

from pydantic import BaseModel

from ..errors import SemanticsIntegrityError
from ..shared.versions import ANALYSIS_ENGINE_VERSION

logger = logging.getLogger("htma.scoring")

HEALTH_SCORE_SEMANTICS_VERSION = "1.0.0"
SEMANTICS_LAST_REVIEWED = "2025-12-21"
WEIGHT_TOLERANCE = 1e-4


class HealthScoreWeights(BaseModel):
    mineral: float = 0.6
    ratio: float = 0.3
    red_flag: float = 0.1
    total: float = 1.0

    class Config:
        frozen = True


class ScoreBand(BaseModel):
    min_score: int
    max_score: int
    grade: str
    interpretation: str
    color_hex: str

    class Config:
        frozen = True


# ============================================================
# LOCKED CONSTANTS - DO NOT MODIFY WITHOUT A VERSION BUMP
# ============================================================

HEALTH_SCORE_WEIGHTS = HealthScoreWeights()

SCORE_BANDS: Tuple[ScoreBand, ...] = (
    ScoreBand(min_score=90, max_score=100, grade="A", interpretation="Optimal mineral balance", color_hex="#10b981"),
    ScoreBand(min_score=75, max_score=89, grade="B", interpretation="Minor mineral imbalances", color_hex="#3b82f6"),
    ScoreBand(min_score=60, max_score=74, grade="C", interpretation="Moderate mineral imbalance patterns", color_hex="#f59e0b"),
    ScoreBand(min_score=45, max_score=59, grade="D", interpretation="Significant mineral imbalance patterns", color_hex="#f97316"),
    ScoreBand(min_score=0, max_score=44, grade="F", interpretation="Severe mineral imbalance patterns", color_hex="#ef4444"),
)

SCORE_DEFINITION = {
    "represents": "A composite indicator of mineral balance patterns",
    "scope": (
        "Relative balance of 15 essential minerals",
        "Key mineral ratio relationships",
        "Patterns suggesting potential imbalances",
    ),
    "not_representing": (
        "A medical diagnosis",
        "A disease risk score",
        "A treatment recommendation",
        "A definitive health assessment",
    ),
    "context": "HTMA results should be interpreted by qualified healthcare practitioners familiar with mineral analysis",
}

SHORT_DISCLAIMER = "Health Score reflects mineral balance patterns only. Not diagnostic."

FULL_DISCLAIMER = (
    "The Health Score is a composite indicator of mineral balance patterns based on Hair Tissue "
    "Mineral Analysis (HTMA). This score is for educational purposes only and does not constitute "
    "medical advice, diagnosis, or treatment recommendation. HTMA results should be interpreted by a "
    "qualified healthcare practitioner familiar with mineral analysis. Always consult with your "
    "healthcare provider before making changes to your diet or supplement regimen."
)

PRACTITIONER_DISCLAIMER = (
    f"This Health Score is calculated using the HTMA analysis engine (v{ANALYSIS_ENGINE_VERSION}). "
    "Scoring methodology is based on Trace Elements Inc. (TEI) reference ranges and established "
    "clinical patterns. Use this score as one tool among many in your comprehensive patient assessment."
)

SCORE_COMPONENT_LABELS = {
    "mineral_score": "Mineral Status",
    "ratio_score": "Critical Ratios",
    "red_flag_score": "Red Flag Adjustment",
    "total_score": "Total Health Score",
}

SCORE_COMPONENT_DESCRIPTIONS = {
    "mineral_score": f"How many of the 15 essential minerals are in optimal range ({HEALTH_SCORE_WEIGHTS.mineral * 100:.0f}% of total score)",
    "ratio_score": f"Balance of 6 key mineral relationships like Ca/Mg, Na/K ({HEALTH_SCORE_WEIGHTS.ratio * 100:.0f}% of total score)",
    "red_flag_score": f"Penalties for severe deficiencies or toxicities ({HEALTH_SCORE_WEIGHTS.red_flag * 100:.0f}% of total score)",
    "total_score": "Composite indicator of overall mineral balance patterns",
}


# ============================================================
# LOAD-TIME SELF-CHECK
# ============================================================

def validate_semantics(
    weights: HealthScoreWeights = HEALTH_SCORE_WEIGHTS,
    bands: Sequence[ScoreBand] = SCORE_BANDS,
) -> None:
    """Raises SemanticsIntegrityError on weight drift or band gaps."""
    weight_sum = weights.mineral + weights.ratio + weights.red_flag
    if abs(weight_sum - weights.total) > WEIGHT_TOLERANCE:
        raise SemanticsIntegrityError(
            f"Health Score weights must sum to {weights.total}, got {weight_sum}"
        )

    ordered = sorted(bands, key=lambda b: b.min_score)
    if not ordered or ordered[0].min_score != 0 or ordered[-1].max_score != 100:
        raise SemanticsIntegrityError("Score bands must cover 0-100")
    for lower, upper in zip(ordered, ordered[1:]):
        if upper.min_score != lower.max_score + 1:
            raise SemanticsIntegrityError(
                f"Score bands {lower.grade} and {upper.grade} leave a gap or overlap"
            )
    for band in ordered:
        if band.min_score > band.max_score:
            raise SemanticsIntegrityError(f"Score band {band.grade} is inverted")


validate_semantics()


# ============================================================
# LOOKUPS
# ============================================================

def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def get_score_band(score: float) -> ScoreBand:
    """Clamp to 0-100, round, then look up the band."""
    clamped = int(round_half_up(max(0.0, min(100.0, score))))
    for band in SCORE_BANDS:
        if band.min_score <= clamped <= band.max_score:
            return band
    logger.warning(f"No score band for {score}; falling back to F")
    return SCORE_BANDS[-1]


def get_grade(score: float) -> str:
    return get_score_band(score).grade


def get_interpretation(score: float) -> str:
    return get_score_band(score).interpretation


def get_score_color(score: float) -> str:
    return get_score_band(score).color_hex


def is_valid_score(score: Any) -> bool:
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        return False
    return not math.isnan(score) and 0 <= score <= 100


def format_score(score: Any) -> str:
    if not is_valid_score(score):
        return "N/A"
    return str(int(round_half_up(score)))


def get_score_metadata(score: float) -> Dict[str, Any]:
    band = get_score_band(score)
    return {
        "score": int(round_half_up(max(0.0, min(100.0, score)))),
        "grade": band.grade,
        "interpretation": band.interpretation,
        "color": band.color_hex,
        "is_valid": is_valid_score(score),
        "weights": HEALTH_SCORE_WEIGHTS.model_dump(),
        "disclaimer": SHORT_DISCLAIMER,
    }


def export_semantics() -> Dict[str, Any]:
    """Full semantics snapshot for audit."""
    return {
        "version": HEALTH_SCORE_SEMANTICS_VERSION,
        "engine_version": ANALYSIS_ENGINE_VERSION,
        "last_reviewed": SEMANTICS_LAST_REVIEWED,
        "weights": HEALTH_SCORE_WEIGHTS.model_dump(),
        "ranges": [band.model_dump() for band in SCORE_BANDS],
        "definition": SCORE_DEFINITION,
        "disclaimers": {
            "short": SHORT_DISCLAIMER,
            "full": FULL_DISCLAIMER,
            "practitioner": PRACTITIONER_DISCLAIMER,
        },
    }
