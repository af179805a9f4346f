"""
HTMA Health Score

Weighted composite over classified measurements, with locked semantics.

This module does NOT:
- Diagnose, predict risk, or recommend treatment
- Change weights or bands at runtime

Version: 1.0.0
"""

from .models import HealthScoreBreakdown, StatusCounts
from .semantics import (
    HEALTH_SCORE_WEIGHTS,
    HEALTH_SCORE_SEMANTICS_VERSION,
    SEMANTICS_LAST_REVIEWED,
    SCORE_BANDS,
    SCORE_DEFINITION,
    SHORT_DISCLAIMER,
    FULL_DISCLAIMER,
    PRACTITIONER_DISCLAIMER,
    HealthScoreWeights,
    ScoreBand,
    validate_semantics,
    get_score_band,
    get_grade,
    get_interpretation,
    get_score_color,
    is_valid_score,
    format_score,
    get_score_metadata,
    export_semantics,
)
from .composer import calculate_health_score, CRITICAL_RATIO_THRESHOLDS

__all__ = [
    # Models
    "HealthScoreBreakdown",
    "StatusCounts",
    "HealthScoreWeights",
    "ScoreBand",
    # Locked semantics
    "HEALTH_SCORE_WEIGHTS",
    "HEALTH_SCORE_SEMANTICS_VERSION",
    "SEMANTICS_LAST_REVIEWED",
    "SCORE_BANDS",
    "SCORE_DEFINITION",
    "SHORT_DISCLAIMER",
    "FULL_DISCLAIMER",
    "PRACTITIONER_DISCLAIMER",
    # Functions
    "validate_semantics",
    "get_score_band",
    "get_grade",
    "get_interpretation",
    "get_score_color",
    "is_valid_score",
    "format_score",
    "get_score_metadata",
    "export_semantics",
    "calculate_health_score",
    "CRITICAL_RATIO_THRESHOLDS",
]

__version__ = "1.0.0"
