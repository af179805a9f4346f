"""
Health Score Models

Frozen output of the Health Score composer.

Version: 1.0.0
"""

from typing import Tuple

from pydantic import BaseModel, Field


class StatusCounts(BaseModel):
    optimal: int = 0
    low: int = 0
    high: int = 0

    class Config:
        frozen = True


class HealthScoreBreakdown(BaseModel):
    """
    Composite 0-100 score over classified minerals and ratios.

    Sub-scores and total are rounded; the grade is looked up from the total.
    """
    total_score: int = Field(..., ge=0, le=100)
    mineral_score: int
    ratio_score: int
    red_flag_score: int
    grade: str
    interpretation: str
    color_hex: str
    status_counts: StatusCounts
    critical_issues: Tuple[str, ...] = Field(
        default=(),
        description="Severe deficiencies/excesses and critical ratio imbalances, in detection order"
    )
    reference_range_version: str
    semantics_version: str
    engine_version: str

    class Config:
        frozen = True
