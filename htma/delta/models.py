"""
Score Delta Models

Pydantic models for "why this changed" attribution between two analyses.

Version: 1.0.0
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, Field


class DriverCategory(str, Enum):
    MINERAL = "mineral"
    RATIO = "ratio"
    RED_FLAG = "red_flag"


class DriverDirection(str, Enum):
    IMPROVED = "improved"
    WORSENED = "worsened"
    UNCHANGED = "unchanged"


class DriverStatus(str, Enum):
    LOW = "low"
    OPTIMAL = "optimal"
    HIGH = "high"


class AnalysisInput(BaseModel):
    """
    One side of a comparison.

    Ratios may be omitted; they are then computed from the minerals.
    Flags are the composer's critical issues.
    """
    minerals: Dict[str, Optional[float]] = Field(default_factory=dict)
    ratios: Optional[Dict[str, float]] = None
    score: float = 0.0
    flags: Tuple[str, ...] = ()

    class Config:
        frozen = True


class DeltaDriver(BaseModel):
    """
    A single mineral, ratio, or flag contribution to a score change.

    impact_points is the signed attribution; limiter_points marks an item
    that stayed abnormal and held the score back without moving it.
    """
    category: DriverCategory
    key: str
    from_status: DriverStatus
    to_status: DriverStatus
    from_value: Optional[float] = None
    to_value: Optional[float] = None
    direction: DriverDirection
    impact_points: float
    limiter_points: float = 0.0
    note: str

    class Config:
        frozen = True


class DeltaEngineStamp(BaseModel):
    name: str = "scoreDeltaExplainer"
    version: str
    semantics_version: str
    reference_range_version: str

    class Config:
        frozen = True


class ScoreDeltaExplanation(BaseModel):
    engine: DeltaEngineStamp
    delta: float = Field(..., description="next.score - prev.score, one decimal")
    headline: str
    summary: str
    top_drivers: Tuple[DeltaDriver, ...] = Field(default=(), description="First 6 of all_drivers")
    all_drivers: Tuple[DeltaDriver, ...] = ()

    class Config:
        frozen = True
