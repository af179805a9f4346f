"""
Oxidation Classification Models

Version: 1.0.0
"""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, Field


class OxidationType(str, Enum):
    FAST = "fast"
    SLOW = "slow"
    MIXED = "mixed"
    BALANCED = "balanced"


class IndicatorStatus(str, Enum):
    LOW = "low"
    OPTIMAL = "optimal"
    HIGH = "high"


class RatioSignal(str, Enum):
    FAST = "fast"
    SLOW = "slow"
    OPTIMAL = "optimal"


class OxidationConfidence(str, Enum):
    """Rule-based, not ML."""
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class RatioSignals(BaseModel):
    ca_k: RatioSignal
    na_k: RatioSignal
    ca_mg: RatioSignal

    class Config:
        frozen = True


class OxidationIndicators(BaseModel):
    calcium_status: IndicatorStatus
    magnesium_status: IndicatorStatus
    sodium_status: IndicatorStatus
    potassium_status: IndicatorStatus
    ratio_signals: RatioSignals

    class Config:
        frozen = True


class CoreMineralValues(BaseModel):
    ca: float
    mg: float
    na: float
    k: float

    class Config:
        frozen = True


class OxidationRatioValues(BaseModel):
    ca_k: float
    na_k: float
    ca_mg: float

    class Config:
        frozen = True


class OxidationMetadata(BaseModel):
    mineral_values: CoreMineralValues
    ratio_values: OxidationRatioValues
    alignment_score: int = Field(..., ge=0, le=6, description="Votes for the winning side (6 for Balanced)")

    class Config:
        frozen = True


class OxidationClassification(BaseModel):
    type: OxidationType
    confidence: OxidationConfidence
    indicators: OxidationIndicators
    interpretation: str
    explanation: str = Field(..., description="Built from the exact signals used to classify")
    threshold_warnings: Tuple[str, ...] = ()
    insufficient_data: bool = False
    semantics_version: str
    metadata: OxidationMetadata

    class Config:
        frozen = True
