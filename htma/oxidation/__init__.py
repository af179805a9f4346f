"""
HTMA Oxidation Pattern Classifier

Rule-derived metabolic-tendency label (fast / slow / mixed / balanced).
Not a diagnosis.

Version: 1.0.0
"""

from .models import (
    OxidationType,
    OxidationConfidence,
    IndicatorStatus,
    RatioSignal,
    RatioSignals,
    OxidationIndicators,
    OxidationMetadata,
    OxidationClassification,
)
from .classify import (
    OXIDATION_ENGINE_VERSION,
    OXIDATION_ENGINE_REVIEWED_DATE,
    MINERAL_RANGES,
    RATIO_RULES,
    classify_oxidation,
    calculate_confidence,
    detect_threshold_proximity,
    get_oxidation_type_label,
    get_confidence_description,
)
from .cases import (
    OXIDATION_REGRESSION_CASES,
    get_cases_by_type,
    get_boundary_cases,
    get_edge_cases,
)

__all__ = [
    # Models
    "OxidationType",
    "OxidationConfidence",
    "IndicatorStatus",
    "RatioSignal",
    "RatioSignals",
    "OxidationIndicators",
    "OxidationMetadata",
    "OxidationClassification",
    # Engine
    "OXIDATION_ENGINE_VERSION",
    "OXIDATION_ENGINE_REVIEWED_DATE",
    "MINERAL_RANGES",
    "RATIO_RULES",
    "classify_oxidation",
    "calculate_confidence",
    "detect_threshold_proximity",
    "get_oxidation_type_label",
    "get_confidence_description",
    # Regression cases
    "OXIDATION_REGRESSION_CASES",
    "get_cases_by_type",
    "get_boundary_cases",
    "get_edge_cases",
]

__version__ = "1.0.0"
