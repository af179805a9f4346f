"""
HTMA Score Delta Explainer

Attributes a Health Score change between two analyses to named drivers
(minerals, ratios, red flags) with signed point impacts.

This module does NOT:
- Recompute or alter either score
- Use any range table other than the registry version passed in

Version: 1.0.0
"""

from .models import (
    AnalysisInput,
    DeltaDriver,
    DeltaEngineStamp,
    DriverCategory,
    DriverDirection,
    DriverStatus,
    ScoreDeltaExplanation,
)
from .explain import (
    DELTA_ENGINE_NAME,
    DELTA_ENGINE_VERSION,
    explain_score_delta,
    analysis_input,
    rank_drivers,
    make_headline,
    make_summary,
)

__all__ = [
    # Models
    "AnalysisInput",
    "DeltaDriver",
    "DeltaEngineStamp",
    "DriverCategory",
    "DriverDirection",
    "DriverStatus",
    "ScoreDeltaExplanation",
    # Functions
    "DELTA_ENGINE_NAME",
    "DELTA_ENGINE_VERSION",
    "explain_score_delta",
    "analysis_input",
    "rank_drivers",
    "make_headline",
    "make_summary",
]

__version__ = "1.0.0"
