"""
HTMA Reference Range Registry & Versioning

Canonical, versioned ideal ranges and the classification primitive.

This module ONLY:
- Classifies minerals (buffered) and ratios (raw bounds)
- Stores immutable range versions with a single active pointer
- Compares versions and advises on analysis migration

Version: ranges_v1
"""

from .models import (
    MeasurementStatus,
    RangeKind,
    RangeChangeType,
    ImpactLevel,
    MigrationSeverity,
    MineralRange,
    RatioRange,
    RangeChange,
    ReferenceRangeVersion,
    MineralMeasurement,
    RatioMeasurement,
    ToxicElement,
    ToxicElementStatus,
    AdditionalElement,
    MineralComparison,
    VersionComparison,
    RangeChangeImpact,
    MigrationRecommendation,
    RangeVersionStats,
)
from .classify import (
    classify,
    calculate_ratio,
    normalize_values,
    measure_minerals,
    measure_ratios,
    compute_ratio_values,
    non_optimal_ratios,
    measure_toxic_elements,
    measure_additional_elements,
)
from .registry import ReferenceRangeRegistry, load_default_registry
from .versioning import (
    compare_versions,
    detect_change_type,
    analyze_range_change_impact,
    should_migrate_analysis,
    calculate_version_stats,
    is_valid_version_id,
    validate_reference_range,
    format_version_display,
)
from .admin import router as ranges_router

__all__ = [
    # Models
    "MeasurementStatus",
    "RangeKind",
    "RangeChangeType",
    "ImpactLevel",
    "MigrationSeverity",
    "MineralRange",
    "RatioRange",
    "RangeChange",
    "ReferenceRangeVersion",
    "MineralMeasurement",
    "RatioMeasurement",
    "ToxicElement",
    "ToxicElementStatus",
    "AdditionalElement",
    "MineralComparison",
    "VersionComparison",
    "RangeChangeImpact",
    "MigrationRecommendation",
    "RangeVersionStats",
    # Classification
    "classify",
    "calculate_ratio",
    "normalize_values",
    "measure_minerals",
    "measure_ratios",
    "compute_ratio_values",
    "non_optimal_ratios",
    "measure_toxic_elements",
    "measure_additional_elements",
    # Registry
    "ReferenceRangeRegistry",
    "load_default_registry",
    # Versioning
    "compare_versions",
    "detect_change_type",
    "analyze_range_change_impact",
    "should_migrate_analysis",
    "calculate_version_stats",
    "is_valid_version_id",
    "validate_reference_range",
    "format_version_display",
    # Router
    "ranges_router",
]

__version__ = "ranges_v1"
