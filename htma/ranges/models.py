"""
Reference Range Models

Pydantic models for versioned HTMA reference ranges and the measurements
classified against them.

CRITICAL CONSTRAINTS:
- Version records are immutable; activation produces a new record
- Range tables are frozen snapshots (tuples), never edited in place
- Toxic and additional elements are display-only

Version: ranges_v1
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field


class MeasurementStatus(str, Enum):
    """Status of a mineral or ratio against its ideal range."""
    LOW = "Low"
    OPTIMAL = "Optimal"
    HIGH = "High"


class RangeKind(str, Enum):
    """Minerals use the buffered rule, ratios the raw bounds."""
    MINERAL = "mineral"
    RATIO = "ratio"


class RangeChangeType(str, Enum):
    CREATED = "created"
    MIN_INCREASED = "min_increased"
    MIN_DECREASED = "min_decreased"
    MAX_INCREASED = "max_increased"
    MAX_DECREASED = "max_decreased"
    RANGE_WIDENED = "range_widened"
    RANGE_NARROWED = "range_narrowed"
    RANGE_SHIFTED = "range_shifted"
    UNIT_CHANGED = "unit_changed"
    DEPRECATED = "deprecated"


class ImpactLevel(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class MigrationSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ============================================================
# RANGE TABLE ENTRIES
# ============================================================

class MineralRange(BaseModel):
    """Ideal range for one nutrient mineral."""
    symbol: str
    name: str
    min_ideal: float
    max_ideal: float
    unit: str = "mg%"
    display_order: int = 0

    class Config:
        frozen = True


class RatioRange(BaseModel):
    """Ideal range for one mineral ratio (e.g. Ca/Mg)."""
    name: str
    numerator: str
    denominator: str
    min_ideal: float
    max_ideal: float
    display_order: int = 0
    clinical_significance: str = ""

    class Config:
        frozen = True


class RangeChange(BaseModel):
    """One curated change between two range versions."""
    mineral_symbol: str
    change_type: RangeChangeType
    old_min: Optional[float] = None
    old_max: Optional[float] = None
    new_min: Optional[float] = None
    new_max: Optional[float] = None
    rationale: str = ""
    citations: Tuple[str, ...] = ()

    class Config:
        frozen = True


class ReferenceRangeVersion(BaseModel):
    """
    A complete, immutable reference range table.

    At most one version is active at any instant; the registry enforces this.
    """
    version: str = Field(..., description="Semantic version id, e.g. 1.0.0")
    name: str
    standard: str
    created_at: datetime
    effective_date: datetime
    deprecated_at: Optional[datetime] = None
    supersedes: Optional[str] = None
    changes: Tuple[RangeChange, ...] = ()
    created_by: str = "system"
    notes: Optional[str] = None
    is_active: bool = False
    mineral_ranges: Tuple[MineralRange, ...]
    ratio_ranges: Tuple[RatioRange, ...]

    class Config:
        frozen = True

    def mineral(self, symbol: str) -> Optional[MineralRange]:
        for rng in self.mineral_ranges:
            if rng.symbol == symbol:
                return rng
        return None

    def ratio(self, name: str) -> Optional[RatioRange]:
        for rng in self.ratio_ranges:
            if rng.name == name:
                return rng
        return None

    @property
    def mineral_symbols(self) -> Tuple[str, ...]:
        return tuple(r.symbol for r in sorted(self.mineral_ranges, key=lambda r: r.display_order))

    @property
    def ratio_names(self) -> Tuple[str, ...]:
        return tuple(r.name for r in sorted(self.ratio_ranges, key=lambda r: r.display_order))


# ============================================================
# MEASUREMENTS
# ============================================================

class MineralMeasurement(BaseModel):
    symbol: str
    name: str
    value: float
    unit: str
    min_ideal: float
    max_ideal: float
    status: MeasurementStatus

    class Config:
        frozen = True


class RatioMeasurement(BaseModel):
    name: str
    numerator: str
    denominator: str
    value: float = Field(..., description="0 when the denominator is 0")
    min_ideal: float
    max_ideal: float
    status: MeasurementStatus
    clinical_significance: str

    class Config:
        frozen = True


class ToxicElementStatus(str, Enum):
    WITHIN = "within"
    ELEVATED = "elevated"


class ToxicElementReference(BaseModel):
    symbol: str
    name: str
    reference_high: float
    unit: str = "mg%"
    display_order: int = 0

    class Config:
        frozen = True


class ToxicElement(BaseModel):
    """Display-only; never feeds score, classification, or guardrails evidence."""
    symbol: str
    name: str
    value: float
    reference_high: float
    unit: str
    status: ToxicElementStatus

    class Config:
        frozen = True


class AdditionalElementReference(BaseModel):
    symbol: str
    name: str
    unit: str = "mg%"
    display_order: int = 0

    class Config:
        frozen = True


class AdditionalElement(BaseModel):
    """Display-only observational element."""
    symbol: str
    name: str
    value: float
    unit: str
    detected: bool

    class Config:
        frozen = True


# ============================================================
# VERSION COMPARISON / MIGRATION
# ============================================================

class MineralComparison(BaseModel):
    symbol: str
    name: str
    kind: RangeKind = RangeKind.MINERAL
    changed: bool
    old_min: Optional[float] = None
    new_min: Optional[float] = None
    old_max: Optional[float] = None
    new_max: Optional[float] = None
    min_change: Optional[float] = None
    max_change: Optional[float] = None
    min_change_percent: Optional[float] = None
    max_change_percent: Optional[float] = None
    impact_level: ImpactLevel

    class Config:
        frozen = True


class VersionComparison(BaseModel):
    from_version: str
    to_version: str
    total_changes: int
    minerals_changed: Tuple[str, ...]
    changes: Tuple[MineralComparison, ...]
    summary: str

    class Config:
        frozen = True


class RangeChangeImpact(BaseModel):
    mineral_symbol: str
    value: float
    old_status: MeasurementStatus
    new_status: MeasurementStatus
    status_changed: bool
    impact_description: str

    class Config:
        frozen = True


class MigrationRecommendation(BaseModel):
    should_migrate: bool
    reason: str
    affected_minerals: Tuple[str, ...] = ()
    status_changes: int = 0
    severity: MigrationSeverity = MigrationSeverity.LOW

    class Config:
        frozen = True


class RangeVersionStats(BaseModel):
    version: str
    analysis_count: int
    first_used: Optional[datetime] = None
    last_used: Optional[datetime] = None
    migration_recommended: bool = False

    class Config:
        frozen = True
