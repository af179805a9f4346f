"""
HTMA Report Snapshot Models

Frozen records of one generation event. Every collection is a tuple;
a later edit is a new PractitionerAnnotation on a new snapshot.

Version: 1.0.0
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from ..delta.models import ScoreDeltaExplanation
from ..guardrails.models import GuardrailsResult
from ..oxidation.models import OxidationClassification
from ..ranges.models import AdditionalElement, MineralMeasurement, RatioMeasurement, ToxicElement
from ..scoring.models import HealthScoreBreakdown


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================
# AUDIT
# ============================================================

class AuditEventType(str, Enum):
    ANALYSIS_CREATED = "ANALYSIS_CREATED"
    REPORT_GENERATED = "REPORT_GENERATED"
    ANALYSIS_LOADED = "ANALYSIS_LOADED"
    SNAPSHOT_CREATED = "SNAPSHOT_CREATED"
    REPORT_EXPORTED = "REPORT_EXPORTED"


class AuditEvent(BaseModel):
    """Non-PHI metadata about one operation. report_id is NOT a patient id."""
    event_type: AuditEventType
    report_id: str
    timestamp: datetime
    engine_version: str
    prompt_version: str
    ai_model: str
    app_version: str
    is_practitioner_mode: bool = False
    user_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True


# ============================================================
# ANNOTATIONS
# ============================================================

class AnnotationType(str, Enum):
    INSIGHT_REVIEW = "insight_review"
    MINERAL_NOTE = "mineral_note"
    RATIO_NOTE = "ratio_note"
    OXIDATION_NOTE = "oxidation_note"
    GENERAL_NOTE = "general_note"
    OVERRIDE = "override"


class OverrideStatus(str, Enum):
    REVIEWED = "reviewed"
    MODIFIED = "modified"
    REPLACED = "replaced"
    FLAGGED = "flagged"


class PractitionerAnnotation(BaseModel):
    id: str
    type: AnnotationType
    target: str
    content: str
    override_status: Optional[OverrideStatus] = None
    original_content: Optional[str] = None
    practitioner_id: str
    practitioner_name: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    visible_to_client: bool = Field(
        default=False,
        description="Client-facing exports keep only annotations with this set"
    )

    class Config:
        frozen = True


class AnnotationStats(BaseModel):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    client_visible: int = 0
    practitioner_only: int = 0
    with_overrides: int = 0


# ============================================================
# SNAPSHOT
# ============================================================

class ReportMetadata(BaseModel):
    report_id: str
    generated_at: datetime
    app_version: str
    analysis_engine_version: str
    ai_model: str
    prompt_version: str
    reference_range_version: str
    semantics_version: str
    guardrails_version: str
    oxidation_version: str
    is_practitioner_mode: bool = False

    class Config:
        frozen = True


class PatientInfo(BaseModel):
    """Display-only; never copied into audit events."""
    name: Optional[str] = None
    test_date: Optional[str] = None

    class Config:
        frozen = True


class ReportSnapshot(BaseModel):
    metadata: ReportMetadata
    patient_info: PatientInfo = PatientInfo()
    minerals: Tuple[MineralMeasurement, ...]
    ratios: Tuple[RatioMeasurement, ...]
    toxic_elements: Tuple[ToxicElement, ...] = ()
    additional_elements: Tuple[AdditionalElement, ...] = ()
    health_score: HealthScoreBreakdown
    score_delta: Optional[ScoreDeltaExplanation] = None
    oxidation: OxidationClassification
    guardrails: GuardrailsResult
    insights: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
    annotations: Tuple[PractitionerAnnotation, ...] = ()

    class Config:
        frozen = True

    @property
    def report_id(self) -> str:
        return self.metadata.report_id


class SnapshotResult(BaseModel):
    """What construction hands back: the snapshot and its audit event."""
    snapshot: ReportSnapshot
    audit_event: AuditEvent
    content_hash: str

    class Config:
        frozen = True


class ClientExport(BaseModel):
    snapshot: ReportSnapshot
    audit_event: AuditEvent
    audience: str
    channel: str

    class Config:
        frozen = True
