"""
Report Snapshot Builder
=======================
create_report_snapshot() is the only place a ReportSnapshot is built.

This module:
- Measures minerals and ratios under the pinned (or active) range version
- Composes the Health Score and classifies oxidation when not supplied
- Passes narrative text through the guardrails gate (storage channel)
- Stamps every version and emits a SNAPSHOT_CREATED audit event

This module MUST NOT:
- Mutate a snapshot after construction
- Call out to persistence (see store.py)
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..delta.models import ScoreDeltaExplanation
from ..guardrails import (
    INTERPRETATION_GUARDRAILS_VERSION,
    Audience,
    Channel,
    GuardrailsContext,
    apply_guardrails,
    evidence_from_analysis,
)
from ..oxidation import OXIDATION_ENGINE_VERSION, OxidationClassification, classify_oxidation
from ..ranges.classify import (
    measure_additional_elements,
    measure_minerals,
    measure_ratios,
    measure_toxic_elements,
    normalize_values,
)
from ..ranges.registry import ReferenceRangeRegistry
from ..scoring import HEALTH_SCORE_SEMANTICS_VERSION, calculate_health_score
from ..shared.hashing import canonicalize_and_hash
from ..shared.versions import AI_MODEL, ANALYSIS_ENGINE_VERSION, APP_VERSION, PROMPT_VERSION
from .annotations import add_annotation
from .audit import create_audit_event, log_audit_event
from .models import (
    AuditEventType,
    PatientInfo,
    PractitionerAnnotation,
    ReportMetadata,
    ReportSnapshot,
    SnapshotResult,
    utc_now,
)

logger = logging.getLogger("htma.snapshot")

EXPECTED_MINERAL_COUNT = 15
EXPECTED_RATIO_COUNT = 6


def _metadata(version_id: str, is_practitioner_mode: bool, generated_at: Optional[datetime] = None) -> ReportMetadata:
    return ReportMetadata(
        report_id=str(uuid.uuid4()),
        generated_at=generated_at or utc_now(),
        app_version=APP_VERSION,
        analysis_engine_version=ANALYSIS_ENGINE_VERSION,
        ai_model=AI_MODEL,
        prompt_version=PROMPT_VERSION,
        reference_range_version=version_id,
        semantics_version=HEALTH_SCORE_SEMANTICS_VERSION,
        guardrails_version=INTERPRETATION_GUARDRAILS_VERSION,
        oxidation_version=OXIDATION_ENGINE_VERSION,
        is_practitioner_mode=is_practitioner_mode,
    )


def create_report_snapshot(
    registry: ReferenceRangeRegistry,
    values: Mapping[str, Optional[float]],
    insights: Sequence[str] = (),
    recommendations: Sequence[str] = (),
    version_id: Optional[str] = None,
    ratio_values: Optional[Mapping[str, float]] = None,
    score_delta: Optional[ScoreDeltaExplanation] = None,
    classification: Optional[OxidationClassification] = None,
    patient_info: Optional[PatientInfo] = None,
    annotations: Iterable[PractitionerAnnotation] = (),
    trends: Sequence[str] = (),
    is_practitioner_mode: bool = False,
    user_id: Optional[str] = None,
) -> SnapshotResult:
    """
    Freeze one analysis into an immutable snapshot.

    Args:
        registry: Reference range registry
        values: Mineral symbol (or full name) -> value; missing reads as 0
        insights: Narrative insight text (untrusted, sanitized here)
        recommendations: Narrative recommendation text (untrusted)
        version_id: Pin a range version; None uses the active one
        score_delta: Explanation against a previous analysis, if any
        classification: Pre-computed oxidation classification
        is_practitioner_mode: Selects the guardrails audience

    Returns:
        SnapshotResult with the snapshot, its audit event and content hash

    Raises:
        RangeConfigurationError: nothing is active and no version is pinned
        VersionNotFoundError: the pinned version does not exist
    """
    version = registry.resolve(version_id)
    normalized = normalize_values(values)

    minerals = measure_minerals(normalized, version)
    ratios = measure_ratios(normalized, version, ratio_values)
    health_score = calculate_health_score(normalized, version)
    oxidation = classification or classify_oxidation(normalized)

    ctx = GuardrailsContext(
        audience=Audience.PRACTITIONER if is_practitioner_mode else Audience.CONSUMER,
        channel=Channel.STORAGE,
        evidence=evidence_from_analysis(minerals, ratios, health_score.critical_issues, trends),
    )
    guarded = apply_guardrails(insights, recommendations, ctx)

    snapshot = ReportSnapshot(
        metadata=_metadata(version.version, is_practitioner_mode),
        patient_info=patient_info or PatientInfo(),
        minerals=minerals,
        ratios=ratios,
        toxic_elements=measure_toxic_elements(values, registry.toxic_references),
        additional_elements=measure_additional_elements(values, registry.additional_references),
        health_score=health_score,
        score_delta=score_delta,
        oxidation=oxidation,
        guardrails=guarded,
        insights=guarded.insights,
        recommendations=guarded.recommendations,
        annotations=tuple(annotations),
    )

    digest = content_hash(snapshot)
    event = create_audit_event(
        AuditEventType.SNAPSHOT_CREATED,
        snapshot.report_id,
        is_practitioner_mode=is_practitioner_mode,
        user_id=user_id,
        metadata={
            "reference_range_version": version.version,
            "semantics_version": HEALTH_SCORE_SEMANTICS_VERSION,
            "content_hash": digest,
        },
    )
    log_audit_event(event)
    logger.info(f"Snapshot {snapshot.report_id} created (ranges v{version.version}, score {health_score.total_score})")

    return SnapshotResult(snapshot=snapshot, audit_event=event, content_hash=digest)


def content_hash(snapshot: ReportSnapshot) -> str:
    """
    SHA-256 over the computed sections. Report id and timestamps are
    excluded, so identical input hashes equal across constructions.
    """
    computed = snapshot.model_dump(mode="json", exclude={"patient_info"})
    return canonicalize_and_hash(computed)


def with_annotation(snapshot: ReportSnapshot, annotation: PractitionerAnnotation) -> ReportSnapshot:
    """New snapshot (fresh report id) carrying the extra annotation."""
    metadata = snapshot.metadata.model_copy(update={"report_id": str(uuid.uuid4())})
    return snapshot.model_copy(update={
        "metadata": metadata,
        "annotations": add_annotation(snapshot.annotations, annotation),
    })


def is_valid_report_snapshot(obj: Any) -> bool:
    """True when obj parses as a snapshot carrying the full mineral and ratio tables."""
    if isinstance(obj, ReportSnapshot):
        snapshot = obj
    else:
        try:
            snapshot = ReportSnapshot.model_validate(obj)
        except ValidationError:
            return False
    return (
        len(snapshot.minerals) == EXPECTED_MINERAL_COUNT
        and len(snapshot.ratios) == EXPECTED_RATIO_COUNT
    )
