"""
HTMA Analysis Pipeline
======================
run_analysis() drives the whole chain for one analysis:

1. Resolve the range version (pinned or active)
2. Score (and explain the delta against a previous analysis, if given)
3. Classify oxidation
4. Guardrails + snapshot (create_report_snapshot)
5. Persist snapshot and audit event (best effort)

Persistence failure never discards the computed snapshot.
"""

import logging
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel

from .delta import ScoreDeltaExplanation, analysis_input, explain_score_delta
from .ranges.classify import normalize_values
from .ranges.models import ReferenceRangeVersion
from .ranges.registry import ReferenceRangeRegistry
from .scoring import calculate_health_score
from .snapshot import (
    AuditEvent,
    PatientInfo,
    ReportSnapshot,
    SnapshotStore,
    create_report_snapshot,
    persist_snapshot,
)

logger = logging.getLogger("htma.pipeline")


class AnalysisResult(BaseModel):
    snapshot: ReportSnapshot
    audit_event: AuditEvent
    content_hash: str
    persisted: bool = False

    class Config:
        frozen = True


def explain_against_previous(
    previous: Mapping[str, Optional[float]],
    current: Mapping[str, Optional[float]],
    version: ReferenceRangeVersion,
) -> ScoreDeltaExplanation:
    """Score both analyses under one version and explain the change."""
    prev_values = normalize_values(previous)
    next_values = normalize_values(current)
    prev_input = analysis_input(prev_values, calculate_health_score(prev_values, version))
    next_input = analysis_input(next_values, calculate_health_score(next_values, version))
    return explain_score_delta(prev_input, next_input, version)


def run_analysis(
    registry: ReferenceRangeRegistry,
    values: Mapping[str, Optional[float]],
    previous: Optional[Mapping[str, Optional[float]]] = None,
    insights: Sequence[str] = (),
    recommendations: Sequence[str] = (),
    version_id: Optional[str] = None,
    patient_info: Optional[PatientInfo] = None,
    is_practitioner_mode: bool = False,
    user_id: Optional[str] = None,
    store: Optional[SnapshotStore] = None,
) -> AnalysisResult:
    """
    Run one analysis end to end.

    Args:
        registry: Reference range registry
        values: Current mineral values
        previous: Previous analysis values, for the score delta
        insights: Untrusted narrative insight text
        recommendations: Untrusted narrative recommendation text
        version_id: Pin a range version (None = active)
        store: Persistence collaborator (default: configured SnapshotStore)

    Returns:
        AnalysisResult; persisted is False when storage is off or failed
    """
    version = registry.resolve(version_id)

    score_delta = None
    if previous is not None:
        score_delta = explain_against_previous(previous, values, version)

    result = create_report_snapshot(
        registry,
        values,
        insights=insights,
        recommendations=recommendations,
        version_id=version.version,
        score_delta=score_delta,
        patient_info=patient_info,
        is_practitioner_mode=is_practitioner_mode,
        user_id=user_id,
    )

    persisted = persist_snapshot(result, store)
    logger.info(f"Analysis {result.snapshot.report_id} complete (persisted={persisted})")

    return AnalysisResult(
        snapshot=result.snapshot,
        audit_event=result.audit_event,
        content_hash=result.content_hash,
        persisted=persisted,
    )
