"""
Report Export Boundary

Guardrails run at generation AND again here, before text leaves for a
client. Client exports carry client-visible annotations only.
"""

import logging
from typing import Optional

from ..guardrails import Audience, Channel, GuardrailsContext, apply_guardrails, evidence_from_analysis
from .annotations import client_visible_annotations
from .audit import create_audit_event, log_audit_event
from .models import AuditEventType, ClientExport, ReportSnapshot

logger = logging.getLogger("htma.snapshot")


def _export(
    snapshot: ReportSnapshot,
    audience: Audience,
    channel: Channel,
    user_id: Optional[str],
) -> ClientExport:
    ctx = GuardrailsContext(
        audience=audience,
        channel=channel,
        evidence=evidence_from_analysis(
            snapshot.minerals,
            snapshot.ratios,
            snapshot.health_score.critical_issues,
        ),
    )
    guarded = apply_guardrails(snapshot.insights, snapshot.recommendations, ctx)

    annotations = snapshot.annotations
    if audience == Audience.CONSUMER:
        annotations = client_visible_annotations(annotations)

    exported = snapshot.model_copy(update={
        "guardrails": guarded,
        "insights": guarded.insights,
        "recommendations": guarded.recommendations,
        "annotations": annotations,
    })

    event = create_audit_event(
        AuditEventType.REPORT_EXPORTED,
        snapshot.report_id,
        is_practitioner_mode=snapshot.metadata.is_practitioner_mode,
        user_id=user_id,
        metadata={
            "audience": audience.value,
            "channel": channel.value,
            "annotation_count": len(annotations),
        },
    )
    log_audit_event(event)
    logger.info(
        f"Exported {snapshot.report_id} for {audience.value} via {channel.value} "
        f"({len(snapshot.annotations) - len(annotations)} annotation(s) withheld)"
    )

    return ClientExport(
        snapshot=exported,
        audit_event=event,
        audience=audience.value,
        channel=channel.value,
    )


def export_for_client(
    snapshot: ReportSnapshot,
    channel: Channel = Channel.PDF,
    user_id: Optional[str] = None,
) -> ClientExport:
    """
    Client-facing export: consumer guardrails re-applied, practitioner-only
    annotations removed. The stored snapshot is not touched.
    """
    return _export(snapshot, Audience.CONSUMER, Channel(channel), user_id)


def export_for_practitioner(
    snapshot: ReportSnapshot,
    channel: Channel = Channel.PDF,
    user_id: Optional[str] = None,
) -> ClientExport:
    return _export(snapshot, Audience.PRACTITIONER, Channel(channel), user_id)
