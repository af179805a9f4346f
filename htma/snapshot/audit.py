"""
HTMA Audit Event System
=======================
Lightweight, non-PHI event records for traceability.

This module MUST NOT:
- Carry patient names, dates of birth, or contact details
- Carry test results or narrative insight content

Only metadata for audit trails and version tracking.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ..shared.versions import AI_MODEL, ANALYSIS_ENGINE_VERSION, APP_VERSION, PROMPT_VERSION
from .models import AuditEvent, AuditEventType, utc_now

logger = logging.getLogger("htma.audit")

PROHIBITED_METADATA_KEYS = frozenset(
    key.lower()
    for key in (
        "patientName",
        "name",
        "dob",
        "dateOfBirth",
        "ssn",
        "address",
        "phone",
        "email",
        "insights",
        "aiInsights",
        "mineralData",
        "testResults",
    )
)


def create_audit_event(
    event_type: AuditEventType,
    report_id: str,
    is_practitioner_mode: bool = False,
    user_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    timestamp: Optional[datetime] = None,
) -> AuditEvent:
    """
    Create an immutable audit event stamped with the current versions.

    Args:
        event_type: What happened
        report_id: Report/analysis UUID (not a patient identifier)
        is_practitioner_mode: Whether practitioner mode was active
        user_id: Optional account id (not a patient identifier)
        metadata: Optional non-PHI key/values

    Returns:
        AuditEvent
    """
    return AuditEvent(
        event_type=event_type,
        report_id=report_id,
        timestamp=timestamp or utc_now(),
        engine_version=ANALYSIS_ENGINE_VERSION,
        prompt_version=PROMPT_VERSION,
        ai_model=AI_MODEL,
        app_version=APP_VERSION,
        is_practitioner_mode=is_practitioner_mode,
        user_id=user_id,
        metadata=dict(metadata or {}),
    )


def format_audit_event(event: AuditEvent) -> str:
    parts = [
        f"[{event.timestamp.isoformat()}]",
        f"Event: {event.event_type.value}",
        f"ReportID: {event.report_id}",
        f"Engine: {event.engine_version}",
        f"Prompt: {event.prompt_version}",
        f"Practitioner: {str(event.is_practitioner_mode).lower()}",
    ]
    if event.user_id:
        parts.append(f"User: {event.user_id}")
    return " | ".join(parts)


def serialize_audit_event(event: AuditEvent) -> Dict[str, Any]:
    """Plain dict for database storage."""
    return {
        "event_type": event.event_type.value,
        "report_id": event.report_id,
        "timestamp": event.timestamp.isoformat(),
        "engine_version": event.engine_version,
        "prompt_version": event.prompt_version,
        "ai_model": event.ai_model,
        "app_version": event.app_version,
        "is_practitioner_mode": event.is_practitioner_mode,
        "user_id": event.user_id,
        "metadata": dict(event.metadata),
    }


def validate_no_phi(event: AuditEvent) -> bool:
    """False if any metadata key (case-insensitive) is a prohibited PHI key."""
    offending = sorted(k for k in event.metadata if k.lower() in PROHIBITED_METADATA_KEYS)
    if offending:
        logger.error(f"Audit event {event.report_id} carries prohibited keys: {offending}")
        return False
    return True


def log_audit_event(event: AuditEvent) -> bool:
    """
    Log an audit event through the htma.audit logger.
    Returns False (and logs nothing but the refusal) when PHI is present.
    """
    if not validate_no_phi(event):
        logger.error(f"Refusing to log audit event {event.event_type.value} with potential PHI")
        return False
    logger.info(format_audit_event(event))
    return True
