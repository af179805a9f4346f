"""
HTMA Report Snapshot & Audit Trail

Immutable report snapshots, practitioner annotations, non-PHI audit
events, the export boundary and the persistence collaborator.

This module ONLY:
- Freezes one generation event into a ReportSnapshot
- Records edits as additive annotations on a new snapshot
- Filters client exports to client-visible annotations

Version: 1.0.0
"""

from .models import (
    AuditEventType,
    AuditEvent,
    AnnotationType,
    OverrideStatus,
    PractitionerAnnotation,
    AnnotationStats,
    ReportMetadata,
    PatientInfo,
    ReportSnapshot,
    SnapshotResult,
    ClientExport,
)

from .audit import (
    PROHIBITED_METADATA_KEYS,
    create_audit_event,
    format_audit_event,
    serialize_audit_event,
    validate_no_phi,
    log_audit_event,
)

from .annotations import (
    MAX_CONTENT_LENGTH,
    ANNOTATION_TYPE_LABELS,
    OVERRIDE_STATUS_LABELS,
    create_annotation,
    update_annotation,
    add_annotation,
    remove_annotation,
    replace_annotation,
    annotations_for_target,
    annotations_by_type,
    client_visible_annotations,
    practitioner_only_annotations,
    latest_annotation,
    has_insight_override,
    insight_override_status,
    annotation_stats,
    validate_annotation_content,
    validate_practitioner_info,
    is_valid_annotation_target,
    get_target_display_name,
)

from .builder import (
    create_report_snapshot,
    content_hash,
    with_annotation,
    is_valid_report_snapshot,
)

from .export import export_for_client, export_for_practitioner

from .store import SnapshotStore, persist_snapshot

__all__ = [
    # Models
    "AuditEventType",
    "AuditEvent",
    "AnnotationType",
    "OverrideStatus",
    "PractitionerAnnotation",
    "AnnotationStats",
    "ReportMetadata",
    "PatientInfo",
    "ReportSnapshot",
    "SnapshotResult",
    "ClientExport",
    # Audit
    "PROHIBITED_METADATA_KEYS",
    "create_audit_event",
    "format_audit_event",
    "serialize_audit_event",
    "validate_no_phi",
    "log_audit_event",
    # Annotations
    "MAX_CONTENT_LENGTH",
    "ANNOTATION_TYPE_LABELS",
    "OVERRIDE_STATUS_LABELS",
    "create_annotation",
    "update_annotation",
    "add_annotation",
    "remove_annotation",
    "replace_annotation",
    "annotations_for_target",
    "annotations_by_type",
    "client_visible_annotations",
    "practitioner_only_annotations",
    "latest_annotation",
    "has_insight_override",
    "insight_override_status",
    "annotation_stats",
    "validate_annotation_content",
    "validate_practitioner_info",
    "is_valid_annotation_target",
    "get_target_display_name",
    # Builder
    "create_report_snapshot",
    "content_hash",
    "with_annotation",
    "is_valid_report_snapshot",
    # Export
    "export_for_client",
    "export_for_practitioner",
    # Persistence
    "SnapshotStore",
    "persist_snapshot",
]

__version__ = "1.0.0"
