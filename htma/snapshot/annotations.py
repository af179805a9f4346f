"""
Practitioner Annotation Engine

Creation, update, and queries for practitioner annotations. Every
operation returns a new record or a new tuple; nothing is mutated.

Version: 1.0.0
"""

import uuid
from typing import Iterable, Optional, Tuple

from ..errors import AnnotationValidationError
from ..ranges.classify import MINERAL_SYMBOLS
from .models import (
    AnnotationStats,
    AnnotationType,
    OverrideStatus,
    PractitionerAnnotation,
    utc_now,
)

MAX_CONTENT_LENGTH = 5000
INSIGHTS_TARGET = "ai_insights"

ANNOTATION_TYPE_LABELS = {
    AnnotationType.INSIGHT_REVIEW: "AI Insight Review",
    AnnotationType.MINERAL_NOTE: "Mineral Note",
    AnnotationType.RATIO_NOTE: "Ratio Note",
    AnnotationType.OXIDATION_NOTE: "Oxidation Note",
    AnnotationType.GENERAL_NOTE: "General Note",
    AnnotationType.OVERRIDE: "Override",
}

OVERRIDE_STATUS_LABELS = {
    OverrideStatus.REVIEWED: "Reviewed & Approved",
    OverrideStatus.MODIFIED: "Modified by Practitioner",
    OverrideStatus.REPLACED: "Replaced by Practitioner",
    OverrideStatus.FLAGGED: "Flagged for Review",
}

RATIO_TARGETS = ("ca_mg", "na_k", "ca_p", "zn_cu", "fe_cu", "ca_k")

SPECIAL_TARGETS = {
    INSIGHTS_TARGET: "AI Insights",
    "oxidation": "Oxidation Classification",
    "health_score": "Health Score",
    "general": "General Report",
}

VALID_TARGETS = frozenset(
    [symbol.lower() for symbol in MINERAL_SYMBOLS.values()]
    + list(RATIO_TARGETS)
    + list(SPECIAL_TARGETS)
)


# ============================================================
# VALIDATION
# ============================================================

def validate_annotation_content(content: Optional[str]) -> Optional[str]:
    if not content or not content.strip():
        return "Annotation content cannot be empty"
    if len(content) > MAX_CONTENT_LENGTH:
        return f"Annotation content must be {MAX_CONTENT_LENGTH} characters or less"
    return None


def validate_practitioner_info(practitioner_id: Optional[str], practitioner_name: Optional[str]) -> Optional[str]:
    if not practitioner_id or not practitioner_id.strip():
        return "Practitioner ID is required"
    if not practitioner_name or not practitioner_name.strip():
        return "Practitioner name is required"
    return None


def is_valid_annotation_target(target: str) -> bool:
    return target.lower() in VALID_TARGETS


def get_target_display_name(target: str) -> str:
    if target in SPECIAL_TARGETS:
        return SPECIAL_TARGETS[target]
    if "_" in target:
        return target.upper().replace("_", "/", 1)
    return target.upper()


# ============================================================
# CREATION
# ============================================================

def generate_annotation_id() -> str:
    return f"ann_{uuid.uuid4().hex}"


def create_annotation(
    type: AnnotationType,
    target: str,
    content: str,
    practitioner_id: str,
    practitioner_name: str,
    override_status: Optional[OverrideStatus] = None,
    original_content: Optional[str] = None,
    visible_to_client: bool = False,
) -> PractitionerAnnotation:
    """
    Create a new annotation. Raises AnnotationValidationError on empty or
    oversized content, or a missing author.
    """
    errors = [
        e for e in (
            validate_annotation_content(content),
            validate_practitioner_info(practitioner_id, practitioner_name),
        )
        if e
    ]
    if errors:
        raise AnnotationValidationError(errors)

    return PractitionerAnnotation(
        id=generate_annotation_id(),
        type=type,
        target=target,
        content=content.strip(),
        override_status=override_status,
        original_content=original_content,
        practitioner_id=practitioner_id,
        practitioner_name=practitioner_name,
        created_at=utc_now(),
        visible_to_client=visible_to_client,
    )


def update_annotation(
    annotation: PractitionerAnnotation,
    content: Optional[str] = None,
    override_status: Optional[OverrideStatus] = None,
    visible_to_client: Optional[bool] = None,
) -> PractitionerAnnotation:
    """New record with the given fields replaced and updated_at set."""
    updates = {"updated_at": utc_now()}
    if content is not None:
        error = validate_annotation_content(content)
        if error:
            raise AnnotationValidationError([error])
        updates["content"] = content.strip()
    if override_status is not None:
        updates["override_status"] = override_status
    if visible_to_client is not None:
        updates["visible_to_client"] = visible_to_client
    return annotation.model_copy(update=updates)


# ============================================================
# COLLECTION OPERATIONS
# ============================================================

Annotations = Tuple[PractitionerAnnotation, ...]


def add_annotation(annotations: Iterable[PractitionerAnnotation], annotation: PractitionerAnnotation) -> Annotations:
    return tuple(annotations) + (annotation,)


def remove_annotation(annotations: Iterable[PractitionerAnnotation], annotation_id: str) -> Annotations:
    return tuple(a for a in annotations if a.id != annotation_id)


def replace_annotation(
    annotations: Iterable[PractitionerAnnotation],
    annotation_id: str,
    updated: PractitionerAnnotation,
) -> Annotations:
    return tuple(updated if a.id == annotation_id else a for a in annotations)


def annotations_for_target(annotations: Iterable[PractitionerAnnotation], target: str) -> Annotations:
    return tuple(a for a in annotations if a.target == target)


def annotations_by_type(annotations: Iterable[PractitionerAnnotation], type: AnnotationType) -> Annotations:
    return tuple(a for a in annotations if a.type == type)


def client_visible_annotations(annotations: Iterable[PractitionerAnnotation]) -> Annotations:
    return tuple(a for a in annotations if a.visible_to_client)


def practitioner_only_annotations(annotations: Iterable[PractitionerAnnotation]) -> Annotations:
    return tuple(a for a in annotations if not a.visible_to_client)


def latest_annotation(annotations: Iterable[PractitionerAnnotation], target: str) -> Optional[PractitionerAnnotation]:
    candidates = annotations_for_target(annotations, target)
    if not candidates:
        return None
    return max(candidates, key=lambda a: a.updated_at or a.created_at)


def has_insight_override(annotations: Iterable[PractitionerAnnotation]) -> bool:
    return any(a.target == INSIGHTS_TARGET and a.override_status is not None for a in annotations)


def insight_override_status(annotations: Iterable[PractitionerAnnotation]) -> Optional[OverrideStatus]:
    for a in annotations:
        if a.target == INSIGHTS_TARGET and a.override_status is not None:
            return a.override_status
    return None


def annotation_stats(annotations: Iterable[PractitionerAnnotation]) -> AnnotationStats:
    annotations = tuple(annotations)
    by_type = {t.value: 0 for t in AnnotationType}
    for a in annotations:
        by_type[a.type.value] += 1

    visible = len(client_visible_annotations(annotations))
    return AnnotationStats(
        total=len(annotations),
        by_type=by_type,
        client_visible=visible,
        practitioner_only=len(annotations) - visible,
        with_overrides=sum(1 for a in annotations if a.override_status is not None),
    )
