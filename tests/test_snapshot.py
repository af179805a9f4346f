"""
Tests for report snapshots, annotations, the audit trail and persistence

Test Categories:
1. Snapshot construction and immutability
2. Content hash stability
3. Practitioner annotations
4. Audit events (non-PHI)
5. Export boundary
6. Persistence (best effort) and the analysis pipeline
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import psycopg2
import pytest
from pydantic import ValidationError

from htma.errors import AnnotationValidationError
from htma.guardrails import FULL_DISCLAIMER, SHORT_DISCLAIMER, Channel
from htma.pipeline import run_analysis
from htma.shared.versions import ANALYSIS_ENGINE_VERSION, PROMPT_VERSION
from htma.snapshot import (
    AnnotationType,
    AuditEventType,
    OverrideStatus,
    PatientInfo,
    SnapshotStore,
    annotation_stats,
    annotations_by_type,
    annotations_for_target,
    client_visible_annotations,
    content_hash,
    create_annotation,
    create_audit_event,
    create_report_snapshot,
    export_for_client,
    export_for_practitioner,
    format_audit_event,
    get_target_display_name,
    has_insight_override,
    insight_override_status,
    is_valid_annotation_target,
    is_valid_report_snapshot,
    latest_annotation,
    log_audit_event,
    persist_snapshot,
    practitioner_only_annotations,
    remove_annotation,
    replace_annotation,
    serialize_audit_event,
    update_annotation,
    validate_no_phi,
    with_annotation,
)


def _note(target="ca", visible=False, override_status=None, type=AnnotationType.MINERAL_NOTE):
    return create_annotation(
        type=type,
        target=target,
        content="Recheck after dietary changes",
        practitioner_id="prac-1",
        practitioner_name="Dr. Rivera",
        override_status=override_status,
        visible_to_client=visible,
    )


@pytest.fixture
def result(registry, optimal_values):
    return create_report_snapshot(
        registry,
        optimal_values,
        insights=["Calcium pattern may suggest steady energy"],
        recommendations=["Discuss zinc intake"],
        patient_info=PatientInfo(name="Jane Doe", test_date="2025-11-03"),
    )


# ============================================================
# CONSTRUCTION
# ============================================================

class TestSnapshotConstruction:

    def test_full_tables(self, result):
        snapshot = result.snapshot
        assert len(snapshot.minerals) == 15
        assert len(snapshot.ratios) == 6
        assert snapshot.toxic_elements == ()
        assert snapshot.health_score.total_score == 100

    def test_toxic_elements_reported_when_present(self, registry, optimal_values):
        built = create_report_snapshot(registry, {**optimal_values, "Pb": 1.2, "Hg": 0.1})
        toxic = {t.symbol: t.status.value for t in built.snapshot.toxic_elements}
        assert toxic == {"Hg": "within", "Pb": "elevated"}

    def test_version_stamps(self, result):
        metadata = result.snapshot.metadata
        assert metadata.reference_range_version == "1.0.0"
        assert metadata.analysis_engine_version == ANALYSIS_ENGINE_VERSION
        assert metadata.is_practitioner_mode is False

    def test_storage_channel_guardrails(self, result):
        assert result.snapshot.guardrails.channel == Channel.STORAGE
        assert result.snapshot.recommendations[-1] == SHORT_DISCLAIMER
        assert result.snapshot.guardrails.notes is None

    def test_creation_event(self, result):
        event = result.audit_event
        assert event.event_type == AuditEventType.SNAPSHOT_CREATED
        assert event.report_id == result.snapshot.report_id
        assert event.metadata["content_hash"] == result.content_hash
        assert validate_no_phi(event)

    def test_snapshot_is_frozen(self, result):
        with pytest.raises(ValidationError):
            result.snapshot.insights = ("edited",)

    def test_unsafe_text_sanitized_before_freezing(self, registry, low_calcium_values):
        built = create_report_snapshot(registry, low_calcium_values, insights=["You have cancer risk", "You have low zinc"])
        assert built.snapshot.insights == ("This pattern may suggest: You have low zinc",)
        assert built.snapshot.guardrails.removed_count == 1

    def test_practitioner_mode(self, registry, low_calcium_values):
        built = create_report_snapshot(registry, low_calcium_values, insights=["You have low calcium"], is_practitioner_mode=True)
        assert built.snapshot.metadata.is_practitioner_mode is True
        assert built.snapshot.guardrails.notes
        assert built.audit_event.is_practitioner_mode is True

    def test_pinned_version(self, registry, optimal_values):
        built = create_report_snapshot(registry, optimal_values, version_id="1.0.0")
        assert built.snapshot.metadata.reference_range_version == "1.0.0"

    def test_validity_check(self, result):
        assert is_valid_report_snapshot(result.snapshot)
        assert is_valid_report_snapshot(result.snapshot.model_dump(mode="json"))
        assert not is_valid_report_snapshot({})
        truncated = result.snapshot.model_copy(update={"ratios": result.snapshot.ratios[:5]})
        assert not is_valid_report_snapshot(truncated)


# ============================================================
# CONTENT HASH
# ============================================================

class TestContentHash:

    def test_same_input_same_hash(self, registry, optimal_values, result):
        again = create_report_snapshot(
            registry,
            optimal_values,
            insights=["Calcium pattern may suggest steady energy"],
            recommendations=["Discuss zinc intake"],
        )
        assert again.snapshot.report_id != result.snapshot.report_id
        assert again.content_hash == result.content_hash

    def test_different_input_different_hash(self, registry, low_calcium_values, result):
        other = create_report_snapshot(
            registry,
            low_calcium_values,
            insights=["Calcium pattern may suggest steady energy"],
            recommendations=["Discuss zinc intake"],
        )
        assert other.content_hash != result.content_hash

    def test_hash_recomputes(self, result):
        assert content_hash(result.snapshot) == result.content_hash
        assert result.content_hash.startswith("sha256:")


# ============================================================
# ANNOTATIONS
# ============================================================

class TestAnnotations:

    def test_create_strips_content(self):
        annotation = create_annotation(
            AnnotationType.GENERAL_NOTE, "general", "  Follow up in spring  ", "prac-1", "Dr. Rivera",
        )
        assert annotation.content == "Follow up in spring"
        assert annotation.id.startswith("ann_")
        assert annotation.visible_to_client is False
        assert annotation.updated_at is None

    @pytest.mark.parametrize("content,practitioner_id,name", [
        ("", "prac-1", "Dr. Rivera"),
        ("   ", "prac-1", "Dr. Rivera"),
        ("x" * 5001, "prac-1", "Dr. Rivera"),
        ("Note", "", "Dr. Rivera"),
        ("Note", "prac-1", " "),
    ])
    def test_validation(self, content, practitioner_id, name):
        with pytest.raises(AnnotationValidationError):
            create_annotation(AnnotationType.GENERAL_NOTE, "general", content, practitioner_id, name)

    def test_update_is_a_new_record(self):
        original = _note()
        updated = update_annotation(original, content=" Revised ", visible_to_client=True)
        assert updated.content == "Revised"
        assert updated.visible_to_client is True
        assert updated.updated_at is not None
        assert original.content == "Recheck after dietary changes"
        assert updated.id == original.id

    def test_update_rejects_empty_content(self):
        with pytest.raises(AnnotationValidationError):
            update_annotation(_note(), content="")

    def test_collection_operations(self):
        a, b = _note("ca"), _note("zn", visible=True)
        annotations = (a, b)
        assert annotations_for_target(annotations, "zn") == (b,)
        assert client_visible_annotations(annotations) == (b,)
        assert practitioner_only_annotations(annotations) == (a,)
        assert remove_annotation(annotations, a.id) == (b,)

        revised = update_annotation(a, content="Revised")
        assert replace_annotation(annotations, a.id, revised) == (revised, b)

    def test_latest_annotation(self):
        older = _note("ca")
        newer = older.model_copy(update={"id": "ann_newer", "created_at": older.created_at + timedelta(minutes=5)})
        assert latest_annotation((older, newer), "ca") == newer
        assert latest_annotation((older,), "mg") is None

    def test_insight_override(self):
        plain = _note("ca")
        override = _note("ai_insights", override_status=OverrideStatus.FLAGGED, type=AnnotationType.OVERRIDE)
        assert not has_insight_override((plain,))
        assert has_insight_override((plain, override))
        assert insight_override_status((plain, override)) == OverrideStatus.FLAGGED
        assert annotations_by_type((plain, override), AnnotationType.OVERRIDE) == (override,)

    def test_stats(self):
        annotations = (
            _note("ca"),
            _note("zn", visible=True),
            _note("ai_insights", override_status=OverrideStatus.REVIEWED, type=AnnotationType.INSIGHT_REVIEW),
        )
        stats = annotation_stats(annotations)
        assert stats.total == 3
        assert stats.by_type["mineral_note"] == 2
        assert stats.by_type["override"] == 0
        assert stats.client_visible == 1
        assert stats.practitioner_only == 2
        assert stats.with_overrides == 1

    @pytest.mark.parametrize("target,valid", [
        ("ca", True), ("Zn", True), ("ca_mg", True), ("ai_insights", True),
        ("health_score", True), ("pb", False), ("ca_zn", False),
    ])
    def test_targets(self, target, valid):
        assert is_valid_annotation_target(target) is valid

    def test_target_display_names(self):
        assert get_target_display_name("ai_insights") == "AI Insights"
        assert get_target_display_name("ca_mg") == "CA/MG"
        assert get_target_display_name("zn") == "ZN"

    def test_with_annotation_makes_new_snapshot(self, result):
        annotation = _note()
        annotated = with_annotation(result.snapshot, annotation)
        assert annotated.annotations == (annotation,)
        assert annotated.report_id != result.snapshot.report_id
        assert result.snapshot.annotations == ()


# ============================================================
# AUDIT EVENTS
# ============================================================

class TestAuditEvents:

    def test_format(self):
        event = create_audit_event(
            AuditEventType.REPORT_GENERATED,
            "r-1",
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        assert format_audit_event(event) == (
            f"[2025-01-01T00:00:00+00:00] | Event: REPORT_GENERATED | ReportID: r-1 | "
            f"Engine: {ANALYSIS_ENGINE_VERSION} | Prompt: {PROMPT_VERSION} | Practitioner: false"
        )

    def test_format_with_user(self):
        event = create_audit_event(AuditEventType.ANALYSIS_LOADED, "r-1", is_practitioner_mode=True, user_id="u-9")
        formatted = format_audit_event(event)
        assert formatted.endswith("| Practitioner: true | User: u-9")

    def test_serialize(self):
        event = create_audit_event(
            AuditEventType.ANALYSIS_CREATED,
            "r-1",
            metadata={"channel": "pdf"},
            timestamp=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        data = serialize_audit_event(event)
        assert data["event_type"] == "ANALYSIS_CREATED"
        assert data["timestamp"] == "2025-01-01T00:00:00+00:00"
        assert data["metadata"] == {"channel": "pdf"}

    @pytest.mark.parametrize("key", ["patientName", "PATIENTNAME", "email", "mineralData", "insights"])
    def test_phi_keys_rejected(self, key):
        event = create_audit_event(AuditEventType.ANALYSIS_CREATED, "r-1", metadata={key: "x"})
        assert validate_no_phi(event) is False

    def test_log_refuses_phi(self, caplog):
        event = create_audit_event(AuditEventType.ANALYSIS_CREATED, "r-1", metadata={"dob": "1990-01-01"})
        assert log_audit_event(event) is False
        assert "Refusing to log audit event" in caplog.text

    def test_log_accepts_clean_event(self):
        event = create_audit_event(AuditEventType.ANALYSIS_CREATED, "r-1", metadata={"channel": "ui"})
        assert log_audit_event(event) is True


# ============================================================
# EXPORT BOUNDARY
# ============================================================

class TestExport:

    def test_client_export(self, result):
        hidden, shown = _note("ca"), _note("zn", visible=True)
        snapshot = with_annotation(with_annotation(result.snapshot, hidden), shown)

        exported = export_for_client(snapshot)
        assert exported.snapshot.annotations == (shown,)
        assert exported.snapshot.recommendations[-1] == FULL_DISCLAIMER
        assert SHORT_DISCLAIMER not in exported.snapshot.recommendations
        assert exported.audit_event.event_type == AuditEventType.REPORT_EXPORTED
        assert exported.audit_event.metadata == {"audience": "consumer", "channel": "pdf", "annotation_count": 1}
        assert snapshot.annotations == (hidden, shown)

    def test_practitioner_export_keeps_everything(self, result):
        snapshot = with_annotation(result.snapshot, _note("ca"))
        exported = export_for_practitioner(snapshot, channel=Channel.UI)
        assert len(exported.snapshot.annotations) == 1
        assert exported.snapshot.recommendations[-1] == SHORT_DISCLAIMER
        assert exported.audience == "practitioner"


# ============================================================
# PERSISTENCE AND PIPELINE
# ============================================================

class TestPersistence:

    def test_disabled_store_never_connects(self, result, disabled_store):
        with patch("htma.snapshot.store.psycopg2.connect") as connect:
            assert persist_snapshot(result, disabled_store) is False
            connect.assert_not_called()

    def test_connection_failure_returns_false(self, result):
        store = SnapshotStore(db_url="postgresql://localhost/htma", enabled=True)
        with patch("htma.snapshot.store.psycopg2.connect", side_effect=psycopg2.OperationalError("down")):
            assert store.save_snapshot(result.snapshot, result.content_hash) is False
            assert persist_snapshot(result, store) is False

    def test_successful_write(self, result):
        store = SnapshotStore(db_url="postgresql://localhost/htma", enabled=True)
        conn = MagicMock()
        with patch("htma.snapshot.store.psycopg2.connect", return_value=conn):
            assert persist_snapshot(result, store) is True
        assert conn.commit.called
        assert conn.close.call_count == 2

    def test_write_failure_rolls_back(self, result):
        store = SnapshotStore(db_url="postgresql://localhost/htma", enabled=True)
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = psycopg2.DatabaseError("boom")
        with patch("htma.snapshot.store.psycopg2.connect", return_value=conn):
            assert store.save_snapshot(result.snapshot, result.content_hash) is False
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    def test_phi_event_not_stored(self):
        store = SnapshotStore(db_url="postgresql://localhost/htma", enabled=True)
        event = create_audit_event(AuditEventType.ANALYSIS_CREATED, "r-1", metadata={"email": "x"})
        with patch("htma.snapshot.store.psycopg2.connect") as connect:
            assert store.save_audit_event(event) is False
            connect.assert_not_called()


class TestPipeline:

    def test_storage_failure_keeps_snapshot(self, registry, optimal_values):
        store = SnapshotStore(db_url="postgresql://localhost/htma", enabled=True)
        with patch("htma.snapshot.store.psycopg2.connect", side_effect=psycopg2.OperationalError("down")):
            analysis = run_analysis(registry, optimal_values, store=store)
        assert analysis.persisted is False
        assert analysis.snapshot.health_score.total_score == 100
        assert analysis.snapshot.score_delta is None

    def test_previous_analysis_explained(self, registry, optimal_values, low_calcium_values, disabled_store):
        analysis = run_analysis(registry, low_calcium_values, previous=optimal_values, store=disabled_store)
        assert analysis.snapshot.score_delta.delta == -20.0
        assert analysis.snapshot.score_delta.engine.reference_range_version == "1.0.0"
