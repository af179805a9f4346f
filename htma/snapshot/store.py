"""
HTMA Snapshot Store
Persistence collaborator for snapshots and audit events.

Stores both verbatim (JSONB). Never raises: a failed write is logged
and reported as False, and the computed snapshot is still returned
by the caller.

Usage:
    from htma.snapshot import SnapshotStore

    store = SnapshotStore()
    persisted = store.save_snapshot(result.snapshot, result.content_hash)
"""

import json
import logging
from typing import Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from .. import config
from .audit import serialize_audit_event, validate_no_phi
from .models import AuditEvent, ReportSnapshot, SnapshotResult

logger = logging.getLogger("htma.snapshot.store")


class SnapshotStore:
    """
    Writes report snapshots and audit events to Postgres.
    Disabled when DATABASE_URL is unset or HTMA_PERSISTENCE_ENABLED=false.
    """

    def __init__(self, db_url: Optional[str] = None, enabled: Optional[bool] = None):
        self._db_url = db_url if db_url is not None else config.DATABASE_URL
        self._enabled = config.PERSISTENCE_ENABLED if enabled is None else enabled

    @property
    def enabled(self) -> bool:
        return bool(self._enabled and self._db_url)

    def _get_conn(self):
        if not self.enabled:
            return None
        try:
            return psycopg2.connect(self._db_url, cursor_factory=RealDictCursor)
        except psycopg2.Error as e:
            logger.error(f"Snapshot store connection failed: {e}")
            return None

    def _ensure_tables(self, conn) -> None:
        cur = conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS htma_report_snapshots (
                report_id UUID PRIMARY KEY,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                generated_at TIMESTAMPTZ NOT NULL,
                reference_range_version VARCHAR(20) NOT NULL,
                semantics_version VARCHAR(20) NOT NULL,
                engine_version VARCHAR(20) NOT NULL,
                content_hash VARCHAR(80) NOT NULL,
                snapshot JSONB NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_htma_snapshots_generated_at
                ON htma_report_snapshots(generated_at);

            CREATE TABLE IF NOT EXISTS htma_audit_events (
                id BIGSERIAL PRIMARY KEY,
                report_id UUID NOT NULL,
                event_type VARCHAR(40) NOT NULL,
                created_at TIMESTAMPTZ DEFAULT NOW(),
                event JSONB NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_htma_audit_events_report_id
                ON htma_audit_events(report_id);
        """)
        conn.commit()
        cur.close()

    def save_snapshot(self, snapshot: ReportSnapshot, content_hash: str) -> bool:
        conn = self._get_conn()
        if conn is None:
            return False
        try:
            self._ensure_tables(conn)
            cur = conn.cursor()
            cur.execute("""
                INSERT INTO htma_report_snapshots
                (report_id, generated_at, reference_range_version, semantics_version,
                 engine_version, content_hash, snapshot)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
            """, (
                snapshot.metadata.report_id,
                snapshot.metadata.generated_at,
                snapshot.metadata.reference_range_version,
                snapshot.metadata.semantics_version,
                snapshot.metadata.analysis_engine_version,
                content_hash,
                snapshot.model_dump_json(),
            ))
            conn.commit()
            cur.close()
            return True
        except psycopg2.Error as e:
            logger.error(f"Saving snapshot {snapshot.metadata.report_id} failed: {e}")
            conn.rollback()
            return False
        finally:
            conn.close()

    def save_audit_event(self, event: AuditEvent) -> bool:
        if not validate_no_phi(event):
            logger.error(f"Refusing to store audit event for {event.report_id} with potential PHI")
            return False
        conn = self._get_conn()
        if conn is None:
            return False
        try:
            self._ensure_tables(conn)
            cur = conn.cursor()
            cur.execute("""
                INSERT INTO htma_audit_events (report_id, event_type, event)
                VALUES (%s, %s, %s)
            """, (
                event.report_id,
                event.event_type.value,
                json.dumps(serialize_audit_event(event)),
            ))
            conn.commit()
            cur.close()
            return True
        except psycopg2.Error as e:
            logger.error(f"Saving audit event {event.event_type.value} for {event.report_id} failed: {e}")
            conn.rollback()
            return False
        finally:
            conn.close()


def persist_snapshot(result: SnapshotResult, store: Optional[SnapshotStore] = None) -> bool:
    """
    Store a snapshot and its audit event. True only if both were written.
    """
    store = store or SnapshotStore()
    if not store.enabled:
        logger.debug(f"Persistence disabled; snapshot {result.snapshot.report_id} not stored")
        return False
    saved = store.save_snapshot(result.snapshot, result.content_hash)
    audited = store.save_audit_event(result.audit_event)
    return saved and audited
