#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/vehicles/services/postgres_store.py
# PostgreSQL backend for the fleet store (psycopg2, raw SQL)

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import psycopg2
import psycopg2.errors
import psycopg2.extensions
import psycopg2.extras

from compliance_engine.errors import ConcurrentWriteConflict, DuplicateRegistrationError, VehicleNotFound
from compliance_engine.models import (
    DATE_FIELDS,
    PROVENANCE_FIELDS,
    Alert,
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    Document,
    DocumentType,
    FieldProvenance,
    Vehicle,
    registration_key,
)

from .fleet_store import FleetSession, FleetStore

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE SCHEMA IF NOT EXISTS fleet;

CREATE TABLE IF NOT EXISTS fleet.vehicles (
    id TEXT PRIMARY KEY,
    registration_number TEXT NOT NULL,
    registration_key TEXT NOT NULL UNIQUE,
    vehicle_type TEXT,
    make TEXT,
    model TEXT,
    owner_id TEXT,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS fleet.documents (
    id TEXT PRIMARY KEY,
    vehicle_id TEXT NOT NULL REFERENCES fleet.vehicles(id) ON DELETE CASCADE,
    sequence INTEGER NOT NULL,
    document_type TEXT NOT NULL,
    custom_type_name TEXT,
    document_name TEXT,
    document_url TEXT,
    uploaded_at TIMESTAMPTZ NOT NULL,
    provenance JSONB NOT NULL DEFAULT '{}'::jsonb,
    UNIQUE (vehicle_id, sequence)
);

CREATE TABLE IF NOT EXISTS fleet.alerts (
    id TEXT PRIMARY KEY,
    vehicle_id TEXT NOT NULL REFERENCES fleet.vehicles(id) ON DELETE CASCADE,
    vehicle_registration TEXT NOT NULL,
    document_type TEXT NOT NULL,
    custom_type_name TEXT,
    document_id TEXT NOT NULL,
    message TEXT NOT NULL,
    due_date DATE NOT NULL,
    is_read BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ,
    resolved_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS alerts_unread_idx ON fleet.alerts (vehicle_id) WHERE NOT is_read;

CREATE TABLE IF NOT EXISTS fleet.audit_logs (
    id TEXT PRIMARY KEY,
    timestamp TIMESTAMPTZ NOT NULL,
    actor_id TEXT NOT NULL,
    action TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id TEXT,
    entity_registration TEXT,
    details JSONB NOT NULL DEFAULT '{}'::jsonb,
    recorded_seq BIGSERIAL
);
"""


# ============================================================================
# ROW MAPPING
# ============================================================================

def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _provenance_to_json(document: Document) -> Dict[str, Any]:
    data = {}
    for name, prov in document.provenance().items():
        values = {
            'agent_value': prov.agent_value,
            'agent_confidence': prov.agent_confidence,
            'confirmed_value': prov.confirmed_value,
        }
        if name in DATE_FIELDS:
            values = {k: (v.isoformat() if isinstance(v, date) else v) for k, v in values.items()}
        data[name] = values
    return data


def _provenance_from_json(data: Optional[Dict[str, Any]]) -> Dict[str, FieldProvenance]:
    fields = {}
    for name in PROVENANCE_FIELDS:
        values = dict((data or {}).get(name) or {})
        if name in DATE_FIELDS:
            for key in ('agent_value', 'confirmed_value'):
                if values.get(key):
                    values[key] = date.fromisoformat(values[key])
        fields[name] = FieldProvenance(
            agent_value=values.get('agent_value'),
            agent_confidence=values.get('agent_confidence'),
            confirmed_value=values.get('confirmed_value'),
        )
    return fields


def _document_from_row(row: Dict) -> Document:
    return Document(
        id=row['id'],
        vehicle_id=row['vehicle_id'],
        sequence=row['sequence'],
        document_type=DocumentType(row['document_type']),
        custom_type_name=row['custom_type_name'],
        document_name=row['document_name'],
        document_url=row['document_url'],
        uploaded_at=_utc(row['uploaded_at']),
        **_provenance_from_json(row['provenance']),
    )


def _vehicle_from_row(row: Dict, documents: List[Document]) -> Vehicle:
    return Vehicle(
        id=row['id'],
        registration_number=row['registration_number'],
        vehicle_type=row['vehicle_type'],
        make=row['make'],
        model=row['model'],
        owner_id=row['owner_id'],
        created_at=_utc(row['created_at']),
        updated_at=_utc(row['updated_at']),
        documents=tuple(documents),
    )


def _alert_from_row(row: Dict) -> Alert:
    return Alert(
        id=row['id'],
        vehicle_id=row['vehicle_id'],
        vehicle_registration=row['vehicle_registration'],
        document_type=DocumentType(row['document_type']),
        custom_type_name=row['custom_type_name'],
        document_id=row['document_id'],
        message=row['message'],
        due_date=row['due_date'],
        is_read=row['is_read'],
        created_at=_utc(row['created_at']),
        updated_at=_utc(row['updated_at']),
        resolved_at=_utc(row['resolved_at']),
    )


def _audit_from_row(row: Dict) -> AuditLogEntry:
    return AuditLogEntry(
        id=row['id'],
        timestamp=_utc(row['timestamp']),
        actor_id=row['actor_id'],
        action=AuditAction(row['action']),
        entity_type=AuditEntityType(row['entity_type']),
        entity_id=row['entity_id'],
        entity_registration=row['entity_registration'],
        details=row['details'] or {},
    )


# ============================================================================
# SQL HELPERS (cursor level)
# ============================================================================

def _load_documents(cur, vehicle_ids: List[str]) -> Dict[str, List[Document]]:
    documents: Dict[str, List[Document]] = {vid: [] for vid in vehicle_ids}
    if not vehicle_ids:
        return documents
    cur.execute("""
        SELECT id, vehicle_id, sequence, document_type, custom_type_name,
               document_name, document_url, uploaded_at, provenance
        FROM fleet.documents
        WHERE vehicle_id = ANY(%s)
        ORDER BY vehicle_id, sequence
    """, (list(vehicle_ids),))
    for row in cur.fetchall():
        documents[row['vehicle_id']].append(_document_from_row(row))
    return documents


def _load_vehicles(cur, where: str = "", params: tuple = (), for_update: bool = False) -> List[Vehicle]:
    cur.execute(f"""
        SELECT id, registration_number, vehicle_type, make, model, owner_id, created_at, updated_at
        FROM fleet.vehicles
        {where}
        ORDER BY registration_key
        {"FOR UPDATE" if for_update else ""}
    """, params)
    rows = cur.fetchall()
    documents = _load_documents(cur, [row['id'] for row in rows])
    return [_vehicle_from_row(row, documents[row['id']]) for row in rows]


def _upsert_alert(cur, alert: Alert):
    cur.execute("""
        INSERT INTO fleet.alerts (
            id, vehicle_id, vehicle_registration, document_type, custom_type_name,
            document_id, message, due_date, is_read, created_at, updated_at, resolved_at
        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (id) DO UPDATE SET
            vehicle_registration = EXCLUDED.vehicle_registration,
            document_id = EXCLUDED.document_id,
            message = EXCLUDED.message,
            due_date = EXCLUDED.due_date,
            is_read = EXCLUDED.is_read,
            updated_at = EXCLUDED.updated_at,
            resolved_at = EXCLUDED.resolved_at
    """, (
        alert.id,
        alert.vehicle_id,
        alert.vehicle_registration,
        alert.document_type.value,
        alert.custom_type_name,
        alert.document_id,
        alert.message,
        alert.due_date,
        alert.is_read,
        alert.created_at,
        alert.updated_at,
        alert.resolved_at,
    ))


def _insert_audit(cur, entry: AuditLogEntry):
    cur.execute("""
        INSERT INTO fleet.audit_logs (
            id, timestamp, actor_id, action, entity_type, entity_id, entity_registration, details
        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
    """, (
        entry.id,
        entry.timestamp,
        entry.actor_id,
        entry.action.value,
        entry.entity_type.value,
        entry.entity_id,
        entry.entity_registration,
        psycopg2.extras.Json(entry.details),
    ))


# ============================================================================
# SESSION
# ============================================================================

class _PostgresSession(FleetSession):
    """Writes go straight to the open transaction; the vehicle row is locked FOR UPDATE"""

    def __init__(self, cur, vehicle: Vehicle):
        self._cur = cur
        self._vehicle = vehicle

    def get_vehicle(self) -> Vehicle:
        return self._vehicle

    def next_sequence(self) -> int:
        self._cur.execute(
            "SELECT COALESCE(MAX(sequence), 0) + 1 AS next FROM fleet.documents WHERE vehicle_id = %s",
            (self._vehicle.id,),
        )
        return self._cur.fetchone()['next']

    def append_document(self, document: Document) -> Vehicle:
        self._cur.execute("""
            INSERT INTO fleet.documents (
                id, vehicle_id, sequence, document_type, custom_type_name,
                document_name, document_url, uploaded_at, provenance
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """, (
            document.id,
            document.vehicle_id,
            document.sequence,
            document.document_type.value,
            document.custom_type_name,
            document.document_name,
            document.document_url,
            document.uploaded_at,
            psycopg2.extras.Json(_provenance_to_json(document)),
        ))
        self._vehicle = replace(self._vehicle, documents=self._vehicle.documents + (document,))
        return self._vehicle

    def update_vehicle(self, vehicle: Vehicle) -> Vehicle:
        try:
            self._cur.execute("""
                UPDATE fleet.vehicles
                SET registration_number = %s, registration_key = %s, vehicle_type = %s,
                    make = %s, model = %s, owner_id = %s, updated_at = %s
                WHERE id = %s
            """, (
                vehicle.registration_number,
                registration_key(vehicle.registration_number),
                vehicle.vehicle_type,
                vehicle.make,
                vehicle.model,
                vehicle.owner_id,
                vehicle.updated_at,
                self._vehicle.id,
            ))
        except psycopg2.errors.UniqueViolation:
            raise DuplicateRegistrationError(vehicle.registration_number)
        self._vehicle = replace(vehicle, id=self._vehicle.id, documents=self._vehicle.documents)
        return self._vehicle

    def list_alerts(self) -> List[Alert]:
        self._cur.execute("SELECT * FROM fleet.alerts WHERE vehicle_id = %s", (self._vehicle.id,))
        return [_alert_from_row(row) for row in self._cur.fetchall()]

    def save_alerts(self, alerts: List[Alert]):
        for alert in alerts:
            _upsert_alert(self._cur, alert)

    def record_audit(self, entry: AuditLogEntry):
        _insert_audit(self._cur, entry)


# ============================================================================
# STORE
# ============================================================================

class PostgresFleetStore(FleetStore):
    """
    One connection per operation. Writers of the same vehicle are
    serialized by SELECT ... FOR UPDATE on the vehicle row.
    """

    backend_name = "postgres"

    def __init__(self, connection_string: str, lock_timeout_ms: int = 5000):
        self.connection_string = connection_string
        self.lock_timeout_ms = lock_timeout_ms
        logger.info("✅ PostgresFleetStore initialized")

    def _get_db_connection(self):
        """Get a new database connection"""
        return psycopg2.connect(self.connection_string)

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        conn = self._get_db_connection()
        try:
            with conn:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    yield cur
        finally:
            conn.close()

    def ensure_schema(self):
        """Create the fleet schema and tables if they do not exist"""
        with self._cursor() as cur:
            cur.execute(SCHEMA_SQL)
        logger.info("✅ Fleet schema ready")

    @contextmanager
    def transaction(self, vehicle_id: str) -> Iterator[FleetSession]:
        try:
            with self._cursor() as cur:
                cur.execute("SET LOCAL lock_timeout = %s", (f"{int(self.lock_timeout_ms)}ms",))
                vehicles = _load_vehicles(cur, "WHERE id = %s", (vehicle_id,), for_update=True)
                if not vehicles:
                    raise VehicleNotFound(vehicle_id)
                yield _PostgresSession(cur, vehicles[0])
        except (psycopg2.errors.LockNotAvailable, psycopg2.extensions.TransactionRollbackError) as e:
            logger.warning(f"⚠️ Write conflict on vehicle {vehicle_id}: {e}")
            raise ConcurrentWriteConflict(f"Vehicle {vehicle_id} is being modified, retry the request") from e

    def insert_vehicle(self, vehicle: Vehicle, audit: Optional[AuditLogEntry] = None) -> Vehicle:
        try:
            with self._cursor() as cur:
                cur.execute("""
                    INSERT INTO fleet.vehicles (
                        id, registration_number, registration_key, vehicle_type,
                        make, model, owner_id, created_at, updated_at
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                """, (
                    vehicle.id,
                    vehicle.registration_number,
                    vehicle.registration_key,
                    vehicle.vehicle_type,
                    vehicle.make,
                    vehicle.model,
                    vehicle.owner_id,
                    vehicle.created_at,
                    vehicle.updated_at,
                ))
                if audit is not None:
                    _insert_audit(cur, audit)
        except psycopg2.errors.UniqueViolation:
            raise DuplicateRegistrationError(vehicle.registration_number)
        return vehicle

    def delete_vehicle(self, vehicle_id: str, audit: Optional[AuditLogEntry] = None) -> bool:
        with self._cursor() as cur:
            cur.execute("DELETE FROM fleet.vehicles WHERE id = %s", (vehicle_id,))
            deleted = cur.rowcount > 0
            if deleted and audit is not None:
                _insert_audit(cur, audit)
        return deleted

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        with self._cursor() as cur:
            vehicles = _load_vehicles(cur, "WHERE id = %s", (vehicle_id,))
        return vehicles[0] if vehicles else None

    def find_by_registration(self, registration_number: str) -> Optional[Vehicle]:
        with self._cursor() as cur:
            vehicles = _load_vehicles(cur, "WHERE registration_key = %s", (registration_key(registration_number),))
        return vehicles[0] if vehicles else None

    def list_vehicles(self) -> List[Vehicle]:
        with self._cursor() as cur:
            return _load_vehicles(cur)

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._cursor() as cur:
            cur.execute("SELECT * FROM fleet.alerts WHERE id = %s", (alert_id,))
            row = cur.fetchone()
        return _alert_from_row(row) if row else None

    def list_alerts(self, only_unread: bool = False, vehicle_id: Optional[str] = None) -> List[Alert]:
        conditions = []
        params: List[Any] = []
        if only_unread:
            conditions.append("NOT is_read")
        if vehicle_id is not None:
            conditions.append("vehicle_id = %s")
            params.append(vehicle_id)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        with self._cursor() as cur:
            cur.execute(f"SELECT * FROM fleet.alerts {where} ORDER BY created_at DESC, id DESC", tuple(params))
            return [_alert_from_row(row) for row in cur.fetchall()]

    def record_audit(self, entry: AuditLogEntry):
        with self._cursor() as cur:
            _insert_audit(cur, entry)

    def list_audit_logs(self) -> List[AuditLogEntry]:
        with self._cursor() as cur:
            cur.execute("SELECT * FROM fleet.audit_logs ORDER BY timestamp DESC, recorded_seq DESC")
            return [_audit_from_row(row) for row in cur.fetchall()]

    def get_status(self) -> Dict:
        status = {'backend': self.backend_name}
        try:
            with self._cursor() as cur:
                cur.execute("SELECT COUNT(*) AS count FROM fleet.vehicles")
                status['vehicles'] = cur.fetchone()['count']
            status['database'] = 'connected'
        except psycopg2.Error as e:
            logger.warning(f"⚠️ Database status check failed: {e}")
            status['database'] = 'unavailable'
        return status
