#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/vehicles/services/vehicle_service.py
# Mutation gateway: the only writer of vehicles, documents and alerts

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Tuple

from compliance_engine.alert_synthesizer import AlertChanges, synthesize_alerts
from compliance_engine.clock import SystemClock
from compliance_engine.config import Config, get_config
from compliance_engine.errors import DuplicateRegistrationError, FieldValidationError, VehicleNotFound
from compliance_engine.models import (
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    Document,
    DocumentType,
    Vehicle,
    VehicleComplianceStatus,
    registration_key,
)
from compliance_engine.reconciliation import ReconciledDocumentFields
from compliance_engine.version_resolver import ResolvedDocument, resolve_document, resolve_latest_document
from compliance_engine.vehicle_status import VehicleStatusResult, resolve_vehicle_status

from .fleet_store import FleetSession, FleetStore

logger = logging.getLogger(__name__)

UPDATABLE_VEHICLE_FIELDS = ("registration_number", "vehicle_type", "make", "model", "owner_id")


@dataclass
class DocumentWriteResult:
    """Outcome of one document append"""
    vehicle: Vehicle
    document: Document
    alert_changes: AlertChanges
    vehicle_created: bool = False


class VehicleService:
    """Service for vehicle and document mutations"""

    def __init__(
        self,
        store: Optional[FleetStore] = None,
        clock: Optional[SystemClock] = None,
        config: Optional[Config] = None,
    ):
        self._store = store
        self._clock = clock
        self._config = config
        logger.info("✅ VehicleService initialized")

    # ------------------------------------------------------------------------
    # Collaborators (resolved lazily so tests can swap system components)
    # ------------------------------------------------------------------------

    @property
    def store(self) -> FleetStore:
        if self._store is not None:
            return self._store
        from fleet_api.core.dependencies import get_system_components
        return get_system_components().get_component("store")

    @property
    def clock(self) -> SystemClock:
        if self._clock is not None:
            return self._clock
        from fleet_api.core.dependencies import get_system_components
        return get_system_components().get_component("clock")

    @property
    def config(self) -> Config:
        if self._config is not None:
            return self._config
        return get_config()

    def _audit_entry(
        self,
        action: AuditAction,
        entity_type: AuditEntityType,
        actor_id: Optional[str],
        entity_id: Optional[str] = None,
        entity_registration: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLogEntry:
        return AuditLogEntry(
            id=str(uuid.uuid4()),
            timestamp=self.clock.now(),
            actor_id=actor_id or self.config.DEFAULT_ACTOR_ID,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_registration=entity_registration,
            details=details or {},
        )

    def _synthesize(self, session: FleetSession, vehicle: Vehicle, changed_document: Optional[Document]) -> AlertChanges:
        clock = self.clock
        changes = synthesize_alerts(
            vehicle,
            session.list_alerts(),
            changed_document,
            today=clock.today(),
            now=clock.now(),
            warning_days=self.config.EXPIRY_WARNING_DAYS,
        )
        if changes:
            session.save_alerts(changes.changed)
        for alert in changes.resolved:
            session.record_audit(self._audit_entry(
                AuditAction.RESOLVE_ALERT,
                AuditEntityType.ALERT,
                None,
                entity_id=alert.id,
                entity_registration=vehicle.registration_number,
                details={'document_type': str(alert.series_key), 'due_date': alert.due_date.isoformat()},
            ))
        return changes

    # ========================================================================
    # STATUS
    # ========================================================================

    def evaluate(self, vehicle: Vehicle) -> VehicleStatusResult:
        """Overall badge computed against the clock now"""
        return resolve_vehicle_status(
            vehicle,
            today=self.clock.today(),
            warning_days=self.config.EXPIRY_WARNING_DAYS,
            essential_types=self.config.get_essential_types(),
        )

    # ========================================================================
    # CREATE
    # ========================================================================

    async def create_vehicle(
        self,
        registration_number: str,
        vehicle_type: Optional[str] = None,
        make: Optional[str] = None,
        model: Optional[str] = None,
        owner_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> Vehicle:
        """
        Create new vehicle

        Raises:
            FieldValidationError: Registration number is blank
            DuplicateRegistrationError: Registration key already used
        """
        registration_number = (registration_number or "").strip()
        if not registration_key(registration_number):
            raise FieldValidationError("registration_number", registration_number, "cannot be empty")

        now = self.clock.now()
        vehicle = Vehicle(
            id=str(uuid.uuid4()),
            registration_number=registration_number.upper(),
            vehicle_type=vehicle_type or None,
            make=make or None,
            model=model or None,
            owner_id=owner_id or None,
            created_at=now,
            updated_at=now,
        )
        audit = self._audit_entry(
            AuditAction.CREATE_VEHICLE,
            AuditEntityType.VEHICLE,
            actor_id,
            entity_id=vehicle.id,
            entity_registration=vehicle.registration_number,
            details={'vehicle_type': vehicle.vehicle_type, 'make': vehicle.make, 'model': vehicle.model},
        )
        self.store.insert_vehicle(vehicle, audit)

        logger.info(f"✅ Created vehicle: {vehicle.id} ({vehicle.registration_number})")
        return vehicle

    # ========================================================================
    # READ
    # ========================================================================

    async def get_by_id(self, vehicle_id: str) -> Optional[Vehicle]:
        """Get vehicle by ID"""
        return self.store.get_vehicle(vehicle_id)

    async def get_by_registration(self, registration_number: str) -> Optional[Vehicle]:
        """Get vehicle by registration number (case and separator insensitive)"""
        if not registration_key(registration_number):
            return None
        return self.store.find_by_registration(registration_number)

    async def require(self, vehicle_id: str) -> Vehicle:
        vehicle = self.store.get_vehicle(vehicle_id)
        if vehicle is None:
            logger.warning(f"⚠️ Vehicle not found: {vehicle_id}")
            raise VehicleNotFound(vehicle_id)
        return vehicle

    async def list_vehicles(
        self,
        status: Optional[VehicleComplianceStatus] = None,
        search: Optional[str] = None,
    ) -> List[Tuple[Vehicle, VehicleStatusResult]]:
        """
        List vehicles with their overall badge

        Args:
            status: Keep only vehicles with this badge
            search: Registration number fragment (separators ignored)

        Returns:
            List of (vehicle, status result) ordered by registration
        """
        needle = registration_key(search) if search else ""
        results = []
        for vehicle in self.store.list_vehicles():
            if needle and needle not in vehicle.registration_key:
                continue
            evaluated = self.evaluate(vehicle)
            if status is not None and evaluated.status != status:
                continue
            results.append((vehicle, evaluated))

        logger.debug(f"Listed {len(results)} vehicles (status={status}, search={search!r})")
        return results

    async def list_documents(self, vehicle_id: str) -> List[ResolvedDocument]:
        """Full document history, newest upload first"""
        vehicle = await self.require(vehicle_id)
        today = self.clock.today()
        history = sorted(vehicle.documents, key=lambda d: (d.uploaded_at, d.sequence), reverse=True)
        return [resolve_document(doc, today, self.config.EXPIRY_WARNING_DAYS) for doc in history]

    async def get_latest_document(
        self,
        vehicle_id: str,
        document_type: DocumentType,
        custom_type_name: Optional[str] = None,
    ) -> Optional[ResolvedDocument]:
        """Latest document of one series with its status now; None if never uploaded"""
        vehicle = await self.require(vehicle_id)
        latest = resolve_latest_document(vehicle, document_type, custom_type_name)
        if latest is None:
            return None
        return resolve_document(latest, self.clock.today(), self.config.EXPIRY_WARNING_DAYS)

    # ========================================================================
    # UPDATE
    # ========================================================================

    async def update_vehicle(
        self,
        vehicle_id: str,
        changes: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> Vehicle:
        """
        Update vehicle attributes

        Only keys present in changes are applied. A registration change
        refreshes the denormalized registration on unread alerts.
        """
        unknown = set(changes) - set(UPDATABLE_VEHICLE_FIELDS)
        if unknown:
            name = sorted(unknown)[0]
            raise FieldValidationError(name, changes[name], "not an updatable vehicle field")

        if 'registration_number' in changes:
            new_registration = (changes['registration_number'] or "").strip()
            if not registration_key(new_registration):
                raise FieldValidationError("registration_number", changes['registration_number'], "cannot be empty")
            changes = dict(changes, registration_number=new_registration.upper())

        with self.store.transaction(vehicle_id) as session:
            current = session.get_vehicle()
            updated = replace(current, updated_at=self.clock.now(), **changes)
            updated = session.update_vehicle(updated)

            if updated.registration_number != current.registration_number:
                self._synthesize(session, updated, None)

            session.record_audit(self._audit_entry(
                AuditAction.UPDATE_VEHICLE,
                AuditEntityType.VEHICLE,
                actor_id,
                entity_id=vehicle_id,
                entity_registration=updated.registration_number,
                details={'changes': {k: v for k, v in changes.items()}},
            ))

        logger.info(f"✅ Updated vehicle: {vehicle_id} ({', '.join(sorted(changes)) or 'no changes'})")
        return updated

    # ========================================================================
    # DELETE
    # ========================================================================

    async def delete_vehicle(self, vehicle_id: str, actor_id: Optional[str] = None) -> bool:
        """Delete vehicle together with its documents and alerts"""
        vehicle = self.store.get_vehicle(vehicle_id)
        if vehicle is None:
            logger.warning(f"⚠️ Vehicle not found for deletion: {vehicle_id}")
            return False

        audit = self._audit_entry(
            AuditAction.DELETE_VEHICLE,
            AuditEntityType.VEHICLE,
            actor_id,
            entity_id=vehicle_id,
            entity_registration=vehicle.registration_number,
            details={'documents_deleted': len(vehicle.documents)},
        )
        deleted = self.store.delete_vehicle(vehicle_id, audit)
        if deleted:
            logger.info(f"🗑️ Deleted vehicle: {vehicle_id} ({vehicle.registration_number})")
        return deleted

    # ========================================================================
    # DOCUMENTS
    # ========================================================================

    async def add_document(
        self,
        vehicle_id: str,
        fields: ReconciledDocumentFields,
        document_name: Optional[str] = None,
        document_url: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> DocumentWriteResult:
        """
        Append a document and bring the vehicle's alerts up to date

        The append, the alert changes and the audit entry commit together
        under the vehicle's write lock.

        Raises:
            VehicleNotFound: Unknown vehicle
            ConcurrentWriteConflict: The vehicle lock could not be taken
        """
        with self.store.transaction(vehicle_id) as session:
            vehicle = session.get_vehicle()

            confirmed_registration = fields.registration_number.value
            if confirmed_registration and registration_key(confirmed_registration) != vehicle.registration_key:
                logger.warning(
                    f"⚠️ Document registration {confirmed_registration} differs from vehicle "
                    f"{vehicle.registration_number}; storing under the vehicle"
                )

            document = Document(
                id=str(uuid.uuid4()),
                vehicle_id=vehicle.id,
                sequence=session.next_sequence(),
                document_type=fields.document_type,
                custom_type_name=fields.custom_type_name,
                uploaded_at=self.clock.now(),
                document_name=document_name,
                document_url=document_url,
                **fields.provenance(),
            )
            vehicle = session.append_document(document)
            changes = self._synthesize(session, vehicle, document)

            session.record_audit(self._audit_entry(
                AuditAction.UPLOAD_DOCUMENT,
                AuditEntityType.DOCUMENT,
                actor_id,
                entity_id=document.id,
                entity_registration=vehicle.registration_number,
                details={
                    'document_type': str(document.series_key),
                    'expiry_date': document.expiry.isoformat() if document.expiry else None,
                    'sequence': document.sequence,
                    'alerts_created': len(changes.created),
                    'alerts_updated': len(changes.updated),
                    'alerts_resolved': len(changes.resolved),
                },
            ))

        logger.info(
            f"📄 Added {document.series_key} to {vehicle.registration_number} "
            f"(expiry={document.expiry}, sequence={document.sequence})"
        )
        return DocumentWriteResult(vehicle=vehicle, document=document, alert_changes=changes)

    async def ingest_confirmed_document(
        self,
        fields: ReconciledDocumentFields,
        vehicle_id: Optional[str] = None,
        document_name: Optional[str] = None,
        document_url: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> DocumentWriteResult:
        """
        Persist a human-confirmed extraction

        Without an explicit vehicle_id the vehicle is looked up by the
        confirmed registration number and created when it does not exist.
        """
        created = False
        if vehicle_id is None:
            registration = fields.registration_number.value
            if not registration or not registration_key(registration):
                raise FieldValidationError(
                    "registration_number", registration, "required to match the document to a vehicle"
                )

            vehicle = await self.get_by_registration(registration)
            if vehicle is None:
                try:
                    vehicle = await self.create_vehicle(
                        registration_number=registration,
                        vehicle_type=fields.vehicle_type.value,
                        make=fields.make.value,
                        model=fields.model.value,
                        actor_id=actor_id,
                    )
                    created = True
                    logger.info(f"🚗 Created vehicle {vehicle.registration_number} from confirmed extraction")
                except DuplicateRegistrationError:
                    # created concurrently by another confirmation
                    vehicle = await self.get_by_registration(registration)
                    if vehicle is None:
                        raise
            vehicle_id = vehicle.id

        result = await self.add_document(
            vehicle_id,
            fields,
            document_name=document_name,
            document_url=document_url,
            actor_id=actor_id,
        )
        result.vehicle_created = created
        return result

    # ========================================================================
    # ALERT REFRESH
    # ========================================================================

    async def refresh_alerts(self, vehicle_id: str) -> AlertChanges:
        """Recompute every series of one vehicle against today's date"""
        with self.store.transaction(vehicle_id) as session:
            changes = self._synthesize(session, session.get_vehicle(), None)
        return changes


# Global service instance
_vehicle_service: Optional[VehicleService] = None


def get_vehicle_service() -> VehicleService:
    """Get or create vehicle service singleton"""
    global _vehicle_service

    if _vehicle_service is None:
        _vehicle_service = VehicleService()

    return _vehicle_service
