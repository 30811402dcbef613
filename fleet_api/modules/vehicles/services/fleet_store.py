#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/vehicles/services/fleet_store.py
# Persistence collaborator for vehicles, documents, alerts and audit entries

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterator, List, Optional

from compliance_engine.errors import DuplicateRegistrationError, VehicleNotFound
from compliance_engine.models import Alert, AuditLogEntry, Document, Vehicle, registration_key

logger = logging.getLogger(__name__)


# ============================================================================
# INTERFACES
# ============================================================================

class FleetSession(ABC):
    """
    Write session scoped to one vehicle.

    All writes made through a session become visible together when the
    surrounding FleetStore.transaction() block exits without an error.
    """

    @abstractmethod
    def get_vehicle(self) -> Vehicle:
        """Snapshot of the locked vehicle including pending writes"""

    @abstractmethod
    def next_sequence(self) -> int:
        """Next per-vehicle document sequence number"""

    @abstractmethod
    def append_document(self, document: Document) -> Vehicle:
        """Append a document to the history; returns the updated snapshot"""

    @abstractmethod
    def update_vehicle(self, vehicle: Vehicle) -> Vehicle:
        """Replace vehicle attributes (documents are ignored)"""

    @abstractmethod
    def list_alerts(self) -> List[Alert]:
        """Every alert of the locked vehicle, read and unread"""

    @abstractmethod
    def save_alerts(self, alerts: List[Alert]):
        """Insert or replace alerts by id"""

    @abstractmethod
    def record_audit(self, entry: AuditLogEntry):
        """Append an audit entry committed together with the session"""


class FleetStore(ABC):
    """Vehicles own their documents; alerts and audit entries are separate collections"""

    backend_name = "abstract"

    @abstractmethod
    @contextmanager
    def transaction(self, vehicle_id: str) -> Iterator[FleetSession]:
        """
        Serialize writes for one vehicle.

        Raises:
            VehicleNotFound: If the vehicle does not exist
            ConcurrentWriteConflict: If the lock cannot be taken
        """

    @abstractmethod
    def insert_vehicle(self, vehicle: Vehicle, audit: Optional[AuditLogEntry] = None) -> Vehicle:
        """Insert a new vehicle; DuplicateRegistrationError when the registration key is taken"""

    @abstractmethod
    def delete_vehicle(self, vehicle_id: str, audit: Optional[AuditLogEntry] = None) -> bool:
        """Delete a vehicle with its documents and alerts"""

    @abstractmethod
    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        pass

    @abstractmethod
    def find_by_registration(self, registration_number: str) -> Optional[Vehicle]:
        pass

    @abstractmethod
    def list_vehicles(self) -> List[Vehicle]:
        pass

    @abstractmethod
    def get_alert(self, alert_id: str) -> Optional[Alert]:
        pass

    @abstractmethod
    def list_alerts(self, only_unread: bool = False, vehicle_id: Optional[str] = None) -> List[Alert]:
        """Alerts newest first"""

    @abstractmethod
    def record_audit(self, entry: AuditLogEntry):
        pass

    @abstractmethod
    def list_audit_logs(self) -> List[AuditLogEntry]:
        """Audit entries newest first"""

    def get_status(self) -> Dict:
        return {'backend': self.backend_name}


# ============================================================================
# IN-MEMORY BACKEND
# ============================================================================

class _InMemorySession(FleetSession):
    """Buffers writes until the transaction commits"""

    def __init__(self, store: "InMemoryFleetStore", vehicle: Vehicle):
        self._store = store
        self._vehicle = vehicle
        self._alerts: Dict[str, Alert] = {
            a.id: a for a in store._alerts.values() if a.vehicle_id == vehicle.id
        }
        self._dirty_alerts: Dict[str, Alert] = {}
        self._audit: List[AuditLogEntry] = []
        self._vehicle_changed = False

    def get_vehicle(self) -> Vehicle:
        return self._vehicle

    def next_sequence(self) -> int:
        return max((d.sequence for d in self._vehicle.documents), default=0) + 1

    def append_document(self, document: Document) -> Vehicle:
        self._vehicle = replace(self._vehicle, documents=self._vehicle.documents + (document,))
        self._vehicle_changed = True
        return self._vehicle

    def update_vehicle(self, vehicle: Vehicle) -> Vehicle:
        key = registration_key(vehicle.registration_number)
        if key != self._vehicle.registration_key:
            owner = self._store._registration_index.get(key)
            if owner is not None and owner != self._vehicle.id:
                raise DuplicateRegistrationError(vehicle.registration_number)
        self._vehicle = replace(vehicle, id=self._vehicle.id, documents=self._vehicle.documents)
        self._vehicle_changed = True
        return self._vehicle

    def list_alerts(self) -> List[Alert]:
        return list(self._alerts.values())

    def save_alerts(self, alerts: List[Alert]):
        for alert in alerts:
            self._alerts[alert.id] = alert
            self._dirty_alerts[alert.id] = alert

    def record_audit(self, entry: AuditLogEntry):
        self._audit.append(entry)

    def commit(self):
        store = self._store
        with store._lock:
            if self._vehicle_changed:
                owner = store._registration_index.get(self._vehicle.registration_key)
                if owner is not None and owner != self._vehicle.id:
                    raise DuplicateRegistrationError(self._vehicle.registration_number)
                previous = store._vehicles.get(self._vehicle.id)
                if previous is not None and previous.registration_key != self._vehicle.registration_key:
                    store._registration_index.pop(previous.registration_key, None)
                store._vehicles[self._vehicle.id] = self._vehicle
                store._registration_index[self._vehicle.registration_key] = self._vehicle.id
            store._alerts.update(self._dirty_alerts)
            store._audit.extend(self._audit)


class InMemoryFleetStore(FleetStore):
    """
    Process-local store.

    A threading.RLock per vehicle serializes writers of the same vehicle;
    a store-wide lock guards the dictionaries themselves.
    """

    backend_name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._vehicle_locks: Dict[str, threading.RLock] = {}
        self._vehicles: Dict[str, Vehicle] = {}
        self._registration_index: Dict[str, str] = {}
        self._alerts: Dict[str, Alert] = {}
        self._audit: List[AuditLogEntry] = []
        logger.info("✅ InMemoryFleetStore initialized")

    def _vehicle_lock(self, vehicle_id: str) -> threading.RLock:
        with self._lock:
            lock = self._vehicle_locks.get(vehicle_id)
            if lock is None:
                lock = threading.RLock()
                self._vehicle_locks[vehicle_id] = lock
            return lock

    @contextmanager
    def transaction(self, vehicle_id: str) -> Iterator[FleetSession]:
        with self._vehicle_lock(vehicle_id):
            with self._lock:
                vehicle = self._vehicles.get(vehicle_id)
                if vehicle is None:
                    raise VehicleNotFound(vehicle_id)
                session = _InMemorySession(self, vehicle)

            yield session
            session.commit()

    def insert_vehicle(self, vehicle: Vehicle, audit: Optional[AuditLogEntry] = None) -> Vehicle:
        with self._lock:
            if vehicle.registration_key in self._registration_index:
                raise DuplicateRegistrationError(vehicle.registration_number)
            self._vehicles[vehicle.id] = vehicle
            self._registration_index[vehicle.registration_key] = vehicle.id
            if audit is not None:
                self._audit.append(audit)
        return vehicle

    def delete_vehicle(self, vehicle_id: str, audit: Optional[AuditLogEntry] = None) -> bool:
        with self._vehicle_lock(vehicle_id):
            with self._lock:
                vehicle = self._vehicles.pop(vehicle_id, None)
                if vehicle is None:
                    return False
                self._registration_index.pop(vehicle.registration_key, None)
                for alert_id in [a.id for a in self._alerts.values() if a.vehicle_id == vehicle_id]:
                    del self._alerts[alert_id]
                if audit is not None:
                    self._audit.append(audit)
        with self._lock:
            self._vehicle_locks.pop(vehicle_id, None)
        return True

    def get_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        with self._lock:
            return self._vehicles.get(vehicle_id)

    def find_by_registration(self, registration_number: str) -> Optional[Vehicle]:
        with self._lock:
            vehicle_id = self._registration_index.get(registration_key(registration_number))
            return self._vehicles.get(vehicle_id) if vehicle_id else None

    def list_vehicles(self) -> List[Vehicle]:
        with self._lock:
            return sorted(self._vehicles.values(), key=lambda v: v.registration_key)

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            return self._alerts.get(alert_id)

    def list_alerts(self, only_unread: bool = False, vehicle_id: Optional[str] = None) -> List[Alert]:
        with self._lock:
            alerts = [
                a for a in self._alerts.values()
                if (not only_unread or not a.is_read) and (vehicle_id is None or a.vehicle_id == vehicle_id)
            ]
        return sorted(alerts, key=lambda a: (a.created_at, a.id), reverse=True)

    def record_audit(self, entry: AuditLogEntry):
        with self._lock:
            self._audit.append(entry)

    def list_audit_logs(self) -> List[AuditLogEntry]:
        with self._lock:
            entries = list(reversed(self._audit))
        # most recently recorded first on equal timestamps
        return sorted(entries, key=lambda e: e.timestamp, reverse=True)

    def get_status(self) -> Dict:
        with self._lock:
            return {
                'backend': self.backend_name,
                'vehicles': len(self._vehicles),
                'alerts': len(self._alerts),
                'audit_entries': len(self._audit),
            }

