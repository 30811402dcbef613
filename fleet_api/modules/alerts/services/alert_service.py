#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/alerts/services/alert_service.py
# Service for listing and acknowledging expiry alerts

import logging
import uuid
from dataclasses import replace
from typing import List, Optional

from compliance_engine.alert_synthesizer import AlertChanges, count_unread
from compliance_engine.errors import AlertNotFound, ConcurrentWriteConflict, VehicleNotFound
from compliance_engine.models import Alert, AuditAction, AuditEntityType, AuditLogEntry

from fleet_api.modules.vehicles.services.vehicle_service import VehicleService, get_vehicle_service

logger = logging.getLogger(__name__)


class AlertService:
    """Service for alert operations; writes go through the vehicle gateway's store transactions"""

    def __init__(self, vehicle_service: Optional[VehicleService] = None):
        self._vehicle_service = vehicle_service
        logger.info("✅ AlertService initialized")

    @property
    def vehicles(self) -> VehicleService:
        return self._vehicle_service or get_vehicle_service()

    # ========================================================================
    # REFRESH
    # ========================================================================

    async def refresh_all(self) -> AlertChanges:
        """
        Re-synthesize alerts for every vehicle against today's date

        Documents crossing into ExpiringSoon or Overdue since the last
        write get their alert here.
        """
        total = AlertChanges()
        for vehicle in self.vehicles.store.list_vehicles():
            try:
                total.extend(await self.vehicles.refresh_alerts(vehicle.id))
            except VehicleNotFound:
                # deleted while we were iterating
                continue
            except ConcurrentWriteConflict as e:
                logger.warning(f"⚠️ Skipping alert refresh for {vehicle.registration_number}: {e}")
                continue

        if total:
            logger.info(
                f"🔔 Alert refresh: {len(total.created)} created, "
                f"{len(total.updated)} updated, {len(total.resolved)} resolved"
            )
        return total

    # ========================================================================
    # READ
    # ========================================================================

    async def list_alerts(
        self,
        only_unread: bool = False,
        vehicle_id: Optional[str] = None,
        refresh: bool = True,
    ) -> List[Alert]:
        """
        List alerts newest first

        Args:
            only_unread: Skip read (and resolved) alerts
            vehicle_id: Restrict to one vehicle
            refresh: Bring alerts up to date before listing
        """
        if refresh:
            if vehicle_id is None:
                await self.refresh_all()
            else:
                try:
                    await self.vehicles.refresh_alerts(vehicle_id)
                except ConcurrentWriteConflict as e:
                    logger.warning(f"⚠️ Skipping alert refresh for vehicle {vehicle_id}: {e}")

        return self.vehicles.store.list_alerts(only_unread=only_unread, vehicle_id=vehicle_id)

    async def unread_count(self, refresh: bool = True) -> int:
        if refresh:
            await self.refresh_all()
        return count_unread(self.vehicles.store.list_alerts(only_unread=True))

    # ========================================================================
    # UPDATE
    # ========================================================================

    async def mark_read(self, alert_id: str, actor_id: Optional[str] = None) -> Alert:
        """
        Mark alert as read

        Raises:
            AlertNotFound: Unknown alert id (or its vehicle was deleted)
        """
        alert = self.vehicles.store.get_alert(alert_id)
        if alert is None:
            logger.warning(f"⚠️ Alert not found: {alert_id}")
            raise AlertNotFound(alert_id)

        vehicles = self.vehicles
        try:
            with vehicles.store.transaction(alert.vehicle_id) as session:
                current = next((a for a in session.list_alerts() if a.id == alert_id), None)
                if current is None:
                    raise AlertNotFound(alert_id)
                if current.is_read:
                    return current

                now = vehicles.clock.now()
                updated = replace(current, is_read=True, updated_at=now)
                session.save_alerts([updated])
                session.record_audit(AuditLogEntry(
                    id=str(uuid.uuid4()),
                    timestamp=now,
                    actor_id=actor_id or vehicles.config.DEFAULT_ACTOR_ID,
                    action=AuditAction.MARK_ALERT_READ,
                    entity_type=AuditEntityType.ALERT,
                    entity_id=alert_id,
                    entity_registration=current.vehicle_registration,
                    details={'document_type': str(current.series_key), 'due_date': current.due_date.isoformat()},
                ))
        except VehicleNotFound:
            raise AlertNotFound(alert_id)

        logger.info(f"✅ Alert marked as read: {alert_id} ({updated.vehicle_registration}, {updated.series_key})")
        return updated


# Global service instance
_alert_service: Optional[AlertService] = None


def get_alert_service() -> AlertService:
    """Get or create alert service singleton"""
    global _alert_service

    if _alert_service is None:
        _alert_service = AlertService()

    return _alert_service
