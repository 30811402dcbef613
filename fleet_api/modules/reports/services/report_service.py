#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/reports/services/report_service.py
# Read-only compliance reports: summary stats, expiring documents, audit log

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from compliance_engine.models import (
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    ComplianceStatus,
    DocumentType,
    Vehicle,
    VehicleComplianceStatus,
)
from compliance_engine.version_resolver import ResolvedDocument, resolve_document, resolve_latest_documents

from fleet_api.modules.vehicles.services.vehicle_service import VehicleService, get_vehicle_service

logger = logging.getLogger(__name__)


@dataclass
class DocumentReportRow:
    """One document line of the expiring documents report"""
    vehicle: Vehicle
    resolved: ResolvedDocument

    @property
    def days_difference(self) -> Optional[int]:
        return self.resolved.days_remaining


@dataclass
class StatusCounts:
    expiring_soon: int = 0
    overdue: int = 0
    missing: int = 0
    compliant: int = 0

    def add(self, status: ComplianceStatus):
        if status == ComplianceStatus.EXPIRING_SOON:
            self.expiring_soon += 1
        elif status == ComplianceStatus.OVERDUE:
            self.overdue += 1
        elif status == ComplianceStatus.MISSING:
            self.missing += 1
        else:
            self.compliant += 1


@dataclass
class SummaryStats:
    total_vehicles: int = 0
    badges: Dict[VehicleComplianceStatus, int] = field(
        default_factory=lambda: {status: 0 for status in VehicleComplianceStatus}
    )
    documents: StatusCounts = field(default_factory=StatusCounts)
    by_document_type: Dict[str, StatusCounts] = field(default_factory=dict)


def _row_sort_key(row: DocumentReportRow):
    # Missing (no expiry) first, then soonest, then registration
    days = row.days_difference
    return (days is not None, days if days is not None else 0, row.vehicle.registration_key)


class ReportService:
    """Service for compliance reporting"""

    def __init__(self, vehicle_service: Optional[VehicleService] = None):
        self._vehicle_service = vehicle_service
        logger.info("✅ ReportService initialized")

    @property
    def vehicles(self) -> VehicleService:
        return self._vehicle_service or get_vehicle_service()

    def _record_view(self, report: str, actor_id: Optional[str], details: Optional[Dict] = None):
        vehicles = self.vehicles
        vehicles.store.record_audit(AuditLogEntry(
            id=str(uuid.uuid4()),
            timestamp=vehicles.clock.now(),
            actor_id=actor_id or vehicles.config.DEFAULT_ACTOR_ID,
            action=AuditAction.VIEW_REPORT,
            entity_type=AuditEntityType.REPORT,
            entity_id=report,
            details=details or {},
        ))

    # ========================================================================
    # SUMMARY
    # ========================================================================

    async def summary(self, actor_id: Optional[str] = None) -> SummaryStats:
        """
        Fleet-wide counts computed against today's date

        Document counts cover the latest document of every series only.
        """
        vehicle_service = self.vehicles
        today = vehicle_service.clock.today()
        warning_days = vehicle_service.config.EXPIRY_WARNING_DAYS

        stats = SummaryStats()
        for vehicle in vehicle_service.store.list_vehicles():
            stats.total_vehicles += 1
            stats.badges[vehicle_service.evaluate(vehicle).status] += 1

            for key, resolved in resolve_latest_documents(vehicle, today, warning_days).items():
                stats.documents.add(resolved.status)
                stats.by_document_type.setdefault(key.label, StatusCounts()).add(resolved.status)

        logger.info(
            f"📊 Summary: {stats.total_vehicles} vehicles, "
            f"{stats.documents.overdue} overdue, {stats.documents.expiring_soon} expiring soon"
        )
        self._record_view("summary", actor_id)
        return stats

    # ========================================================================
    # EXPIRING DOCUMENTS
    # ========================================================================

    async def expiring_documents(
        self,
        statuses: Optional[Iterable[ComplianceStatus]] = None,
        document_types: Optional[Iterable[DocumentType]] = None,
        latest_only: bool = True,
        actor_id: Optional[str] = None,
    ) -> List[DocumentReportRow]:
        """
        Documents with their status and days until expiry

        Args:
            statuses: Keep only these statuses (default: ExpiringSoon, Overdue, Missing)
            document_types: Keep only these document types (default: all)
            latest_only: Skip superseded documents

        Returns:
            Rows sorted by days difference (missing expiry first), then registration
        """
        vehicle_service = self.vehicles
        today = vehicle_service.clock.today()
        warning_days = vehicle_service.config.EXPIRY_WARNING_DAYS

        wanted_statuses = set(statuses) if statuses else {
            ComplianceStatus.EXPIRING_SOON, ComplianceStatus.OVERDUE, ComplianceStatus.MISSING,
        }
        wanted_types = set(document_types) if document_types else None

        rows = []
        for vehicle in vehicle_service.store.list_vehicles():
            if latest_only:
                resolved_docs = list(resolve_latest_documents(vehicle, today, warning_days).values())
            else:
                resolved_docs = [resolve_document(doc, today, warning_days) for doc in vehicle.documents]

            for resolved in resolved_docs:
                if resolved.status not in wanted_statuses:
                    continue
                if wanted_types is not None and resolved.document.document_type not in wanted_types:
                    continue
                rows.append(DocumentReportRow(vehicle=vehicle, resolved=resolved))

        rows.sort(key=_row_sort_key)

        logger.info(f"📋 Expiring documents report: {len(rows)} rows")
        self._record_view("expiring-documents", actor_id, {
            'statuses': sorted(s.value for s in wanted_statuses),
            'document_types': sorted(t.value for t in wanted_types) if wanted_types else None,
            'latest_only': latest_only,
        })
        return rows

    # ========================================================================
    # AUDIT LOG
    # ========================================================================

    async def audit_logs(
        self,
        actor_id: Optional[str] = None,
        entity_type: Optional[AuditEntityType] = None,
        action: Optional[AuditAction] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
    ) -> List[AuditLogEntry]:
        """
        Audit entries, newest first

        Args:
            actor_id: Entries by this user only
            entity_type: Entries about this kind of entity only
            action: Entries of this action only
            start_date: Inclusive lower bound on the entry date
            end_date: Inclusive upper bound on the entry date
            limit: Maximum number of entries returned
        """
        entries = []
        for entry in self.vehicles.store.list_audit_logs():
            if actor_id and entry.actor_id != actor_id:
                continue
            if entity_type is not None and entry.entity_type != entity_type:
                continue
            if action is not None and entry.action != action:
                continue
            entry_date = entry.timestamp.date() if isinstance(entry.timestamp, datetime) else entry.timestamp
            if start_date is not None and entry_date < start_date:
                continue
            if end_date is not None and entry_date > end_date:
                continue
            entries.append(entry)
            if len(entries) >= limit:
                break

        logger.debug(f"Audit log query returned {len(entries)} entries")
        return entries


# Global service instance
_report_service: Optional[ReportService] = None


def get_report_service() -> ReportService:
    """Get or create report service singleton"""
    global _report_service

    if _report_service is None:
        _report_service = ReportService()

    return _report_service
