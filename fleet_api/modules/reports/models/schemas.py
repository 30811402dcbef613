#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/reports/models/schemas.py
# Pydantic models for Reports API

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime, date

from compliance_engine.models import (
    AuditAction,
    AuditEntityType,
    AuditLogEntry,
    ComplianceStatus,
    DocumentType,
    VehicleComplianceStatus,
)

from ..services.report_service import DocumentReportRow, StatusCounts, SummaryStats


class StatusCountsResponse(BaseModel):
    expiring_soon: int = 0
    overdue: int = 0
    missing: int = 0
    compliant: int = 0

    @classmethod
    def from_counts(cls, counts: StatusCounts) -> "StatusCountsResponse":
        return cls(
            expiring_soon=counts.expiring_soon,
            overdue=counts.overdue,
            missing=counts.missing,
            compliant=counts.compliant,
        )


class BadgeBreakdown(BaseModel):
    """Vehicles per overall badge"""
    compliant: int = 0
    expiring_soon: int = 0
    overdue: int = 0
    missing_info: int = 0
    total: int = 0


class SummaryResponse(BaseModel):
    """Fleet-wide compliance summary"""
    total_vehicles: int
    vehicle_status: BadgeBreakdown
    documents: StatusCountsResponse
    by_document_type: Dict[str, StatusCountsResponse] = {}
    generated_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_stats(cls, stats: SummaryStats) -> "SummaryResponse":
        badges = stats.badges
        return cls(
            total_vehicles=stats.total_vehicles,
            vehicle_status=BadgeBreakdown(
                compliant=badges[VehicleComplianceStatus.COMPLIANT],
                expiring_soon=badges[VehicleComplianceStatus.EXPIRING_SOON],
                overdue=badges[VehicleComplianceStatus.OVERDUE],
                missing_info=badges[VehicleComplianceStatus.MISSING_INFO],
                total=stats.total_vehicles,
            ),
            documents=StatusCountsResponse.from_counts(stats.documents),
            by_document_type={
                label: StatusCountsResponse.from_counts(counts)
                for label, counts in sorted(stats.by_document_type.items())
            },
        )


class ExpiringDocumentItem(BaseModel):
    document_id: str
    vehicle_id: str
    vehicle_registration: str
    document_type: DocumentType
    custom_type_name: Optional[str] = None
    policy_number: Optional[str] = None
    expiry_date: Optional[date] = None
    status: ComplianceStatus
    days_difference: Optional[int] = None
    uploaded_at: datetime

    @classmethod
    def from_row(cls, row: DocumentReportRow) -> "ExpiringDocumentItem":
        doc = row.resolved.document
        return cls(
            document_id=doc.id,
            vehicle_id=row.vehicle.id,
            vehicle_registration=row.vehicle.registration_number,
            document_type=doc.document_type,
            custom_type_name=doc.custom_type_name,
            policy_number=doc.policy_number.value,
            expiry_date=doc.expiry,
            status=row.resolved.status,
            days_difference=row.days_difference,
            uploaded_at=doc.uploaded_at,
        )


class ExpiringDocumentsResponse(BaseModel):
    documents: List[ExpiringDocumentItem]
    total: int
    generated_at: datetime = Field(default_factory=datetime.now)


class AuditLogItem(BaseModel):
    id: str
    timestamp: datetime
    actor_id: str
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: Optional[str] = None
    entity_registration: Optional[str] = None
    details: Dict[str, Any] = {}

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> "AuditLogItem":
        return cls(
            id=entry.id,
            timestamp=entry.timestamp,
            actor_id=entry.actor_id,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            entity_registration=entry.entity_registration,
            details=dict(entry.details),
        )


class AuditLogResponse(BaseModel):
    entries: List[AuditLogItem]
    total: int
