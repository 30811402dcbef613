# tests/test_report_service.py
# Tests for summary, expiring documents and audit log reports

from datetime import date, datetime, timezone

import pytest

from compliance_engine.models import AuditAction, AuditEntityType, ComplianceStatus, DocumentType, VehicleComplianceStatus
from compliance_engine.reconciliation import manual_document_fields

from fleet_api.modules.reports.services.report_service import ReportService

from conftest import run


@pytest.fixture
def report_service(vehicle_service):
    return ReportService(vehicle_service)


def add(vehicle_service, vehicle_id, document_type, expiry):
    return run(vehicle_service.add_document(vehicle_id, manual_document_fields(document_type, expiry_date=expiry)))


@pytest.fixture
def fleet(vehicle_service, clock):
    """Two vehicles: one overdue, one with an expiring and a superseded document"""
    alpha = run(vehicle_service.create_vehicle("MH12AB1234", actor_id="alice"))
    beta = run(vehicle_service.create_vehicle("KA05MN4321", actor_id="bob"))

    add(vehicle_service, alpha.id, DocumentType.INSURANCE, date(2024, 1, 1))
    add(vehicle_service, alpha.id, DocumentType.PUC, None)
    add(vehicle_service, beta.id, DocumentType.INSURANCE, date(2023, 12, 1))
    clock.advance_to(datetime(2024, 1, 15, 12, tzinfo=timezone.utc))
    add(vehicle_service, beta.id, DocumentType.INSURANCE, date(2024, 2, 1))
    add(vehicle_service, beta.id, DocumentType.FITNESS, date(2025, 1, 1))
    return alpha, beta


class TestSummary:

    def test_counts(self, report_service, fleet):
        stats = run(report_service.summary())

        assert stats.total_vehicles == 2
        assert stats.badges[VehicleComplianceStatus.OVERDUE] == 1
        assert stats.badges[VehicleComplianceStatus.EXPIRING_SOON] == 1
        # latest documents only: alpha insurance + puc, beta insurance + fitness
        assert stats.documents.overdue == 1
        assert stats.documents.expiring_soon == 1
        assert stats.documents.missing == 1
        assert stats.documents.compliant == 1
        assert stats.by_document_type["Insurance"].overdue == 1
        assert stats.by_document_type["Insurance"].expiring_soon == 1

    def test_view_is_audited(self, report_service, fleet, store):
        run(report_service.summary(actor_id="auditor"))

        entry = store.list_audit_logs()[0]
        assert entry.action == AuditAction.VIEW_REPORT
        assert entry.entity_id == "summary"
        assert entry.entity_type == AuditEntityType.REPORT
        assert entry.actor_id == "auditor"


class TestExpiringDocuments:

    def test_sorted_missing_first_then_days(self, report_service, fleet):
        rows = run(report_service.expiring_documents())

        assert [(r.vehicle.registration_number, r.resolved.status) for r in rows] == [
            ("MH12AB1234", ComplianceStatus.MISSING),
            ("MH12AB1234", ComplianceStatus.OVERDUE),
            ("KA05MN4321", ComplianceStatus.EXPIRING_SOON),
        ]
        assert [r.days_difference for r in rows] == [None, -14, 17]

    def test_superseded_documents_on_request(self, report_service, fleet):
        rows = run(report_service.expiring_documents(
            statuses=[ComplianceStatus.OVERDUE], latest_only=False,
        ))
        assert [r.vehicle.registration_number for r in rows] == ["KA05MN4321", "MH12AB1234"]

    def test_filter_by_type(self, report_service, fleet):
        rows = run(report_service.expiring_documents(document_types=[DocumentType.PUC]))
        assert [r.resolved.document.document_type for r in rows] == [DocumentType.PUC]


class TestAuditLogs:

    def test_filter_by_actor_and_action(self, report_service, fleet):
        entries = run(report_service.audit_logs(actor_id="alice", action=AuditAction.CREATE_VEHICLE))

        assert len(entries) == 1
        assert entries[0].entity_registration == "MH12AB1234"

    def test_newest_first_with_limit(self, report_service, fleet):
        entries = run(report_service.audit_logs(action=AuditAction.UPLOAD_DOCUMENT, limit=2))

        assert len(entries) == 2
        assert entries[0].timestamp >= entries[1].timestamp

    def test_date_range(self, report_service, fleet):
        assert run(report_service.audit_logs(start_date=date(2024, 1, 16))) == []
        assert run(report_service.audit_logs(end_date=date(2024, 1, 15)))
