# tests/test_vehicle_service.py
# Tests for the mutation gateway over the in-memory store

import threading
from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from compliance_engine.errors import (
    DuplicateRegistrationError,
    FieldValidationError,
    VehicleNotFound,
)
from compliance_engine.models import (
    AuditAction,
    ComplianceStatus,
    DocumentType,
    VehicleComplianceStatus,
)
from compliance_engine.reconciliation import manual_document_fields, reconcile_extraction

from conftest import AGENT_PAYLOAD, make_vehicle, run


def add(service, vehicle_id, document_type, expiry, **kwargs):
    fields = manual_document_fields(document_type, expiry_date=expiry, **kwargs)
    return run(service.add_document(vehicle_id, fields))


@pytest.fixture
def vehicle(vehicle_service):
    return run(vehicle_service.create_vehicle("mh 12 ab 1234", vehicle_type="Car", make="Tata"))


class TestVehicleLifecycle:

    def test_create_normalizes_registration(self, vehicle):
        assert vehicle.registration_number == "MH 12 AB 1234"
        assert vehicle.registration_key == "MH12AB1234"

    def test_duplicate_registration_is_case_and_separator_insensitive(self, vehicle_service, vehicle):
        with pytest.raises(DuplicateRegistrationError):
            run(vehicle_service.create_vehicle("MH-12-AB-1234"))

    def test_blank_registration_rejected(self, vehicle_service):
        with pytest.raises(FieldValidationError):
            run(vehicle_service.create_vehicle("  - "))

    def test_lookup_by_registration(self, vehicle_service, vehicle):
        found = run(vehicle_service.get_by_registration("mh12ab1234"))
        assert found.id == vehicle.id

    def test_new_vehicle_is_missing_info(self, vehicle_service, vehicle):
        assert vehicle_service.evaluate(vehicle).status == VehicleComplianceStatus.MISSING_INFO

    def test_update_vehicle(self, vehicle_service, vehicle):
        updated = run(vehicle_service.update_vehicle(vehicle.id, {'model': 'Nexon', 'make': 'Tata Motors'}))

        assert updated.model == "Nexon"
        assert updated.make == "Tata Motors"
        assert updated.registration_number == vehicle.registration_number

    def test_update_rejects_unknown_field(self, vehicle_service, vehicle):
        with pytest.raises(FieldValidationError):
            run(vehicle_service.update_vehicle(vehicle.id, {'colour': 'red'}))

    def test_update_to_taken_registration_rejected(self, vehicle_service, vehicle):
        other = run(vehicle_service.create_vehicle("KA05MN4321"))
        with pytest.raises(DuplicateRegistrationError):
            run(vehicle_service.update_vehicle(other.id, {'registration_number': 'MH12AB1234'}))

    def test_rename_rechecks_uniqueness_at_commit(self, vehicle_service, vehicle, store):
        """A registration claimed while a rename is staged wins; the rename is rejected"""
        other = run(vehicle_service.create_vehicle("KA05MN4321"))

        with pytest.raises(DuplicateRegistrationError):
            with store.transaction(other.id) as session:
                session.update_vehicle(replace(session.get_vehicle(), registration_number="DL1CAX0001"))
                store.insert_vehicle(make_vehicle(registration="DL1CAX0001", vehicle_id="vehicle-late"))

        keys = [v.registration_key for v in store.list_vehicles()]
        assert sorted(keys) == ["DL1CAX0001", "KA05MN4321", "MH12AB1234"]
        assert store.find_by_registration("DL1CAX0001").id == "vehicle-late"
        assert store.get_vehicle(other.id).registration_number == "KA05MN4321"

    def test_delete_cascades_alerts(self, vehicle_service, vehicle, store):
        add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 20))
        assert store.list_alerts(vehicle_id=vehicle.id)

        assert run(vehicle_service.delete_vehicle(vehicle.id)) is True
        assert run(vehicle_service.get_by_id(vehicle.id)) is None
        assert store.list_alerts(vehicle_id=vehicle.id) == []
        assert run(vehicle_service.delete_vehicle(vehicle.id)) is False

    def test_list_filters_by_status_and_search(self, vehicle_service, vehicle):
        other = run(vehicle_service.create_vehicle("KA05MN4321"))
        add(vehicle_service, other.id, DocumentType.PUC, date(2024, 1, 1))

        overdue = run(vehicle_service.list_vehicles(status=VehicleComplianceStatus.OVERDUE))
        assert [v.id for v, _ in overdue] == [other.id]

        found = run(vehicle_service.list_vehicles(search="12-ab"))
        assert [v.id for v, _ in found] == [vehicle.id]


class TestDocuments:

    def test_add_document_to_unknown_vehicle(self, vehicle_service):
        with pytest.raises(VehicleNotFound):
            add(vehicle_service, "missing", DocumentType.INSURANCE, date(2025, 1, 1))

    def test_sequences_are_assigned_in_order(self, vehicle_service, vehicle):
        first = add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2025, 1, 1))
        second = add(vehicle_service, vehicle.id, DocumentType.PUC, date(2025, 1, 1))

        assert (first.document.sequence, second.document.sequence) == (1, 2)

    def test_history_is_kept_and_latest_wins(self, vehicle_service, vehicle, clock):
        add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2026, 1, 1))
        clock.advance_to(datetime(2024, 1, 16, tzinfo=timezone.utc))
        add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 2, 1))

        history = run(vehicle_service.list_documents(vehicle.id))
        assert [d.document.expiry for d in history] == [date(2024, 2, 1), date(2026, 1, 1)]

        latest = run(vehicle_service.get_latest_document(vehicle.id, DocumentType.INSURANCE))
        assert latest.document.expiry == date(2024, 2, 1)
        assert latest.status == ComplianceStatus.EXPIRING_SOON

    def test_latest_of_unknown_series_is_none(self, vehicle_service, vehicle):
        assert run(vehicle_service.get_latest_document(vehicle.id, DocumentType.AITP)) is None

    def test_upload_writes_audit_entry(self, vehicle_service, vehicle, store):
        result = add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2025, 1, 1))

        uploads = [e for e in store.list_audit_logs() if e.action == AuditAction.UPLOAD_DOCUMENT]
        assert len(uploads) == 1
        assert uploads[0].entity_id == result.document.id
        assert uploads[0].actor_id == "system"

    def test_overdue_insurance_renewal(self, vehicle_service, vehicle, store):
        """Overdue insurance renewed: vehicle becomes Compliant and the alert is resolved"""
        add(vehicle_service, vehicle.id, DocumentType.FITNESS, date(2025, 6, 1))
        add(vehicle_service, vehicle.id, DocumentType.PUC, date(2025, 6, 1))
        overdue = add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 1))

        assert vehicle_service.evaluate(overdue.vehicle).status == VehicleComplianceStatus.OVERDUE
        assert len(overdue.alert_changes.created) == 1
        alert_id = overdue.alert_changes.created[0].id

        renewal = add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2025, 1, 1))

        assert vehicle_service.evaluate(renewal.vehicle).status == VehicleComplianceStatus.COMPLIANT
        assert [a.id for a in renewal.alert_changes.resolved] == [alert_id]
        assert store.get_alert(alert_id).is_read is True
        assert store.list_alerts(only_unread=True) == []
        assert any(e.action == AuditAction.RESOLVE_ALERT for e in store.list_audit_logs())

    def test_registration_change_refreshes_alert_text(self, vehicle_service, vehicle, store):
        add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 20))
        run(vehicle_service.update_vehicle(vehicle.id, {'registration_number': 'mh12zz9999'}))

        alert = store.list_alerts(vehicle_id=vehicle.id)[0]
        assert alert.vehicle_registration == "MH12ZZ9999"
        assert "MH12ZZ9999" in alert.message

    def test_concurrent_uploads_get_distinct_sequences(self, vehicle_service, vehicle, store):
        errors = []

        def upload():
            try:
                add(vehicle_service, vehicle.id, DocumentType.PUC, date(2025, 1, 1))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=upload) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        sequences = sorted(d.sequence for d in store.get_vehicle(vehicle.id).documents)
        assert sequences == list(range(1, 9))


class TestConfirmedIngestion:

    def test_creates_vehicle_from_confirmed_registration(self, vehicle_service, store):
        fields = reconcile_extraction(dict(AGENT_PAYLOAD))
        result = run(vehicle_service.ingest_confirmed_document(fields, document_name="policy.pdf"))

        assert result.vehicle_created is True
        assert result.vehicle.registration_number == "MH12AB1234"
        assert result.vehicle.make == "Tata Motors"
        assert result.document.document_name == "policy.pdf"
        assert result.document.expiry_date.agent_confidence == 0.91

    def test_reuses_existing_vehicle(self, vehicle_service, vehicle):
        fields = reconcile_extraction(dict(AGENT_PAYLOAD, vehicleRegistrationNumber="MH-12-AB-1234"))
        result = run(vehicle_service.ingest_confirmed_document(fields))

        assert result.vehicle_created is False
        assert result.vehicle.id == vehicle.id

    def test_requires_registration_without_vehicle_id(self, vehicle_service):
        fields = reconcile_extraction(dict(AGENT_PAYLOAD, vehicleRegistrationNumber=None))
        with pytest.raises(FieldValidationError):
            run(vehicle_service.ingest_confirmed_document(fields))

    def test_explicit_vehicle_wins_over_registration(self, vehicle_service, vehicle):
        fields = reconcile_extraction(dict(AGENT_PAYLOAD, vehicleRegistrationNumber="DL1CAX0001"))
        result = run(vehicle_service.ingest_confirmed_document(fields, vehicle_id=vehicle.id))

        assert result.vehicle.id == vehicle.id
        assert run(vehicle_service.get_by_registration("DL1CAX0001")) is None
