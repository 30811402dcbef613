# tests/test_alert_service.py
# Tests for alert listing, refresh and acknowledgement

from datetime import date, datetime, timezone

import pytest

from compliance_engine.errors import AlertNotFound, ConcurrentWriteConflict
from compliance_engine.models import AuditAction, DocumentType
from compliance_engine.reconciliation import manual_document_fields

from fleet_api.modules.alerts.services.alert_service import AlertService

from conftest import run


@pytest.fixture
def alert_service(vehicle_service):
    return AlertService(vehicle_service)


@pytest.fixture
def vehicle(vehicle_service):
    return run(vehicle_service.create_vehicle("MH12AB1234"))


def add(vehicle_service, vehicle_id, document_type, expiry):
    return run(vehicle_service.add_document(vehicle_id, manual_document_fields(document_type, expiry_date=expiry)))


class TestAlertService:

    def test_list_newest_first(self, alert_service, vehicle_service, vehicle, clock):
        add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 20))
        clock.advance_to(datetime(2024, 1, 16, tzinfo=timezone.utc))
        add(vehicle_service, vehicle.id, DocumentType.PUC, date(2024, 1, 10))

        alerts = run(alert_service.list_alerts())
        assert [a.document_type for a in alerts] == [DocumentType.PUC, DocumentType.INSURANCE]

    def test_refresh_raises_alert_when_document_enters_window(self, alert_service, vehicle_service, vehicle, clock):
        """A compliant document gets its alert once the clock moves into the warning window"""
        add(vehicle_service, vehicle.id, DocumentType.FITNESS, date(2024, 3, 1))
        assert run(alert_service.list_alerts()) == []

        clock.advance_to(datetime(2024, 2, 10, tzinfo=timezone.utc))
        alerts = run(alert_service.list_alerts(only_unread=True))

        assert len(alerts) == 1
        assert alerts[0].document_type == DocumentType.FITNESS
        assert run(alert_service.unread_count()) == 1

    def test_mark_read(self, alert_service, vehicle_service, vehicle, store):
        result = add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 20))
        alert_id = result.alert_changes.created[0].id

        alert = run(alert_service.mark_read(alert_id, actor_id="user-7"))

        assert alert.is_read is True
        assert alert.resolved_at is None
        assert run(alert_service.unread_count()) == 0
        entries = [e for e in store.list_audit_logs() if e.action == AuditAction.MARK_ALERT_READ]
        assert entries[0].actor_id == "user-7"

    def test_read_alert_stays_read_after_refresh(self, alert_service, vehicle_service, vehicle):
        result = add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 20))
        run(alert_service.mark_read(result.alert_changes.created[0].id))

        assert run(alert_service.list_alerts(only_unread=True)) == []

    def test_mark_read_twice_is_harmless(self, alert_service, vehicle_service, vehicle, store):
        result = add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 20))
        alert_id = result.alert_changes.created[0].id

        run(alert_service.mark_read(alert_id))
        run(alert_service.mark_read(alert_id))

        entries = [e for e in store.list_audit_logs() if e.action == AuditAction.MARK_ALERT_READ]
        assert len(entries) == 1

    def test_mark_unknown_alert(self, alert_service, components):
        with pytest.raises(AlertNotFound):
            run(alert_service.mark_read("nope"))


class TestRefreshResilience:

    def test_unread_count_stable_over_repeated_refreshes(self, alert_service, vehicle_service, vehicle):
        add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 1))
        add(vehicle_service, vehicle.id, DocumentType.PUC, date(2024, 2, 1))
        add(vehicle_service, vehicle.id, DocumentType.FITNESS, date(2025, 1, 1))
        other = run(vehicle_service.create_vehicle("KA05MN4321"))
        add(vehicle_service, other.id, DocumentType.INSURANCE, date(2024, 1, 30))

        for _ in range(3):
            run(alert_service.refresh_all())

        assert run(alert_service.unread_count()) == 3
        assert len(run(alert_service.list_alerts(only_unread=True))) == 3

    def test_write_conflict_skips_only_that_vehicle(self, alert_service, vehicle_service, vehicle, store, monkeypatch):
        """A locked vehicle does not fail the whole listing"""
        add(vehicle_service, vehicle.id, DocumentType.INSURANCE, date(2024, 1, 1))
        locked = run(vehicle_service.create_vehicle("KA05MN4321"))
        add(vehicle_service, locked.id, DocumentType.PUC, date(2024, 1, 20))

        original_transaction = store.transaction

        def transaction(vehicle_id):
            if vehicle_id == locked.id:
                raise ConcurrentWriteConflict(f"vehicle {vehicle_id} is locked")
            return original_transaction(vehicle_id)

        monkeypatch.setattr(store, "transaction", transaction)

        alerts = run(alert_service.list_alerts())
        assert {a.vehicle_id for a in alerts} == {vehicle.id, locked.id}
        assert run(alert_service.unread_count()) == 2
        assert len(run(alert_service.list_alerts(vehicle_id=locked.id))) == 1
