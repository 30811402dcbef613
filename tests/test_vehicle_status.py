# tests/test_vehicle_status.py
# Unit tests for the overall vehicle badge

from datetime import date, timedelta

from compliance_engine.models import DocumentType, SeriesKey, VehicleComplianceStatus
from compliance_engine.vehicle_status import resolve_vehicle_status

from conftest import NOW, TODAY, make_document, make_vehicle

FAR = date(2025, 6, 1)


def compliant_set(start_sequence=1):
    return [
        make_document(DocumentType.INSURANCE, FAR, sequence=start_sequence),
        make_document(DocumentType.FITNESS, FAR, sequence=start_sequence + 1),
        make_document(DocumentType.PUC, FAR, sequence=start_sequence + 2),
    ]


class TestResolveVehicleStatus:

    def test_no_documents_is_missing_info(self):
        result = resolve_vehicle_status(make_vehicle(), TODAY)
        assert result.status == VehicleComplianceStatus.MISSING_INFO

    def test_all_essentials_valid_is_compliant(self):
        result = resolve_vehicle_status(make_vehicle(compliant_set()), TODAY)
        assert result.status == VehicleComplianceStatus.COMPLIANT
        assert result.contributing_type is None

    def test_missing_essential_type_is_missing_info(self):
        docs = compliant_set()[:2]  # no PUC
        result = resolve_vehicle_status(make_vehicle(docs), TODAY)

        assert result.status == VehicleComplianceStatus.MISSING_INFO
        assert result.contributing_type == SeriesKey.of(DocumentType.PUC)

    def test_overdue_beats_expiring_soon(self):
        docs = [
            make_document(DocumentType.INSURANCE, date(2024, 1, 20), sequence=1),
            make_document(DocumentType.FITNESS, date(2024, 1, 1), sequence=2),
            make_document(DocumentType.PUC, FAR, sequence=3),
        ]
        result = resolve_vehicle_status(make_vehicle(docs), TODAY)

        assert result.status == VehicleComplianceStatus.OVERDUE
        assert result.contributing_type == SeriesKey.of(DocumentType.FITNESS)

    def test_expiring_soon_beats_missing_info(self):
        docs = [make_document(DocumentType.INSURANCE, date(2024, 1, 20), sequence=1)]
        result = resolve_vehicle_status(make_vehicle(docs), TODAY)
        assert result.status == VehicleComplianceStatus.EXPIRING_SOON

    def test_non_essential_overdue_document_counts(self):
        """An overdue optional document still makes the vehicle Overdue"""
        docs = compliant_set() + [make_document(DocumentType.AITP, date(2023, 12, 1), sequence=4)]
        result = resolve_vehicle_status(make_vehicle(docs), TODAY)

        assert result.status == VehicleComplianceStatus.OVERDUE
        assert result.contributing_type == SeriesKey.of(DocumentType.AITP)

    def test_non_essential_missing_expiry_does_not_count(self):
        docs = compliant_set() + [make_document(DocumentType.REGISTRATION_CARD, None, sequence=4)]
        result = resolve_vehicle_status(make_vehicle(docs), TODAY)
        assert result.status == VehicleComplianceStatus.COMPLIANT

    def test_renewal_supersedes_overdue_document(self):
        """Only the latest document of a series is considered"""
        expired = make_document(DocumentType.INSURANCE, date(2024, 1, 1), sequence=1,
                                uploaded_at=NOW - timedelta(days=30))
        renewed = make_document(DocumentType.INSURANCE, FAR, sequence=5)
        docs = [expired] + compliant_set(start_sequence=2)[1:] + [renewed]
        result = resolve_vehicle_status(make_vehicle(docs), TODAY)

        assert result.status == VehicleComplianceStatus.COMPLIANT

    def test_custom_essential_types(self):
        docs = [make_document(DocumentType.INSURANCE, FAR, sequence=1)]
        result = resolve_vehicle_status(make_vehicle(docs), TODAY, essential_types=[DocumentType.INSURANCE])
        assert result.status == VehicleComplianceStatus.COMPLIANT

    def test_series_lists_untracked_essentials_as_none(self):
        docs = [make_document(DocumentType.INSURANCE, FAR, sequence=1)]
        result = resolve_vehicle_status(make_vehicle(docs), TODAY)

        assert result.series[SeriesKey.of(DocumentType.FITNESS)] is None
        assert result.series_status(SeriesKey.of(DocumentType.FITNESS)) is None
