# tests/test_version_resolver.py
# Unit tests for latest-document selection

from datetime import date, timedelta

from compliance_engine.models import ComplianceStatus, DocumentType, SeriesKey
from compliance_engine.version_resolver import (
    latest_documents,
    resolve_latest_document,
    resolve_latest_documents,
    series_keys,
)

from conftest import NOW, TODAY, make_document, make_vehicle


class TestResolveLatestDocument:
    """The most recent upload of a series is authoritative"""

    def test_newest_upload_wins_even_with_earlier_expiry(self):
        """A later upload replaces the previous one, whatever its expiry"""
        older = make_document(expiry=date(2026, 1, 1), uploaded_at=NOW - timedelta(days=10), sequence=1)
        newer = make_document(expiry=date(2024, 6, 1), uploaded_at=NOW, sequence=2)
        vehicle = make_vehicle([older, newer])

        latest = resolve_latest_document(vehicle, DocumentType.INSURANCE)
        assert latest.id == newer.id

    def test_equal_timestamps_fall_back_to_sequence(self):
        first = make_document(expiry=date(2025, 1, 1), sequence=1)
        second = make_document(expiry=date(2024, 2, 1), sequence=2)

        latest = resolve_latest_document([second, first], DocumentType.INSURANCE)
        assert latest.sequence == 2

    def test_never_uploaded_series_returns_none(self):
        vehicle = make_vehicle([make_document(expiry=date(2025, 1, 1))])
        assert resolve_latest_document(vehicle, DocumentType.PUC) is None

    def test_other_series_are_keyed_by_custom_name(self):
        """Each custom-named Other document is its own series"""
        road_tax = make_document(DocumentType.OTHER, date(2025, 1, 1), custom_type_name="Road Tax", sequence=1)
        green_tax = make_document(DocumentType.OTHER, date(2024, 1, 20), custom_type_name="Green Tax", sequence=2)
        vehicle = make_vehicle([road_tax, green_tax])

        assert resolve_latest_document(vehicle, DocumentType.OTHER, "Road Tax").id == road_tax.id
        assert resolve_latest_document(vehicle, DocumentType.OTHER, "Green Tax").id == green_tax.id

    def test_custom_name_is_ignored_for_standard_types(self):
        doc = make_document(expiry=date(2025, 1, 1))
        assert resolve_latest_document([doc], DocumentType.INSURANCE, "anything").id == doc.id


class TestLatestDocuments:

    def test_one_entry_per_series(self):
        docs = [
            make_document(DocumentType.INSURANCE, date(2025, 1, 1), sequence=1, uploaded_at=NOW - timedelta(days=1)),
            make_document(DocumentType.INSURANCE, date(2026, 1, 1), sequence=2),
            make_document(DocumentType.PUC, date(2024, 1, 20), sequence=3),
        ]
        latest = latest_documents(docs)

        assert set(latest) == {SeriesKey.of(DocumentType.INSURANCE), SeriesKey.of(DocumentType.PUC)}
        assert latest[SeriesKey.of(DocumentType.INSURANCE)].sequence == 2

    def test_resolved_status_is_computed_for_given_day(self):
        docs = [make_document(DocumentType.PUC, date(2024, 1, 20))]

        resolved = resolve_latest_documents(docs, TODAY, 30)[SeriesKey.of(DocumentType.PUC)]
        assert resolved.status == ComplianceStatus.EXPIRING_SOON
        assert resolved.days_remaining == 5

    def test_series_keys_stable_order(self):
        docs = [
            make_document(DocumentType.PUC, sequence=1),
            make_document(DocumentType.INSURANCE, sequence=2),
        ]
        assert series_keys(docs) == [SeriesKey.of(DocumentType.INSURANCE), SeriesKey.of(DocumentType.PUC)]
