# tests/test_status_calculator.py
# Unit tests for per-document status computation

from datetime import date, datetime, timezone

import pytest

from compliance_engine.models import ComplianceStatus
from compliance_engine.status_calculator import compute_status, days_remaining

TODAY = date(2024, 1, 15)


class TestComputeStatus:
    """Status thresholds relative to today and the warning window"""

    def test_missing_without_expiry(self):
        """No expiry date means the document is Missing"""
        assert compute_status(None, TODAY) == ComplianceStatus.MISSING

    def test_overdue_when_expired_yesterday(self):
        assert compute_status(date(2024, 1, 14), TODAY) == ComplianceStatus.OVERDUE

    def test_expiry_today_is_expiring_soon(self):
        """A document expiring today is still valid today"""
        assert compute_status(TODAY, TODAY) == ComplianceStatus.EXPIRING_SOON

    @pytest.mark.parametrize("expiry,expected", [
        (date(2024, 2, 14), ComplianceStatus.EXPIRING_SOON),  # exactly 30 days
        (date(2024, 2, 15), ComplianceStatus.COMPLIANT),      # 31 days
    ])
    def test_warning_window_boundary(self, expiry, expected):
        assert compute_status(expiry, TODAY, warning_days=30) == expected

    def test_zero_warning_window(self):
        """With a zero-day window only today's expiry is ExpiringSoon"""
        assert compute_status(TODAY, TODAY, warning_days=0) == ComplianceStatus.EXPIRING_SOON
        assert compute_status(date(2024, 1, 16), TODAY, warning_days=0) == ComplianceStatus.COMPLIANT

    def test_time_of_day_is_ignored(self):
        """Datetimes are compared by calendar date only"""
        late_evening = datetime(2024, 1, 15, 23, 59, tzinfo=timezone.utc)
        early_morning = datetime(2024, 1, 15, 0, 1, tzinfo=timezone.utc)
        assert compute_status(early_morning, late_evening) == ComplianceStatus.EXPIRING_SOON

    def test_status_changes_with_evaluation_date(self):
        """The same expiry yields different statuses on different days"""
        expiry = date(2024, 3, 1)
        assert compute_status(expiry, date(2024, 1, 1)) == ComplianceStatus.COMPLIANT
        assert compute_status(expiry, date(2024, 2, 15)) == ComplianceStatus.EXPIRING_SOON
        assert compute_status(expiry, date(2024, 3, 2)) == ComplianceStatus.OVERDUE


class TestDaysRemaining:

    def test_positive_and_negative(self):
        assert days_remaining(date(2024, 1, 25), TODAY) == 10
        assert days_remaining(date(2024, 1, 5), TODAY) == -10

    def test_none_without_expiry(self):
        assert days_remaining(None, TODAY) is None
