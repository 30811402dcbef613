# compliance_engine/status_calculator.py
# Document compliance status from an expiry date

from datetime import date, datetime
from typing import Optional, Union

from .models import ComplianceStatus

EXPIRY_WARNING_DAYS = 30

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    # time-of-day is ignored on both sides
    if isinstance(value, datetime):
        return value.date()
    return value


def days_remaining(expiry_date: Optional[DateLike], today: Optional[DateLike] = None) -> Optional[int]:
    """Calendar days from today to expiry; negative once expired, None when there is no expiry"""
    if expiry_date is None:
        return None
    today = _as_date(today) if today is not None else date.today()
    return (_as_date(expiry_date) - today).days


def compute_status(
    expiry_date: Optional[DateLike],
    today: Optional[DateLike] = None,
    warning_days: int = EXPIRY_WARNING_DAYS,
) -> ComplianceStatus:
    """
    Compute the compliance status of a document.

    Args:
        expiry_date: Confirmed expiry date, None when not established
        today: Evaluation date; defaults to the current date at call time
        warning_days: Length of the ExpiringSoon window in days

    Returns:
        Missing when there is no expiry, Overdue when it has passed,
        ExpiringSoon when 0 <= days remaining <= warning_days, else Compliant
    """
    remaining = days_remaining(expiry_date, today)
    if remaining is None:
        return ComplianceStatus.MISSING
    if remaining < 0:
        return ComplianceStatus.OVERDUE
    if remaining <= warning_days:
        return ComplianceStatus.EXPIRING_SOON
    return ComplianceStatus.COMPLIANT
