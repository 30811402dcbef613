# compliance_engine/vehicle_status.py
# Overall vehicle badge from the latest document of every tracked series

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional, Sequence

from .models import ComplianceStatus, DocumentType, SeriesKey, Vehicle, VehicleComplianceStatus
from .status_calculator import EXPIRY_WARNING_DAYS
from .version_resolver import ResolvedDocument, resolve_latest_documents, series_sort_key

ESSENTIAL_DOCUMENT_TYPES = (DocumentType.INSURANCE, DocumentType.FITNESS, DocumentType.PUC)

# Badge priority, most severe first
BADGE_PRIORITY = (
    VehicleComplianceStatus.OVERDUE,
    VehicleComplianceStatus.EXPIRING_SOON,
    VehicleComplianceStatus.MISSING_INFO,
    VehicleComplianceStatus.COMPLIANT,
)


@dataclass(frozen=True)
class VehicleStatusResult:
    status: VehicleComplianceStatus
    contributing_type: Optional[SeriesKey] = None
    series: Dict[SeriesKey, Optional[ResolvedDocument]] = field(default_factory=dict)

    def series_status(self, key: SeriesKey) -> Optional[ComplianceStatus]:
        resolved = self.series.get(key)
        return resolved.status if resolved else None


def badge_rank(status: VehicleComplianceStatus) -> int:
    """Position in the badge priority; lower is more severe"""
    return BADGE_PRIORITY.index(VehicleComplianceStatus(status))


def resolve_vehicle_status(
    vehicle: Vehicle,
    today: Optional[date] = None,
    warning_days: int = EXPIRY_WARNING_DAYS,
    essential_types: Iterable[DocumentType] = ESSENTIAL_DOCUMENT_TYPES,
) -> VehicleStatusResult:
    """
    Reduce every tracked series to one badge.

    Overdue > ExpiringSoon > MissingInfo > Compliant. Tracked series are the
    essential types plus every series present on the vehicle. Only an
    essential series that was never uploaded or has no expiry makes the
    vehicle MissingInfo.
    """
    essential_keys = [SeriesKey.of(t) for t in essential_types]
    resolved = resolve_latest_documents(vehicle, today, warning_days)

    tracked: Dict[SeriesKey, Optional[ResolvedDocument]] = {key: None for key in essential_keys}
    tracked.update(resolved)
    ordered_keys: Sequence[SeriesKey] = sorted(tracked, key=series_sort_key)
    series = {key: tracked[key] for key in ordered_keys}

    if not vehicle.documents:
        first = ordered_keys[0] if ordered_keys else None
        return VehicleStatusResult(VehicleComplianceStatus.MISSING_INFO, first, series)

    for wanted in (ComplianceStatus.OVERDUE, ComplianceStatus.EXPIRING_SOON):
        for key in ordered_keys:
            doc = series[key]
            if doc is not None and doc.status == wanted:
                badge = (VehicleComplianceStatus.OVERDUE if wanted == ComplianceStatus.OVERDUE
                         else VehicleComplianceStatus.EXPIRING_SOON)
                return VehicleStatusResult(badge, key, series)

    for key in ordered_keys:
        if key not in essential_keys:
            continue
        doc = series[key]
        if doc is None or doc.status == ComplianceStatus.MISSING:
            return VehicleStatusResult(VehicleComplianceStatus.MISSING_INFO, key, series)

    return VehicleStatusResult(VehicleComplianceStatus.COMPLIANT, None, series)
