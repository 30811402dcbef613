#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# compliance_engine/alert_synthesizer.py
# Keeps the alert collection consistent with the latest documents

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

from .models import Alert, ComplianceStatus, Document, SeriesKey, Vehicle
from .status_calculator import EXPIRY_WARNING_DAYS, compute_status
from .version_resolver import resolve_latest_document, series_keys, series_sort_key

logger = logging.getLogger(__name__)

ALERTING_STATUSES = (ComplianceStatus.EXPIRING_SOON, ComplianceStatus.OVERDUE)


@dataclass
class AlertChanges:
    """Alerts to persist after one synthesis run"""
    created: List[Alert] = field(default_factory=list)
    updated: List[Alert] = field(default_factory=list)
    resolved: List[Alert] = field(default_factory=list)

    @property
    def changed(self) -> List[Alert]:
        return self.created + self.updated + self.resolved

    def __bool__(self) -> bool:
        return bool(self.created or self.updated or self.resolved)

    def extend(self, other: "AlertChanges"):
        self.created.extend(other.created)
        self.updated.extend(other.updated)
        self.resolved.extend(other.resolved)


def _format_day(value: date, long: bool = False) -> str:
    if long:
        return f"{value.strftime('%B')} {value.day}, {value.year}"
    return value.strftime("%b %d, %Y")


def build_alert_message(vehicle: Vehicle, document: Document, status: ComplianceStatus) -> str:
    expiry = document.expiry
    policy = document.policy_number.value or "N/A"
    uploaded = _format_day(document.uploaded_at.date())
    if status == ComplianceStatus.OVERDUE:
        when = f"overdue since {_format_day(expiry, long=True)}"
    else:
        when = f"expiring on {_format_day(expiry, long=True)}"
    return (
        f"{document.series_key.label} (Policy: {policy}, Uploaded: {uploaded}) "
        f"for {vehicle.registration_number} is {when}."
    )


def _new_alert_id() -> str:
    return str(uuid.uuid4())


def _synthesize_series(
    vehicle: Vehicle,
    key: SeriesKey,
    alerts: List[Alert],
    today: date,
    now: datetime,
    warning_days: int,
    id_factory: Callable[[], str],
) -> AlertChanges:
    changes = AlertChanges()
    series_alerts = [a for a in alerts if a.vehicle_id == vehicle.id and a.series_key == key]
    unread = sorted(
        (a for a in series_alerts if not a.is_read),
        key=lambda a: (a.created_at, a.id),
        reverse=True,
    )

    # at most one unread alert per series; older duplicates are resolved
    current = unread[0] if unread else None
    for duplicate in unread[1:]:
        logger.warning(f"⚠️ Resolving duplicate unread alert {duplicate.id} for {vehicle.registration_number} ({key})")
        changes.resolved.append(replace(duplicate, is_read=True, resolved_at=now, updated_at=now))

    latest = resolve_latest_document(vehicle, key.document_type, key.custom_type_name)
    status = compute_status(latest.expiry, today, warning_days) if latest else None

    if status in ALERTING_STATUSES:
        message = build_alert_message(vehicle, latest, status)
        if current is not None:
            if (current.due_date, current.message, current.document_id) != (latest.expiry, message, latest.id):
                changes.updated.append(replace(
                    current,
                    due_date=latest.expiry,
                    message=message,
                    document_id=latest.id,
                    vehicle_registration=vehicle.registration_number,
                    updated_at=now,
                ))
            return changes

        acknowledged = any(
            a.is_read and not a.is_resolved and a.document_id == latest.id and a.due_date == latest.expiry
            for a in series_alerts
        )
        if acknowledged:
            return changes

        changes.created.append(Alert(
            id=id_factory(),
            vehicle_id=vehicle.id,
            vehicle_registration=vehicle.registration_number,
            document_type=key.document_type,
            custom_type_name=key.custom_type_name,
            document_id=latest.id,
            message=message,
            due_date=latest.expiry,
            created_at=now,
        ))
        return changes

    # Compliant, Missing or no document left: the unread alert is stale
    if current is not None:
        changes.resolved.append(replace(current, is_read=True, resolved_at=now, updated_at=now))
    return changes


def synthesize_alerts(
    vehicle: Vehicle,
    existing_alerts: Iterable[Alert],
    changed_document: Optional[Document] = None,
    *,
    today: date,
    now: datetime,
    warning_days: int = EXPIRY_WARNING_DAYS,
    id_factory: Callable[[], str] = _new_alert_id,
) -> AlertChanges:
    """
    Derive alert changes for a vehicle.

    Args:
        vehicle: Vehicle snapshot including its full document history
        existing_alerts: Alerts currently stored for the vehicle
        changed_document: Document just added or updated; when None every
            series of the vehicle (and every series with an unread alert) is recomputed
        today: Evaluation date for status computation
        now: Timestamp stamped on created/updated/resolved alerts
        warning_days: ExpiringSoon window
        id_factory: Generates ids for new alerts

    Returns:
        AlertChanges with created, updated and resolved alerts. Read alerts
        are never edited, except duplicates of an unread one being resolved.
    """
    alerts = [a for a in existing_alerts if a.vehicle_id == vehicle.id]

    if changed_document is not None:
        keys = [changed_document.series_key]
    else:
        keys = set(series_keys(vehicle))
        keys.update(a.series_key for a in alerts if not a.is_read)
        keys = sorted(keys, key=series_sort_key)

    changes = AlertChanges()
    for key in keys:
        changes.extend(_synthesize_series(vehicle, key, alerts, today, now, warning_days, id_factory))

    if changes:
        logger.debug(
            f"Alerts for {vehicle.registration_number}: {len(changes.created)} created, "
            f"{len(changes.updated)} updated, {len(changes.resolved)} resolved"
        )
    return changes


def count_unread(alerts: Iterable[Alert]) -> int:
    return sum(1 for a in alerts if not a.is_read)
