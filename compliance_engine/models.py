#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# compliance_engine/models.py
# Domain model: vehicles own documents, alerts are a separate collection

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ============================================================================
# ENUMS
# ============================================================================

class DocumentType(str, Enum):
    """Regulatory document type"""
    INSURANCE = "Insurance"
    FITNESS = "Fitness"
    PUC = "PUC"  # Pollution Under Control
    AITP = "AITP"  # All India Tourist Permit
    REGISTRATION_CARD = "RegistrationCard"
    OTHER = "Other"


class ComplianceStatus(str, Enum):
    """Status of a single document, derived from its expiry date"""
    MISSING = "Missing"
    OVERDUE = "Overdue"
    EXPIRING_SOON = "ExpiringSoon"
    COMPLIANT = "Compliant"


class VehicleComplianceStatus(str, Enum):
    """Overall badge of a vehicle"""
    OVERDUE = "Overdue"
    EXPIRING_SOON = "ExpiringSoon"
    MISSING_INFO = "MissingInfo"
    COMPLIANT = "Compliant"


class AuditAction(str, Enum):
    CREATE_VEHICLE = "CREATE_VEHICLE"
    UPDATE_VEHICLE = "UPDATE_VEHICLE"
    DELETE_VEHICLE = "DELETE_VEHICLE"
    UPLOAD_DOCUMENT = "UPLOAD_DOCUMENT"
    MARK_ALERT_READ = "MARK_ALERT_READ"
    RESOLVE_ALERT = "RESOLVE_ALERT"
    EXTRACT_DOCUMENT = "EXTRACT_DOCUMENT"
    VIEW_REPORT = "VIEW_REPORT"


class AuditEntityType(str, Enum):
    VEHICLE = "VEHICLE"
    DOCUMENT = "DOCUMENT"
    ALERT = "ALERT"
    REPORT = "REPORT"
    SYSTEM = "SYSTEM"


# Fields the extraction agent proposes and a human confirms
DOCUMENT_FIELDS = ("policy_number", "start_date", "expiry_date")
VEHICLE_FIELDS = ("registration_number", "make", "model", "vehicle_type")
PROVENANCE_FIELDS = VEHICLE_FIELDS + DOCUMENT_FIELDS
DATE_FIELDS = ("start_date", "expiry_date")

_REGISTRATION_SEPARATORS = re.compile(r"[\s\-\.]+")


def registration_key(registration_number: Optional[str]) -> str:
    """
    Case-insensitive match key for a registration number.

    Examples:
        "mh 12 ab 1234" -> "MH12AB1234"
        "MH-12-AB-1234" -> "MH12AB1234"
    """
    if not registration_number:
        return ""
    return _REGISTRATION_SEPARATORS.sub("", registration_number).upper()


# ============================================================================
# SERIES KEY
# ============================================================================

@dataclass(frozen=True)
class SeriesKey:
    """Identity of a document series: (type, custom name when type is Other)"""
    document_type: DocumentType
    custom_type_name: Optional[str] = None

    @classmethod
    def of(cls, document_type: DocumentType, custom_type_name: Optional[str] = None) -> "SeriesKey":
        document_type = DocumentType(document_type)
        if document_type != DocumentType.OTHER:
            return cls(document_type, None)
        return cls(document_type, custom_type_name or None)

    @property
    def label(self) -> str:
        if self.document_type == DocumentType.OTHER and self.custom_type_name:
            return self.custom_type_name
        return self.document_type.value

    def __str__(self) -> str:
        if self.document_type == DocumentType.OTHER and self.custom_type_name:
            return f"Other:{self.custom_type_name}"
        return self.document_type.value


# ============================================================================
# PROVENANCE
# ============================================================================

@dataclass(frozen=True)
class FieldProvenance:
    """
    Agent proposal and human-confirmed value for one field.

    confirmed_value is the operative value. Only confirm() changes it;
    propose() touches the agent part only.
    """
    agent_value: Optional[Any] = None
    agent_confidence: Optional[float] = None
    confirmed_value: Optional[Any] = None

    def __post_init__(self):
        if self.agent_value is None and self.agent_confidence is not None:
            object.__setattr__(self, "agent_confidence", None)

    @property
    def value(self) -> Optional[Any]:
        return self.confirmed_value

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_value is not None

    @property
    def agent_disagrees(self) -> bool:
        return self.agent_value is not None and self.agent_value != self.confirmed_value

    def propose(self, value: Optional[Any], confidence: Optional[float]) -> "FieldProvenance":
        return replace(self, agent_value=value, agent_confidence=confidence if value is not None else None)

    def confirm(self, value: Optional[Any]) -> "FieldProvenance":
        return replace(self, confirmed_value=value)

    @classmethod
    def confirmed(cls, value: Optional[Any]) -> "FieldProvenance":
        return cls(confirmed_value=value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': _jsonable(self.confirmed_value),
            'agent_value': _jsonable(self.agent_value),
            'agent_confidence': self.agent_confidence,
        }


def _jsonable(value):
    if isinstance(value, date):
        return value.isoformat()
    return value


# ============================================================================
# ENTITIES
# ============================================================================

@dataclass(frozen=True)
class Document:
    """One upload event in a vehicle's document history"""
    id: str
    vehicle_id: str
    sequence: int
    document_type: DocumentType
    uploaded_at: datetime
    custom_type_name: Optional[str] = None
    document_name: Optional[str] = None
    document_url: Optional[str] = None
    registration_number: FieldProvenance = field(default_factory=FieldProvenance)
    make: FieldProvenance = field(default_factory=FieldProvenance)
    model: FieldProvenance = field(default_factory=FieldProvenance)
    vehicle_type: FieldProvenance = field(default_factory=FieldProvenance)
    policy_number: FieldProvenance = field(default_factory=FieldProvenance)
    start_date: FieldProvenance = field(default_factory=FieldProvenance)
    expiry_date: FieldProvenance = field(default_factory=FieldProvenance)

    @property
    def series_key(self) -> SeriesKey:
        return SeriesKey.of(self.document_type, self.custom_type_name)

    @property
    def expiry(self) -> Optional[date]:
        return self.expiry_date.value

    def provenance(self) -> Dict[str, FieldProvenance]:
        return {name: getattr(self, name) for name in PROVENANCE_FIELDS}


@dataclass(frozen=True)
class Vehicle:
    id: str
    registration_number: str
    created_at: datetime
    updated_at: datetime
    vehicle_type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    owner_id: Optional[str] = None
    documents: Tuple[Document, ...] = ()

    @property
    def registration_key(self) -> str:
        return registration_key(self.registration_number)


@dataclass(frozen=True)
class Alert:
    id: str
    vehicle_id: str
    vehicle_registration: str
    document_type: DocumentType
    document_id: str
    message: str
    due_date: date
    created_at: datetime
    custom_type_name: Optional[str] = None
    is_read: bool = False
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @property
    def series_key(self) -> SeriesKey:
        return SeriesKey.of(self.document_type, self.custom_type_name)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


@dataclass(frozen=True)
class AuditLogEntry:
    id: str
    timestamp: datetime
    actor_id: str
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: Optional[str] = None
    entity_registration: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
