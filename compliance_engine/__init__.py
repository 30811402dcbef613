# ============================================================================
# compliance_engine/__init__.py
# ============================================================================
# Fleet document compliance core: status, latest-document resolution,
# vehicle badge, alert synthesis and extraction reconciliation

from .models import (
    DocumentType,
    ComplianceStatus,
    VehicleComplianceStatus,
    SeriesKey,
    FieldProvenance,
    Document,
    Vehicle,
    Alert,
    AuditLogEntry,
    registration_key,
)
from .status_calculator import EXPIRY_WARNING_DAYS, compute_status, days_remaining
from .version_resolver import ResolvedDocument, resolve_latest_document, latest_documents, series_keys
from .vehicle_status import VehicleStatusResult, resolve_vehicle_status
from .alert_synthesizer import AlertChanges, synthesize_alerts
from .reconciliation import (
    AgentFields,
    HumanVerification,
    ReconciledDocumentFields,
    ExtractionFailure,
    FailureReason,
    reconcile_extraction,
    extract_and_reconcile,
    manual_document_fields,
)

__all__ = [
    # Model
    "DocumentType",
    "ComplianceStatus",
    "VehicleComplianceStatus",
    "SeriesKey",
    "FieldProvenance",
    "Document",
    "Vehicle",
    "Alert",
    "AuditLogEntry",
    "registration_key",

    # Status
    "EXPIRY_WARNING_DAYS",
    "compute_status",
    "days_remaining",

    # Resolution
    "ResolvedDocument",
    "resolve_latest_document",
    "latest_documents",
    "series_keys",
    "VehicleStatusResult",
    "resolve_vehicle_status",

    # Alerts
    "AlertChanges",
    "synthesize_alerts",

    # Extraction
    "AgentFields",
    "HumanVerification",
    "ReconciledDocumentFields",
    "ExtractionFailure",
    "FailureReason",
    "reconcile_extraction",
    "extract_and_reconcile",
    "manual_document_fields",
]
