# fleet_api/modules/reports/models/__init__.py

from .schemas import SummaryResponse, ExpiringDocumentsResponse, AuditLogResponse

__all__ = [
    "SummaryResponse",
    "ExpiringDocumentsResponse",
    "AuditLogResponse",
]
