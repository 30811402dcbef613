# ============================================================================
# fleet_api/modules/reports/services/__init__.py
# ============================================================================

from .report_service import ReportService, get_report_service

__all__ = [
    "ReportService",
    "get_report_service",
]
