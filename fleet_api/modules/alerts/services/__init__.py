# ============================================================================
# fleet_api/modules/alerts/services/__init__.py
# ============================================================================

from .alert_service import AlertService, get_alert_service

__all__ = [
    "AlertService",
    "get_alert_service",
]
