# ============================================================================
# fleet_api/modules/alerts/models/__init__.py
# ============================================================================

from .schemas import AlertResponse, AlertListResponse, UnreadCountResponse

__all__ = [
    "AlertResponse",
    "AlertListResponse",
    "UnreadCountResponse",
]
