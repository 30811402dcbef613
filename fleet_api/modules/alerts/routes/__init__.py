# ============================================================================
# fleet_api/modules/alerts/routes/__init__.py
# ============================================================================

from .alerts import router as alerts_router

__all__ = [
    "alerts_router",
]
