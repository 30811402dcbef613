# ============================================================================
# fleet_api/modules/reports/routes/__init__.py
# ============================================================================
# Reports routes initialization and exports

from .reports import router as reports_router

__all__ = [
    "reports_router",
]
