# ============================================================================
# fleet_api/modules/alerts/__init__.py
# ============================================================================
# Alerts module initialization and exports

from .routes import alerts_router

# Module metadata
__module_name__ = "alerts"
__module_version__ = "1.0.0"
__module_description__ = "Expiry alerts: listing, unread count, acknowledgement"

__all__ = [
    "alerts_router",
]
