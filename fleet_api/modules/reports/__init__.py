# ============================================================================
# fleet_api/modules/reports/__init__.py
# ============================================================================
# Reports module initialization and exports

from .routes import reports_router

# Module metadata
__module_name__ = "reports"
__module_version__ = "1.0.0"
__module_description__ = "Compliance summary, expiring documents and audit log reports"

__all__ = [
    "reports_router",
]
