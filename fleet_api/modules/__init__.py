# fleet_api/modules/__init__.py
# API modules registry

from . import vehicles
from . import alerts
from . import document_inbox
from . import reports

# Registry of all available modules
AVAILABLE_MODULES = {
    "vehicles": {
        "name": "Vehicles",
        "version": "1.0.0",
        "status": "active",
        "description": "Vehicle fleet management and document history",
        "routers": [vehicles.vehicles_router, vehicles.documents_router]
    },
    "alerts": {
        "name": "Alerts",
        "version": "1.0.0",
        "status": "active",
        "description": "Expiry alerts and acknowledgement",
        "routers": [alerts.alerts_router]
    },
    "document_inbox": {
        "name": "Document Inbox",
        "version": "1.0.0",
        "status": "active",
        "description": "AI extraction preview and human-confirmed upload",
        "routers": [document_inbox.inbox_router]
    },
    "reports": {
        "name": "Reports",
        "version": "1.0.0",
        "status": "active",
        "description": "Compliance summary, expiring documents and audit log",
        "routers": [reports.reports_router]
    },
}
