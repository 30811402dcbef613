# ============================================================================
# fleet_api/modules/vehicles/services/__init__.py
# ============================================================================
# Vehicle services initialization and exports

from .fleet_store import FleetStore, FleetSession, InMemoryFleetStore
from .vehicle_service import VehicleService, DocumentWriteResult, get_vehicle_service

__all__ = [
    # Store
    "FleetStore",
    "FleetSession",
    "InMemoryFleetStore",

    # Vehicle Service
    "VehicleService",
    "DocumentWriteResult",
    "get_vehicle_service",
]
