# ============================================================================
# fleet_api/modules/vehicles/models/__init__.py
# ============================================================================
# Vehicle models initialization and exports

from .schemas import (
    # Request Models - Vehicles
    VehicleCreateRequest,
    VehicleUpdateRequest,

    # Request Models - Documents
    DocumentCreateRequest,

    # Response Models - Documents
    FieldProvenanceResponse,
    DocumentResponse,
    DocumentListResponse,
    AlertChangeSummary,
    DocumentWriteResponse,

    # Response Models - Vehicles
    SeriesStatusItem,
    VehicleResponse,
    VehicleStatusResponse,
    VehicleDetailResponse,
    VehicleListResponse,

    # Response Models - Generic
    SuccessResponse,
    ErrorResponse,
)

__all__ = [
    # Request Models - Vehicles
    "VehicleCreateRequest",
    "VehicleUpdateRequest",

    # Request Models - Documents
    "DocumentCreateRequest",

    # Response Models - Documents
    "FieldProvenanceResponse",
    "DocumentResponse",
    "DocumentListResponse",
    "AlertChangeSummary",
    "DocumentWriteResponse",

    # Response Models - Vehicles
    "SeriesStatusItem",
    "VehicleResponse",
    "VehicleStatusResponse",
    "VehicleDetailResponse",
    "VehicleListResponse",

    # Response Models - Generic
    "SuccessResponse",
    "ErrorResponse",
]
