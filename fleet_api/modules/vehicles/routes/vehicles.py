#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/vehicles/routes/vehicles.py
# CRUD operations for vehicles

import logging
from collections import Counter
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from compliance_engine.errors import ComplianceError
from compliance_engine.models import VehicleComplianceStatus
from compliance_engine.version_resolver import resolve_latest_documents

from fleet_api.core.dependencies import get_actor_id
from fleet_api.core.validators import ErrorMessageFormatter, RegistrationValidator

from ..models.schemas import (
    VehicleCreateRequest,
    VehicleUpdateRequest,
    VehicleResponse,
    VehicleDetailResponse,
    VehicleListResponse,
    VehicleStatusResponse,
    DocumentResponse,
    SuccessResponse,
    ErrorResponse,
)
from ..services.vehicle_service import get_vehicle_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=VehicleListResponse, responses={500: {"model": ErrorResponse}})
async def list_vehicles(
    status: Optional[VehicleComplianceStatus] = Query(None, description="Filter by badge (Overdue, ExpiringSoon, MissingInfo, Compliant)"),
    search: Optional[str] = Query(None, max_length=20, description="Registration number fragment"),
):
    """
    Get list of all vehicles.

    **Features:**
    - Overall compliance badge computed at request time
    - Filter by badge
    - Search by registration number (spaces and dashes ignored)

    **Example:**
    ```
    GET /api/vehicles?status=Overdue&search=MH12
    ```
    """
    try:
        vehicle_service = get_vehicle_service()

        results = await vehicle_service.list_vehicles(status=status, search=search)
        vehicle_responses = [VehicleResponse.build(vehicle, evaluated) for vehicle, evaluated in results]
        breakdown = Counter(v.status.value for v in vehicle_responses)

        logger.info(f"Retrieved {len(vehicle_responses)} vehicles")

        return VehicleListResponse(
            vehicles=vehicle_responses,
            total=len(vehicle_responses),
            status_breakdown=dict(breakdown),
        )

    except Exception as e:
        logger.error(f"Failed to list vehicles: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve vehicles: {str(e)}"
        )


@router.post("", response_model=VehicleResponse, responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def create_vehicle(request: VehicleCreateRequest, actor_id: Optional[str] = Depends(get_actor_id)):
    """
    Create a new vehicle.

    **Required:**
    - `registration_number` - Unique registration (case and separators ignored for uniqueness)

    **Optional:**
    - `vehicle_type`, `make`, `model`, `owner_id`

    **Example:**
    ```json
    {
      "registration_number": "MH12AB1234",
      "vehicle_type": "Bus",
      "make": "Tata",
      "model": "Starbus"
    }
    ```

    A new vehicle has no documents and shows as MissingInfo.
    """
    is_valid, registration_number, error = RegistrationValidator.validate(request.registration_number)
    if not is_valid:
        raise HTTPException(status_code=400, detail=error)

    try:
        vehicle_service = get_vehicle_service()

        vehicle = await vehicle_service.create_vehicle(
            registration_number=registration_number,
            vehicle_type=request.vehicle_type,
            make=request.make,
            model=request.model,
            owner_id=request.owner_id,
            actor_id=actor_id,
        )

        return VehicleResponse.build(vehicle, vehicle_service.evaluate(vehicle))

    except ComplianceError as e:
        logger.warning(f"Validation error creating vehicle: {e}")
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create vehicle: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create vehicle: {str(e)}"
        )


@router.get("/{vehicle_id}", response_model=VehicleDetailResponse, responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def get_vehicle(vehicle_id: str):
    """
    Get vehicle details with the latest document of every series.

    **Example:**
    ```
    GET /api/vehicles/uuid-vehicle-123
    ```
    """
    try:
        vehicle_service = get_vehicle_service()

        vehicle = await vehicle_service.get_by_id(vehicle_id)
        if not vehicle:
            logger.warning(f"Vehicle not found: {vehicle_id}")
            raise HTTPException(
                status_code=404,
                detail=f"Vehicle not found: {vehicle_id}"
            )

        latest = resolve_latest_documents(
            vehicle,
            vehicle_service.clock.today(),
            vehicle_service.config.EXPIRY_WARNING_DAYS,
        )

        return VehicleDetailResponse(
            vehicle=VehicleResponse.build(vehicle, vehicle_service.evaluate(vehicle)),
            latest_documents=[DocumentResponse.from_resolved(r) for r in latest.values()],
            total_documents=len(vehicle.documents),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get vehicle {vehicle_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve vehicle: {str(e)}"
        )


@router.get("/{vehicle_id}/status", response_model=VehicleStatusResponse, responses={404: {"model": ErrorResponse}})
async def get_vehicle_status(vehicle_id: str):
    """
    Overall badge plus the status of every tracked series.

    Essential series (Insurance, Fitness, PUC by default) are listed even
    when no document was ever uploaded.
    """
    try:
        vehicle_service = get_vehicle_service()

        vehicle = await vehicle_service.require(vehicle_id)
        evaluated = vehicle_service.evaluate(vehicle)

        return VehicleStatusResponse.build(vehicle, evaluated, vehicle_service.clock.today())

    except ComplianceError as e:
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get status for vehicle {vehicle_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute vehicle status: {str(e)}"
        )


@router.put("/{vehicle_id}", response_model=VehicleResponse, responses={404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}})
async def update_vehicle(
    vehicle_id: str,
    request: VehicleUpdateRequest,
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Update vehicle information.

    **All fields are optional** - only provided fields will be updated.

    **Example:**
    ```json
    {
      "make": "Ashok Leyland",
      "vehicle_type": "Truck"
    }
    ```
    """
    changes = request.dict(exclude_unset=True)

    if 'registration_number' in changes:
        is_valid, registration_number, error = RegistrationValidator.validate(changes['registration_number'])
        if not is_valid:
            raise HTTPException(status_code=400, detail=error)
        changes['registration_number'] = registration_number

    try:
        vehicle_service = get_vehicle_service()

        vehicle = await vehicle_service.update_vehicle(vehicle_id, changes, actor_id=actor_id)

        return VehicleResponse.build(vehicle, vehicle_service.evaluate(vehicle))

    except ComplianceError as e:
        logger.warning(f"Could not update vehicle {vehicle_id}: {e}")
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to update vehicle {vehicle_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update vehicle: {str(e)}"
        )


@router.delete("/{vehicle_id}", response_model=SuccessResponse, responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
async def delete_vehicle(vehicle_id: str, actor_id: Optional[str] = Depends(get_actor_id)):
    """
    Delete vehicle from system.

    **⚠️ WARNING:** This permanently deletes the vehicle together with its
    document history and alerts. Cannot be undone.
    """
    try:
        vehicle_service = get_vehicle_service()

        existing = await vehicle_service.get_by_id(vehicle_id)
        if not existing:
            logger.warning(f"Vehicle not found for deletion: {vehicle_id}")
            raise HTTPException(
                status_code=404,
                detail=f"Vehicle not found: {vehicle_id}"
            )

        success = await vehicle_service.delete_vehicle(vehicle_id, actor_id=actor_id)
        if not success:
            raise HTTPException(
                status_code=404,
                detail=f"Vehicle not found: {vehicle_id}"
            )

        return SuccessResponse(
            success=True,
            message=f"Vehicle '{existing.registration_number}' deleted successfully with {len(existing.documents)} document(s)."
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete vehicle {vehicle_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to delete vehicle: {str(e)}"
        )
