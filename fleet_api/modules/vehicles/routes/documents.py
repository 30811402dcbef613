#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/vehicles/routes/documents.py
# Vehicle documents routes

import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from compliance_engine.errors import ComplianceError
from compliance_engine.models import DocumentType
from compliance_engine.reconciliation import manual_document_fields
from compliance_engine.version_resolver import resolve_document

from fleet_api.core.dependencies import get_actor_id
from fleet_api.core.validators import ErrorMessageFormatter

from ..models.schemas import (
    AlertChangeSummary,
    DocumentCreateRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentWriteResponse,
    ErrorResponse,
)
from ..services.vehicle_service import DocumentWriteResult, get_vehicle_service

logger = logging.getLogger(__name__)

router = APIRouter()


def build_write_response(result: DocumentWriteResult) -> DocumentWriteResponse:
    """Response for a stored document, status computed now"""
    vehicle_service = get_vehicle_service()
    resolved = resolve_document(
        result.document,
        vehicle_service.clock.today(),
        vehicle_service.config.EXPIRY_WARNING_DAYS,
    )
    return DocumentWriteResponse(
        vehicle_id=result.vehicle.id,
        vehicle_registration=result.vehicle.registration_number,
        vehicle_created=result.vehicle_created,
        vehicle_status=vehicle_service.evaluate(result.vehicle).status,
        document=DocumentResponse.from_resolved(resolved),
        alerts=AlertChangeSummary(
            created=len(result.alert_changes.created),
            updated=len(result.alert_changes.updated),
            resolved=len(result.alert_changes.resolved),
        ),
    )


# ============================================================================
# DOCUMENT HISTORY
# ============================================================================

@router.get("/{vehicle_id}/documents", response_model=DocumentListResponse, responses={404: {"model": ErrorResponse}})
async def list_vehicle_documents(vehicle_id: str):
    """
    Full document history of a vehicle, newest upload first.

    Superseded documents are kept; their status is computed like any other.
    """
    try:
        vehicle_service = get_vehicle_service()

        documents = await vehicle_service.list_documents(vehicle_id)

        return DocumentListResponse(
            vehicle_id=vehicle_id,
            documents=[DocumentResponse.from_resolved(d) for d in documents],
            total=len(documents),
        )

    except ComplianceError as e:
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list documents for vehicle {vehicle_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve documents: {str(e)}"
        )


@router.get("/{vehicle_id}/documents/latest", response_model=DocumentResponse, responses={404: {"model": ErrorResponse}})
async def get_latest_document(
    vehicle_id: str,
    document_type: DocumentType = Query(..., description="Insurance, Fitness, PUC, AITP, RegistrationCard or Other"),
    custom_type_name: Optional[str] = Query(None, description="Series name when document_type is Other"),
):
    """
    Latest document of one series.

    The most recent upload wins, regardless of its expiry date.

    **Example:**
    ```
    GET /api/vehicles/uuid-vehicle-123/documents/latest?document_type=Insurance
    ```
    """
    try:
        vehicle_service = get_vehicle_service()

        resolved = await vehicle_service.get_latest_document(vehicle_id, document_type, custom_type_name)
        if resolved is None:
            raise HTTPException(
                status_code=404,
                detail=f"No {document_type.value} document uploaded for vehicle {vehicle_id}"
            )

        return DocumentResponse.from_resolved(resolved)

    except HTTPException:
        raise
    except ComplianceError as e:
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get latest document for vehicle {vehicle_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve document: {str(e)}"
        )


# ============================================================================
# MANUAL UPLOAD
# ============================================================================

@router.post("/{vehicle_id}/documents", response_model=DocumentWriteResponse, responses={
    400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}})
async def add_vehicle_document(
    vehicle_id: str,
    request: DocumentCreateRequest,
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Add a manually entered document to a vehicle.

    The document becomes the latest of its series and the vehicle's alerts
    are updated in the same write.

    **Example:**
    ```json
    {
      "document_type": "Insurance",
      "policy_number": "POL-2025-001",
      "start_date": "2025-01-01",
      "expiry_date": "2026-01-01"
    }
    ```
    """
    try:
        vehicle_service = get_vehicle_service()

        fields = manual_document_fields(
            document_type=request.document_type,
            custom_type_name=request.custom_type_name,
            policy_number=request.policy_number,
            start_date=request.start_date,
            expiry_date=request.expiry_date,
        )

        result = await vehicle_service.add_document(
            vehicle_id,
            fields,
            document_name=request.document_name,
            document_url=request.document_url,
            actor_id=actor_id,
        )

        return build_write_response(result)

    except ComplianceError as e:
        logger.warning(f"Could not add document to vehicle {vehicle_id}: {e}")
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to add document to vehicle {vehicle_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to add document: {str(e)}"
        )
