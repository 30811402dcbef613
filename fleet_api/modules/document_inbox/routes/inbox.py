#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/document_inbox/routes/inbox.py
# Document Inbox routes - AI extraction preview, human confirmation, VRN lookup

import logging
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from compliance_engine.errors import ComplianceError
from compliance_engine.models import DocumentType
from compliance_engine.reconciliation import FailureReason, HumanVerification

from fleet_api.core.dependencies import get_actor_id
from fleet_api.core.validators import ErrorMessageFormatter, UploadValidator
from fleet_api.modules.vehicles.models.schemas import (
    DocumentWriteResponse,
    ErrorResponse,
    FieldProvenanceResponse,
)
from fleet_api.modules.vehicles.routes.documents import build_write_response

from ..services.ingestion_service import get_ingestion_service
from ..utils.vrn_patterns import extract_all_vrns, extract_vrn_from_filename

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class ExtractionPreviewResponse(BaseModel):
    """Agent proposal, reconciled, ready for the review form"""
    success: bool = True
    filename: Optional[str] = None
    mime_type: str
    document_type: DocumentType
    custom_type_name: Optional[str] = None
    needs_type_review: bool = False
    document_type_suggestion: Optional[str] = None
    document_type_confidence: Optional[float] = None
    fields: Dict[str, FieldProvenanceResponse]
    agent_found_nothing: bool = False
    verification_note: Optional[str] = None
    # Raw payload, sent back unchanged with /confirm
    agent_output: Optional[Dict[str, Any]] = None
    matched_vehicle_id: Optional[str] = None
    matched_vehicle_registration: Optional[str] = None
    filename_registration: Optional[str] = None


class ConfirmExtractionRequest(BaseModel):
    """Reviewed extraction to store"""
    agent_output: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Raw agent payload from /extract; omit when every value is entered manually"
    )
    human_verification: Optional[HumanVerification] = None
    corrections: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Values confirmed in the review form, e.g. {\"expiry_date\": \"2026-01-01\"}"
    )
    vehicle_id: Optional[str] = Field(
        default=None,
        description="Target vehicle; when omitted the vehicle is matched or created by registration number"
    )
    document_name: Optional[str] = Field(default=None, max_length=255)
    document_url: Optional[str] = None


class FindVRNRequest(BaseModel):
    """Request to find registration numbers in free text or a filename"""
    text: Optional[str] = None
    filename: Optional[str] = None


class FindVRNResponse(BaseModel):
    """Registration numbers found, normalized"""
    success: bool = True
    vrn: Optional[str] = None
    candidates: List[str] = []
    source: Optional[str] = None


def _failure_detail(outcome) -> Dict[str, Any]:
    return {
        'reason': outcome.reason.value,
        'message': outcome.message,
        'retryable': outcome.retryable,
        'manual_entry': True,
    }


# ============================================================================
# EXTRACTION PREVIEW
# ============================================================================

@router.post("/extract", response_model=ExtractionPreviewResponse, responses={
    400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 504: {"model": ErrorResponse}})
async def extract_document(
    file: UploadFile = File(..., description="PDF, JPEG, PNG or WEBP document"),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Run the extraction agent on an uploaded document.

    Nothing is saved. The response holds the proposed values with their
    confidences; send them back with any corrections to `/confirm`.

    When the agent fails or times out the response is 502 / 504 with
    `manual_entry: true` in the detail, and the document can still be
    added by hand.
    """
    try:
        ingestion_service = get_ingestion_service()
        config = ingestion_service.vehicles.config

        data = await file.read()
        is_valid, mime_type, error_msg = UploadValidator.validate_upload(
            file.filename,
            file.content_type,
            len(data),
            config.ALLOWED_MIME_TYPES,
            config.MAX_UPLOAD_SIZE,
        )
        if not is_valid:
            raise HTTPException(status_code=400, detail=error_msg)

        preview = await ingestion_service.extract_preview(
            data,
            mime_type,
            filename=file.filename,
            actor_id=actor_id,
        )

        if preview.failed:
            outcome = preview.outcome
            status_code = 504 if outcome.reason == FailureReason.AGENT_TIMEOUT else 502
            raise HTTPException(status_code=status_code, detail=_failure_detail(outcome))

        fields = preview.outcome
        return ExtractionPreviewResponse(
            filename=file.filename,
            mime_type=mime_type,
            document_type=fields.document_type,
            custom_type_name=fields.custom_type_name,
            needs_type_review=fields.needs_type_review,
            document_type_suggestion=fields.document_type_suggestion,
            document_type_confidence=fields.document_type_confidence,
            fields={
                name: FieldProvenanceResponse.from_provenance(p) for name, p in fields.provenance().items()
            },
            agent_found_nothing=fields.agent_found_nothing,
            verification_note=fields.verification_note,
            agent_output=preview.agent_output,
            matched_vehicle_id=preview.matched_vehicle.id if preview.matched_vehicle else None,
            matched_vehicle_registration=(
                preview.matched_vehicle.registration_number if preview.matched_vehicle else None
            ),
            filename_registration=preview.filename_registration,
        )

    except HTTPException:
        raise
    except ComplianceError as e:
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to extract document: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to extract document: {str(e)}"
        )


# ============================================================================
# CONFIRMATION
# ============================================================================

@router.post("/confirm", response_model=DocumentWriteResponse, responses={
    400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}})
async def confirm_document(
    request: ConfirmExtractionRequest,
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Store a reviewed extraction as a new document.

    Confirmed values win over the agent's proposals; the proposals are kept
    as provenance. A registration number with no matching vehicle creates
    the vehicle.

    **Example:**
    ```json
    {
      "agent_output": {"vehicleRegistrationNumber": "MH12AB1234", "expiryDate": "2025-01-01", ...},
      "human_verification": {"isCorrect": false, "correctedDate": "2026-01-01"}
    }
    ```
    """
    try:
        ingestion_service = get_ingestion_service()

        result = await ingestion_service.confirm(
            request.agent_output,
            human_verification=request.human_verification,
            corrections=request.corrections,
            vehicle_id=request.vehicle_id,
            document_name=request.document_name,
            document_url=request.document_url,
            actor_id=actor_id,
        )

        return build_write_response(result)

    except ComplianceError as e:
        logger.warning(f"Could not confirm document: {e}")
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to confirm document: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to save document: {str(e)}"
        )


# ============================================================================
# VRN LOOKUP
# ============================================================================

@router.post("/find-vrn", response_model=FindVRNResponse)
async def find_vrn(request: FindVRNRequest):
    """
    Find vehicle registration numbers in text, falling back to the filename.

    **Example:**
    ```json
    {"text": "Policy for vehicle MH 12 AB 1234", "filename": "scan_001.pdf"}
    ```
    """
    try:
        candidates = extract_all_vrns(request.text) if request.text else []
        if candidates:
            return FindVRNResponse(vrn=candidates[0], candidates=candidates, source="text")

        vrn = extract_vrn_from_filename(request.filename) if request.filename else None
        if vrn:
            return FindVRNResponse(vrn=vrn, candidates=[vrn], source="filename")

        return FindVRNResponse(success=False)

    except Exception as e:
        logger.error(f"Failed to find VRN: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to find VRN: {str(e)}"
        )
