#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/reports/routes/reports.py
# Compliance reporting routes

import logging
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from compliance_engine.models import AuditAction, AuditEntityType, ComplianceStatus, DocumentType

from fleet_api.core.dependencies import get_actor_id
from fleet_api.modules.vehicles.models.schemas import ErrorResponse

from ..models.schemas import (
    AuditLogItem,
    AuditLogResponse,
    ExpiringDocumentItem,
    ExpiringDocumentsResponse,
    SummaryResponse,
)
from ..services.report_service import get_report_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/summary", response_model=SummaryResponse, responses={500: {"model": ErrorResponse}})
async def get_summary(actor_id: Optional[str] = Depends(get_actor_id)):
    """
    Fleet summary: vehicles per badge and latest-document status counts.
    """
    try:
        report_service = get_report_service()

        stats = await report_service.summary(actor_id=actor_id)

        return SummaryResponse.from_stats(stats)

    except Exception as e:
        logger.error(f"Failed to build summary report: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build summary: {str(e)}"
        )


@router.get("/expiring-documents", response_model=ExpiringDocumentsResponse)
async def get_expiring_documents(
    status: Optional[List[ComplianceStatus]] = Query(
        None, description="Statuses to include (default: ExpiringSoon, Overdue, Missing)"
    ),
    document_type: Optional[List[DocumentType]] = Query(None, description="Document types to include"),
    latest_only: bool = Query(True, description="Skip superseded documents"),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Documents needing attention, soonest first.

    **Example:**
    ```
    GET /api/reports/expiring-documents?status=Overdue&document_type=Insurance
    ```
    """
    try:
        report_service = get_report_service()

        rows = await report_service.expiring_documents(
            statuses=status,
            document_types=document_type,
            latest_only=latest_only,
            actor_id=actor_id,
        )

        return ExpiringDocumentsResponse(
            documents=[ExpiringDocumentItem.from_row(row) for row in rows],
            total=len(rows),
        )

    except Exception as e:
        logger.error(f"Failed to build expiring documents report: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build report: {str(e)}"
        )


@router.get("/audit-logs", response_model=AuditLogResponse, responses={400: {"model": ErrorResponse}})
async def get_audit_logs(
    actor_id: Optional[str] = Query(None, description="Entries by this user only"),
    entity_type: Optional[AuditEntityType] = Query(None),
    action: Optional[AuditAction] = Query(None),
    start_date: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: Optional[date] = Query(None, description="YYYY-MM-DD, inclusive"),
    limit: int = Query(100, ge=1, le=1000),
):
    """Audit trail, newest first"""
    try:
        if start_date and end_date and start_date > end_date:
            raise HTTPException(
                status_code=400,
                detail="start_date must not be after end_date"
            )

        report_service = get_report_service()

        entries = await report_service.audit_logs(
            actor_id=actor_id,
            entity_type=entity_type,
            action=action,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )

        return AuditLogResponse(
            entries=[AuditLogItem.from_entry(e) for e in entries],
            total=len(entries),
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list audit logs: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve audit logs: {str(e)}"
        )
