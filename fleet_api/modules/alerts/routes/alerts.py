#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/alerts/routes/alerts.py
# Alert listing and acknowledgement routes

import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from compliance_engine.alert_synthesizer import count_unread
from compliance_engine.errors import ComplianceError

from fleet_api.core.dependencies import get_actor_id
from fleet_api.core.validators import ErrorMessageFormatter
from fleet_api.modules.vehicles.models.schemas import ErrorResponse

from ..models.schemas import AlertListResponse, AlertResponse, UnreadCountResponse
from ..services.alert_service import get_alert_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=AlertListResponse, responses={500: {"model": ErrorResponse}})
async def list_alerts(
    only_unread: bool = Query(False, description="Return unread alerts only"),
    vehicle_id: Optional[str] = Query(None, description="Restrict to one vehicle"),
):
    """
    List alerts, newest first.

    Alerts are brought up to date with today's date before listing, so a
    document that became due since its upload is reported here.
    """
    try:
        alert_service = get_alert_service()

        alerts = await alert_service.list_alerts(only_unread=only_unread, vehicle_id=vehicle_id)

        return AlertListResponse(
            alerts=[AlertResponse.from_alert(a) for a in alerts],
            total=len(alerts),
            unread=count_unread(alerts),
        )

    except ComplianceError as e:
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list alerts: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to retrieve alerts: {str(e)}"
        )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count():
    """Number of unread alerts across the fleet"""
    try:
        alert_service = get_alert_service()
        return UnreadCountResponse(unread=await alert_service.unread_count())

    except Exception as e:
        logger.error(f"Failed to count unread alerts: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to count alerts: {str(e)}"
        )


@router.post("/{alert_id}/read", response_model=AlertResponse, responses={404: {"model": ErrorResponse}})
async def mark_alert_read(alert_id: str, actor_id: Optional[str] = Depends(get_actor_id)):
    """
    Mark an alert as read.

    A read alert stays in the history. A new unread alert is raised only
    when a newer document of the same series needs attention.
    """
    try:
        alert_service = get_alert_service()

        alert = await alert_service.mark_read(alert_id, actor_id=actor_id)

        return AlertResponse.from_alert(alert)

    except ComplianceError as e:
        logger.warning(f"Could not mark alert {alert_id} as read: {e}")
        raise ErrorMessageFormatter.to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to mark alert {alert_id} as read: {e}", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail=f"Failed to update alert: {str(e)}"
        )
