#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/alerts/models/schemas.py
# Pydantic models for Alerts API

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date

from compliance_engine.models import Alert, DocumentType


class AlertResponse(BaseModel):
    """One expiry alert"""
    id: str
    vehicle_id: str
    vehicle_registration: str
    document_type: DocumentType
    custom_type_name: Optional[str] = None
    document_id: str
    message: str
    due_date: date
    is_read: bool
    is_resolved: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertResponse":
        return cls(
            id=alert.id,
            vehicle_id=alert.vehicle_id,
            vehicle_registration=alert.vehicle_registration,
            document_type=alert.document_type,
            custom_type_name=alert.custom_type_name,
            document_id=alert.document_id,
            message=alert.message,
            due_date=alert.due_date,
            is_read=alert.is_read,
            is_resolved=alert.is_resolved,
            created_at=alert.created_at,
            updated_at=alert.updated_at,
            resolved_at=alert.resolved_at,
        )


class AlertListResponse(BaseModel):
    """Alerts newest first"""
    alerts: List[AlertResponse]
    total: int
    unread: int
    timestamp: datetime = Field(default_factory=datetime.now)


class UnreadCountResponse(BaseModel):
    unread: int
    timestamp: datetime = Field(default_factory=datetime.now)
