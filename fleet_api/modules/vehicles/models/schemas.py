#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/vehicles/models/schemas.py
# Pydantic models for Vehicle Management API

from pydantic import BaseModel, Field, validator
from typing import List, Dict, Optional, Any
from datetime import datetime, date

from compliance_engine.models import (
    ComplianceStatus,
    DocumentType,
    FieldProvenance,
    Vehicle,
    VehicleComplianceStatus,
)
from compliance_engine.vehicle_status import VehicleStatusResult
from compliance_engine.version_resolver import ResolvedDocument


# ============================================================================
# REQUEST MODELS - VEHICLES
# ============================================================================

class VehicleCreateRequest(BaseModel):
    """Request to create a new vehicle"""
    registration_number: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Vehicle registration number, e.g. MH12AB1234"
    )
    vehicle_type: Optional[str] = Field(default=None, max_length=100, description="Bus, Truck, Car...")
    make: Optional[str] = Field(default=None, max_length=100, description="Vehicle manufacturer")
    model: Optional[str] = Field(default=None, max_length=100, description="Vehicle model")
    owner_id: Optional[str] = None

    @validator('registration_number')
    def validate_registration_number(cls, v):
        if not v or not v.strip():
            raise ValueError("Registration number cannot be empty")
        return v.strip().upper()


class VehicleUpdateRequest(BaseModel):
    """Request to update vehicle information; only fields that are sent are changed"""
    registration_number: Optional[str] = Field(default=None, max_length=20)
    vehicle_type: Optional[str] = Field(default=None, max_length=100)
    make: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    owner_id: Optional[str] = None

    @validator('registration_number')
    def validate_registration_number(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Registration number cannot be empty")
        return v.strip().upper() if v else v


# ============================================================================
# REQUEST MODELS - DOCUMENTS
# ============================================================================

class DocumentCreateRequest(BaseModel):
    """Manual document entry; every value given here is taken as confirmed"""
    document_type: DocumentType
    custom_type_name: Optional[str] = Field(default=None, max_length=100)
    policy_number: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[date] = None
    expiry_date: Optional[date] = None
    document_name: Optional[str] = Field(default=None, max_length=255)
    document_url: Optional[str] = None

    @validator('custom_type_name')
    def validate_custom_type_name(cls, v, values):
        if v is not None:
            v = v.strip() or None
        if v and values.get('document_type') != DocumentType.OTHER:
            raise ValueError("custom_type_name is only allowed when document_type is Other")
        return v


# ============================================================================
# RESPONSE MODELS - DOCUMENTS
# ============================================================================

class FieldProvenanceResponse(BaseModel):
    """Confirmed value plus the agent's original proposal"""
    value: Optional[Any] = None
    agent_value: Optional[Any] = None
    agent_confidence: Optional[float] = None

    @classmethod
    def from_provenance(cls, provenance: FieldProvenance) -> "FieldProvenanceResponse":
        return cls(**provenance.to_dict())


class DocumentResponse(BaseModel):
    """One document with its status computed now"""
    id: str
    vehicle_id: str
    sequence: int
    document_type: DocumentType
    custom_type_name: Optional[str] = None
    document_name: Optional[str] = None
    document_url: Optional[str] = None
    uploaded_at: datetime
    policy_number: Optional[str] = None
    start_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: ComplianceStatus
    days_remaining: Optional[int] = None
    provenance: Dict[str, FieldProvenanceResponse] = {}

    @classmethod
    def from_resolved(cls, resolved: ResolvedDocument) -> "DocumentResponse":
        doc = resolved.document
        return cls(
            id=doc.id,
            vehicle_id=doc.vehicle_id,
            sequence=doc.sequence,
            document_type=doc.document_type,
            custom_type_name=doc.custom_type_name,
            document_name=doc.document_name,
            document_url=doc.document_url,
            uploaded_at=doc.uploaded_at,
            policy_number=doc.policy_number.value,
            start_date=doc.start_date.value,
            expiry_date=doc.expiry_date.value,
            status=resolved.status,
            days_remaining=resolved.days_remaining,
            provenance={
                name: FieldProvenanceResponse.from_provenance(p) for name, p in doc.provenance().items()
            },
        )


class DocumentListResponse(BaseModel):
    """Document history of one vehicle, newest first"""
    vehicle_id: str
    documents: List[DocumentResponse]
    total: int


class AlertChangeSummary(BaseModel):
    created: int = 0
    updated: int = 0
    resolved: int = 0


class DocumentWriteResponse(BaseModel):
    """Response after a document is stored"""
    success: bool = True
    vehicle_id: str
    vehicle_registration: str
    vehicle_created: bool = False
    vehicle_status: VehicleComplianceStatus
    document: DocumentResponse
    alerts: AlertChangeSummary


# ============================================================================
# RESPONSE MODELS - VEHICLES
# ============================================================================

class SeriesStatusItem(BaseModel):
    """Status of one tracked document series"""
    document_type: DocumentType
    custom_type_name: Optional[str] = None
    status: ComplianceStatus
    expiry_date: Optional[date] = None
    days_remaining: Optional[int] = None
    document_id: Optional[str] = None


class VehicleResponse(BaseModel):
    """Basic vehicle information with the badge computed now"""
    id: str
    registration_number: str
    vehicle_type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    status: VehicleComplianceStatus
    status_reason: Optional[str] = None
    total_documents: int = 0

    @classmethod
    def build(cls, vehicle: Vehicle, evaluated: VehicleStatusResult) -> "VehicleResponse":
        return cls(
            id=vehicle.id,
            registration_number=vehicle.registration_number,
            vehicle_type=vehicle.vehicle_type,
            make=vehicle.make,
            model=vehicle.model,
            owner_id=vehicle.owner_id,
            created_at=vehicle.created_at,
            updated_at=vehicle.updated_at,
            status=evaluated.status,
            status_reason=str(evaluated.contributing_type) if evaluated.contributing_type else None,
            total_documents=len(vehicle.documents),
        )


class VehicleStatusResponse(BaseModel):
    """Badge plus the status of every tracked series"""
    vehicle_id: str
    registration_number: str
    status: VehicleComplianceStatus
    status_reason: Optional[str] = None
    series: List[SeriesStatusItem] = []
    evaluated_on: date

    @classmethod
    def build(cls, vehicle: Vehicle, evaluated: VehicleStatusResult, today: date) -> "VehicleStatusResponse":
        series = []
        for key, resolved in evaluated.series.items():
            if resolved is None:
                series.append(SeriesStatusItem(
                    document_type=key.document_type,
                    custom_type_name=key.custom_type_name,
                    status=ComplianceStatus.MISSING,
                ))
            else:
                series.append(SeriesStatusItem(
                    document_type=key.document_type,
                    custom_type_name=key.custom_type_name,
                    status=resolved.status,
                    expiry_date=resolved.document.expiry,
                    days_remaining=resolved.days_remaining,
                    document_id=resolved.document.id,
                ))
        return cls(
            vehicle_id=vehicle.id,
            registration_number=vehicle.registration_number,
            status=evaluated.status,
            status_reason=str(evaluated.contributing_type) if evaluated.contributing_type else None,
            series=series,
            evaluated_on=today,
        )


class VehicleDetailResponse(BaseModel):
    """Detailed vehicle information with latest documents"""
    vehicle: VehicleResponse
    latest_documents: List[DocumentResponse] = []
    total_documents: int = 0


class VehicleListResponse(BaseModel):
    """Response with list of vehicles"""
    vehicles: List[VehicleResponse]
    total: int
    status_breakdown: Dict[str, int] = {}
    timestamp: datetime = Field(default_factory=datetime.now)


# ============================================================================
# RESPONSE MODELS - GENERIC
# ============================================================================

class SuccessResponse(BaseModel):
    """Generic success response"""
    success: bool = True
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseModel):
    """Generic error response"""
    success: bool = False
    error: str
    error_type: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=datetime.now)
