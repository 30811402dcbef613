#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# compliance_engine/reconciliation.py
# Turns an extraction agent proposal plus human input into the document payload

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, Field, ValidationError, validator

from .errors import AgentTimeout, AgentUnavailable, FieldValidationError, InvalidAgentPayload
from .models import DATE_FIELDS, PROVENANCE_FIELDS, DocumentType, FieldProvenance

logger = logging.getLogger(__name__)

UNIDENTIFIED_DOCUMENT_NAME = "Unidentified document"

_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ].*)?$")

_DOCUMENT_TYPE_ALIASES = {
    "insurance": DocumentType.INSURANCE,
    "insurance policy": DocumentType.INSURANCE,
    "fitness": DocumentType.FITNESS,
    "fitness certificate": DocumentType.FITNESS,
    "puc": DocumentType.PUC,
    "pollution": DocumentType.PUC,
    "pollution under control": DocumentType.PUC,
    "aitp": DocumentType.AITP,
    "permit": DocumentType.AITP,
    "all india tourist permit": DocumentType.AITP,
    "registrationcard": DocumentType.REGISTRATION_CARD,
    "registration card": DocumentType.REGISTRATION_CARD,
    "registration certificate": DocumentType.REGISTRATION_CARD,
    "rc": DocumentType.REGISTRATION_CARD,
    "other": DocumentType.OTHER,
}


# ============================================================================
# AGENT PAYLOAD SCHEMA
# ============================================================================

class AgentFields(BaseModel):
    """Raw agent output; dates stay strings here and are normalized during reconciliation"""
    vehicle_registration_number: Optional[str] = Field(default=None, alias="vehicleRegistrationNumber")
    vehicle_registration_number_confidence: Optional[float] = Field(
        default=None, ge=0, le=1, alias="vehicleRegistrationNumberConfidence")

    document_type_suggestion: Optional[str] = Field(default=None, alias="documentTypeSuggestion")
    document_type_confidence: Optional[float] = Field(default=None, ge=0, le=1, alias="documentTypeConfidence")
    custom_type_name_suggestion: Optional[str] = Field(default=None, alias="customTypeNameSuggestion")

    policy_number: Optional[str] = Field(default=None, alias="policyNumber")
    policy_number_confidence: Optional[float] = Field(default=None, ge=0, le=1, alias="policyNumberConfidence")

    start_date: Optional[str] = Field(default=None, alias="startDate")
    start_date_confidence: Optional[float] = Field(default=None, ge=0, le=1, alias="startDateConfidence")

    expiry_date: Optional[str] = Field(default=None, alias="expiryDate")
    expiry_date_confidence: Optional[float] = Field(default=None, ge=0, le=1, alias="expiryDateConfidence")

    vehicle_make_suggestion: Optional[str] = Field(default=None, alias="vehicleMakeSuggestion")
    vehicle_make_confidence: Optional[float] = Field(default=None, ge=0, le=1, alias="vehicleMakeConfidence")
    vehicle_model_suggestion: Optional[str] = Field(default=None, alias="vehicleModelSuggestion")
    vehicle_model_confidence: Optional[float] = Field(default=None, ge=0, le=1, alias="vehicleModelConfidence")
    vehicle_type_suggestion: Optional[str] = Field(default=None, alias="vehicleTypeSuggestion")
    vehicle_type_confidence: Optional[float] = Field(default=None, ge=0, le=1, alias="vehicleTypeConfidence")

    class Config:
        populate_by_name = True

    @validator(
        'vehicle_registration_number', 'document_type_suggestion', 'custom_type_name_suggestion',
        'policy_number', 'start_date', 'expiry_date', 'vehicle_make_suggestion',
        'vehicle_model_suggestion', 'vehicle_type_suggestion',
    )
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        if not v or v.lower() in ("null", "none", "n/a"):
            return None
        return v

    def proposals(self) -> Dict[str, tuple]:
        """(value, confidence) per provenance field"""
        return {
            'registration_number': (self.vehicle_registration_number, self.vehicle_registration_number_confidence),
            'make': (self.vehicle_make_suggestion, self.vehicle_make_confidence),
            'model': (self.vehicle_model_suggestion, self.vehicle_model_confidence),
            'vehicle_type': (self.vehicle_type_suggestion, self.vehicle_type_confidence),
            'policy_number': (self.policy_number, self.policy_number_confidence),
            'start_date': (self.start_date, self.start_date_confidence),
            'expiry_date': (self.expiry_date, self.expiry_date_confidence),
        }


class HumanVerification(BaseModel):
    """A person's verdict on the agent's expiry date"""
    is_correct: bool = Field(..., alias="isCorrect")
    corrected_date: Optional[date] = Field(default=None, alias="correctedDate", validate_default=True)
    confirmation_notes: Optional[str] = Field(default=None, alias="confirmationNotes")

    class Config:
        populate_by_name = True

    @validator('corrected_date', pre=True)
    def strict_date(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, date):
            return v
        parsed = normalize_date(v)
        if parsed is None:
            raise ValueError("Date must be a valid calendar date in YYYY-MM-DD format")
        return parsed

    @validator('corrected_date', always=True)
    def corrected_date_required(cls, v, values):
        if values.get('is_correct') is False and v is None:
            raise ValueError("correctedDate is required when isCorrect is false")
        return v


# ============================================================================
# OUTCOMES
# ============================================================================

class FailureReason(str, Enum):
    AGENT_UNAVAILABLE = "agent_unavailable"
    AGENT_TIMEOUT = "agent_timeout"
    INVALID_PAYLOAD = "invalid_payload"


@dataclass(frozen=True)
class ExtractionFailure:
    """The agent call failed; the caller falls back to manual entry"""
    reason: FailureReason
    message: str

    @property
    def retryable(self) -> bool:
        return self.reason in (FailureReason.AGENT_UNAVAILABLE, FailureReason.AGENT_TIMEOUT)


@dataclass(frozen=True)
class ReconciledDocumentFields:
    """Payload handed to the mutation gateway: operative values plus agent provenance"""
    document_type: DocumentType
    custom_type_name: Optional[str] = None
    needs_type_review: bool = False
    document_type_suggestion: Optional[str] = None
    document_type_confidence: Optional[float] = None
    registration_number: FieldProvenance = field(default_factory=FieldProvenance)
    make: FieldProvenance = field(default_factory=FieldProvenance)
    model: FieldProvenance = field(default_factory=FieldProvenance)
    vehicle_type: FieldProvenance = field(default_factory=FieldProvenance)
    policy_number: FieldProvenance = field(default_factory=FieldProvenance)
    start_date: FieldProvenance = field(default_factory=FieldProvenance)
    expiry_date: FieldProvenance = field(default_factory=FieldProvenance)
    verification_note: Optional[str] = None

    def provenance(self) -> Dict[str, FieldProvenance]:
        return {name: getattr(self, name) for name in PROVENANCE_FIELDS}

    @property
    def agent_found_nothing(self) -> bool:
        return all(p.agent_value is None for p in self.provenance().values())

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'document_type': self.document_type.value,
            'custom_type_name': self.custom_type_name,
            'needs_type_review': self.needs_type_review,
            'document_type_suggestion': self.document_type_suggestion,
            'document_type_confidence': self.document_type_confidence,
            'verification_note': self.verification_note,
        }
        data['fields'] = {name: p.to_dict() for name, p in self.provenance().items()}
        return data


ExtractionOutcome = Union[ReconciledDocumentFields, ExtractionFailure]


# ============================================================================
# NORMALIZATION
# ============================================================================

def normalize_date(value: Any) -> Optional[date]:
    """
    Strict YYYY-MM-DD parsing. An ISO datetime is truncated to its date.
    Anything else, including impossible calendar dates, yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    match = _DATE_PREFIX.match(value.strip())
    if not match:
        return None
    try:
        return date.fromisoformat(match.group(1))
    except ValueError:
        return None


def parse_date_strict(field_name: str, value: Any) -> Optional[date]:
    """Like normalize_date but raises FieldValidationError for a present, malformed value"""
    if value is None or value == "":
        return None
    parsed = normalize_date(value)
    if parsed is None:
        raise FieldValidationError(field_name, value, "expected a calendar date in YYYY-MM-DD format")
    return parsed


def map_document_type(
    suggestion: Optional[str],
    custom_name_suggestion: Optional[str] = None,
) -> tuple:
    """
    Map the agent's type suggestion onto DocumentType.

    Returns:
        (document_type, custom_type_name, needs_type_review). Unknown,
        missing and unrecognized suggestions become Other with a custom
        name the human has to check; 'Unknown' is never a stored type.
    """
    custom = custom_name_suggestion.strip() if custom_name_suggestion and custom_name_suggestion.strip() else None
    normalized = suggestion.strip().lower() if suggestion else ""

    mapped = _DOCUMENT_TYPE_ALIASES.get(normalized)
    if mapped is not None and mapped != DocumentType.OTHER:
        return mapped, None, False

    if mapped == DocumentType.OTHER and custom:
        return DocumentType.OTHER, custom, False

    if normalized and normalized not in ("unknown", "other"):
        # an unrecognized label is itself the best guess for the custom name
        logger.warning(f"⚠️ Unrecognized document type suggestion '{suggestion}', storing as Other")
        return DocumentType.OTHER, custom or suggestion.strip(), True

    return DocumentType.OTHER, custom or UNIDENTIFIED_DOCUMENT_NAME, True


def _normalize_proposal(name: str, value: Optional[str], confidence: Optional[float]) -> tuple:
    if value is None:
        return None, None
    if name in DATE_FIELDS:
        parsed = normalize_date(value)
        if parsed is None:
            logger.warning(f"⚠️ Discarding malformed {name} from agent: {value!r}")
            return None, None
        return parsed, confidence
    return value, confidence


def _coerce_correction(name: str, value: Any) -> Any:
    if name in DATE_FIELDS:
        return parse_date_strict(name, value)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ============================================================================
# RECONCILIATION
# ============================================================================

def reconcile_extraction(
    agent_output: Union[AgentFields, Mapping[str, Any], ExtractionFailure, None],
    human_verification: Optional[HumanVerification] = None,
    corrections: Optional[Mapping[str, Any]] = None,
) -> ExtractionOutcome:
    """
    Merge an agent proposal with optional human input.

    Args:
        agent_output: Raw agent payload (mapping), a validated AgentFields,
            or an ExtractionFailure from the agent boundary (returned unchanged)
        human_verification: Verdict on the agent's expiry date
        corrections: Explicit values confirmed by a person in the review form,
            keyed by field name (plus 'document_type' / 'custom_type_name')

    Returns:
        ReconciledDocumentFields, or ExtractionFailure when the payload
        does not match the agent schema
    """
    if isinstance(agent_output, ExtractionFailure):
        return agent_output

    if agent_output is None:
        agent_output = AgentFields()
    elif not isinstance(agent_output, AgentFields):
        if not isinstance(agent_output, Mapping):
            return ExtractionFailure(FailureReason.INVALID_PAYLOAD, "Agent payload is not a JSON object")
        try:
            agent_output = AgentFields(**agent_output)
        except ValidationError as e:
            logger.error(f"Agent payload failed schema validation: {e}")
            return ExtractionFailure(FailureReason.INVALID_PAYLOAD, f"Agent payload failed schema validation: {e.error_count()} error(s)")

    document_type, custom_type_name, needs_review = map_document_type(
        agent_output.document_type_suggestion,
        agent_output.custom_type_name_suggestion,
    )
    type_confidence = agent_output.document_type_confidence if agent_output.document_type_suggestion else None

    fields: Dict[str, FieldProvenance] = {}
    for name, (value, confidence) in agent_output.proposals().items():
        value, confidence = _normalize_proposal(name, value, confidence)
        # until a person says otherwise the proposal is the operative value
        fields[name] = FieldProvenance(agent_value=value, agent_confidence=confidence, confirmed_value=value)

    note = None
    if human_verification is not None:
        note = human_verification.confirmation_notes
        if not human_verification.is_correct:
            fields['expiry_date'] = fields['expiry_date'].confirm(human_verification.corrected_date)
            logger.info(
                f"Expiry date corrected by reviewer: {fields['expiry_date'].agent_value} -> "
                f"{human_verification.corrected_date}"
            )

    for name, value in (corrections or {}).items():
        if name == 'document_type':
            if value is not None:
                try:
                    document_type = DocumentType(value)
                except ValueError:
                    raise FieldValidationError(name, value, "unknown document type")
                needs_review = False
                if document_type != DocumentType.OTHER:
                    custom_type_name = None
        elif name == 'custom_type_name':
            continue
        elif name in fields:
            fields[name] = fields[name].confirm(_coerce_correction(name, value))
        else:
            raise FieldValidationError(name, value, "not a correctable field")

    if corrections and 'custom_type_name' in corrections:
        if document_type == DocumentType.OTHER:
            custom_type_name = _coerce_correction('custom_type_name', corrections['custom_type_name'])
            needs_review = False

    return ReconciledDocumentFields(
        document_type=document_type,
        custom_type_name=custom_type_name if document_type == DocumentType.OTHER else None,
        needs_type_review=needs_review,
        document_type_suggestion=agent_output.document_type_suggestion,
        document_type_confidence=type_confidence,
        verification_note=note,
        **fields,
    )


def manual_document_fields(
    document_type: DocumentType,
    custom_type_name: Optional[str] = None,
    policy_number: Optional[str] = None,
    start_date: Optional[date] = None,
    expiry_date: Optional[date] = None,
    agent_proposals: Optional[Mapping[str, tuple]] = None,
) -> ReconciledDocumentFields:
    """Payload for a manual upload; optional agent proposals are kept as provenance only"""
    document_type = DocumentType(document_type)
    fields = {
        'policy_number': FieldProvenance.confirmed(policy_number or None),
        'start_date': FieldProvenance.confirmed(start_date),
        'expiry_date': FieldProvenance.confirmed(expiry_date),
    }
    for name, (value, confidence) in (agent_proposals or {}).items():
        if name not in fields:
            raise FieldValidationError(name, value, "not a document field")
        value, confidence = _normalize_proposal(name, value, confidence)
        fields[name] = fields[name].propose(value, confidence)

    return ReconciledDocumentFields(
        document_type=document_type,
        custom_type_name=(custom_type_name or None) if document_type == DocumentType.OTHER else None,
        **fields,
    )


# ============================================================================
# AGENT BOUNDARY
# ============================================================================

class ExtractionAgent(Protocol):
    async def extract(self, document_bytes: bytes, mime_type: str) -> Mapping[str, Any]:
        ...


async def extract_and_reconcile(
    agent: ExtractionAgent,
    document_bytes: bytes,
    mime_type: str,
    timeout: float,
    human_verification: Optional[HumanVerification] = None,
) -> ExtractionOutcome:
    """
    Call the agent once under a deadline and reconcile its answer.

    A timeout, an agent error or an unparseable answer yields an
    ExtractionFailure; nothing is retried here.
    """
    try:
        payload = await asyncio.wait_for(agent.extract(document_bytes, mime_type), timeout=timeout)
    except (asyncio.TimeoutError, AgentTimeout):
        logger.error(f"❌ Extraction agent timed out after {timeout}s")
        return ExtractionFailure(FailureReason.AGENT_TIMEOUT, f"Extraction agent did not respond within {timeout:g} seconds")
    except InvalidAgentPayload as e:
        logger.error(f"❌ Extraction agent returned an invalid payload: {e}")
        return ExtractionFailure(FailureReason.INVALID_PAYLOAD, str(e))
    except AgentUnavailable as e:
        logger.error(f"❌ Extraction agent unavailable: {e}")
        return ExtractionFailure(FailureReason.AGENT_UNAVAILABLE, str(e))
    except Exception as e:
        logger.error(f"❌ Extraction agent failed: {e}", exc_info=True)
        return ExtractionFailure(FailureReason.AGENT_UNAVAILABLE, f"Extraction agent failed: {type(e).__name__}")

    outcome = reconcile_extraction(payload, human_verification)
    if isinstance(outcome, ReconciledDocumentFields):
        logger.info(
            f"✅ Extraction reconciled: type={outcome.document_type.value}, "
            f"registration={outcome.registration_number.value}, expiry={outcome.expiry_date.value}"
        )
    return outcome
