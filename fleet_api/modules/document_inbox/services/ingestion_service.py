#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/document_inbox/services/ingestion_service.py
# Smart ingestion: agent extraction preview, then human confirmation into the gateway

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from compliance_engine.errors import FieldValidationError
from compliance_engine.models import AuditAction, AuditEntityType, AuditLogEntry, Vehicle
from compliance_engine.reconciliation import (
    ExtractionFailure,
    ExtractionOutcome,
    HumanVerification,
    ReconciledDocumentFields,
    extract_and_reconcile,
    reconcile_extraction,
)

from fleet_api.modules.vehicles.services.vehicle_service import (
    DocumentWriteResult,
    VehicleService,
    get_vehicle_service,
)
from ..utils.vrn_patterns import extract_vrn_from_filename

logger = logging.getLogger(__name__)


class _RecordingAgent:
    """Keeps the raw payload so the client can send it back on confirmation"""

    def __init__(self, agent):
        self._agent = agent
        self.payload: Optional[Mapping[str, Any]] = None

    async def extract(self, document_bytes: bytes, mime_type: str) -> Mapping[str, Any]:
        self.payload = await self._agent.extract(document_bytes, mime_type)
        return self.payload


@dataclass
class ExtractionPreview:
    """Result of running the agent on an upload, before any human input"""
    outcome: ExtractionOutcome
    agent_output: Optional[Dict[str, Any]] = None
    matched_vehicle: Optional[Vehicle] = None
    filename_registration: Optional[str] = None

    @property
    def failed(self) -> bool:
        return isinstance(self.outcome, ExtractionFailure)


class IngestionService:
    """Service for the document inbox flow"""

    def __init__(self, vehicle_service: Optional[VehicleService] = None, agent=None):
        self._vehicle_service = vehicle_service
        self._agent = agent
        logger.info("✅ IngestionService initialized")

    @property
    def vehicles(self) -> VehicleService:
        return self._vehicle_service or get_vehicle_service()

    @property
    def agent(self):
        if self._agent is not None:
            return self._agent
        from fleet_api.core.dependencies import get_system_components
        return get_system_components().get_component("agent")

    def _record(self, action: AuditAction, actor_id: Optional[str], details: Dict[str, Any],
                entity_registration: Optional[str] = None):
        vehicles = self.vehicles
        vehicles.store.record_audit(AuditLogEntry(
            id=str(uuid.uuid4()),
            timestamp=vehicles.clock.now(),
            actor_id=actor_id or vehicles.config.DEFAULT_ACTOR_ID,
            action=action,
            entity_type=AuditEntityType.DOCUMENT,
            entity_registration=entity_registration,
            details=details,
        ))

    # ========================================================================
    # EXTRACTION PREVIEW
    # ========================================================================

    async def extract_preview(
        self,
        document_bytes: bytes,
        mime_type: str,
        filename: Optional[str] = None,
        human_verification: Optional[HumanVerification] = None,
        actor_id: Optional[str] = None,
    ) -> ExtractionPreview:
        """
        Run the extraction agent once and reconcile its answer

        Nothing is stored except an EXTRACT_DOCUMENT audit entry. A failed
        extraction is returned, not raised, so the caller can fall back to
        manual entry.

        Args:
            document_bytes: Uploaded file content (already validated)
            mime_type: One of the allowed upload types
            filename: Original filename, used as a registration hint
            human_verification: Optional verdict on the expiry date
            actor_id: Acting user for the audit entry
        """
        config = self.vehicles.config
        recording = _RecordingAgent(self.agent)

        logger.info(f"📥 Extracting {filename or 'upload'} ({mime_type}, {len(document_bytes)} bytes)")
        outcome = await extract_and_reconcile(
            recording,
            document_bytes,
            mime_type,
            timeout=config.EXTRACTION_TIMEOUT,
            human_verification=human_verification,
        )

        preview = ExtractionPreview(
            outcome=outcome,
            agent_output=dict(recording.payload) if isinstance(recording.payload, Mapping) else None,
            filename_registration=extract_vrn_from_filename(filename) if filename else None,
        )

        if isinstance(outcome, ReconciledDocumentFields):
            registration = outcome.registration_number.value or preview.filename_registration
            if registration:
                preview.matched_vehicle = await self.vehicles.get_by_registration(registration)
            details = {
                'filename': filename,
                'outcome': 'reconciled',
                'document_type': outcome.document_type.value,
                'needs_type_review': outcome.needs_type_review,
                'agent_found_nothing': outcome.agent_found_nothing,
            }
            self._record(AuditAction.EXTRACT_DOCUMENT, actor_id, details, registration)
        else:
            logger.warning(f"⚠️ Extraction failed ({outcome.reason.value}): {outcome.message}")
            details = {'filename': filename, 'outcome': 'failed', 'reason': outcome.reason.value}
            self._record(AuditAction.EXTRACT_DOCUMENT, actor_id, details, preview.filename_registration)

        return preview

    # ========================================================================
    # CONFIRMATION
    # ========================================================================

    async def confirm(
        self,
        agent_output: Optional[Mapping[str, Any]],
        human_verification: Optional[HumanVerification] = None,
        corrections: Optional[Mapping[str, Any]] = None,
        vehicle_id: Optional[str] = None,
        document_name: Optional[str] = None,
        document_url: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> DocumentWriteResult:
        """
        Persist a reviewed extraction

        Args:
            agent_output: Raw agent payload from the preview, or None when the
                agent failed and every value is entered by hand
            human_verification: Verdict on the agent's expiry date
            corrections: Values confirmed in the review form
            vehicle_id: Target vehicle; when omitted the vehicle is matched
                (or created) by the confirmed registration number

        Raises:
            FieldValidationError: Payload or corrections are malformed
            VehicleNotFound: Unknown vehicle_id
        """
        outcome = reconcile_extraction(agent_output, human_verification, corrections)
        if isinstance(outcome, ExtractionFailure):
            raise FieldValidationError("agent_output", None, outcome.message)

        if outcome.needs_type_review:
            logger.warning(
                f"⚠️ Saving unreviewed document type as Other ('{outcome.custom_type_name}')"
            )

        result = await self.vehicles.ingest_confirmed_document(
            outcome,
            vehicle_id=vehicle_id,
            document_name=document_name,
            document_url=document_url,
            actor_id=actor_id,
        )

        logger.info(
            f"✅ Confirmed {result.document.series_key} for {result.vehicle.registration_number}"
            f"{' (new vehicle)' if result.vehicle_created else ''}"
        )
        return result


# Global service instance
_ingestion_service: Optional[IngestionService] = None


def get_ingestion_service() -> IngestionService:
    """Get or create ingestion service singleton"""
    global _ingestion_service

    if _ingestion_service is None:
        _ingestion_service = IngestionService()

    return _ingestion_service
