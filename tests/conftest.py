# tests/conftest.py
# Shared fixtures: pinned clock, in-memory store, fake extraction agent

import asyncio
import sys
import os
# Add project root to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from datetime import date, datetime, timezone

import pytest

from compliance_engine.clock import FixedClock
from compliance_engine.config import reset_config
from compliance_engine.models import Document, DocumentType, FieldProvenance, Vehicle
from fleet_api.core.dependencies import SystemComponents, get_system_components, initialize_system_components
from fleet_api.modules.vehicles.services.fleet_store import InMemoryFleetStore
from fleet_api.modules.vehicles.services.vehicle_service import VehicleService


TODAY = date(2024, 1, 15)
NOW = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)

AGENT_PAYLOAD = {
    "vehicleRegistrationNumber": "MH12AB1234",
    "vehicleRegistrationNumberConfidence": 0.97,
    "documentTypeSuggestion": "Insurance",
    "documentTypeConfidence": 0.92,
    "customTypeNameSuggestion": None,
    "policyNumber": "POL-2024-001",
    "policyNumberConfidence": 0.88,
    "startDate": "2024-02-01",
    "startDateConfidence": 0.9,
    "expiryDate": "2025-01-31",
    "expiryDateConfidence": 0.91,
    "vehicleMakeSuggestion": "Tata Motors",
    "vehicleMakeConfidence": 0.8,
    "vehicleModelSuggestion": "Nexon",
    "vehicleModelConfidence": 0.75,
    "vehicleTypeSuggestion": "Car",
    "vehicleTypeConfidence": 0.7,
}


class FakeExtractionAgent:
    """Extraction agent returning a canned payload, an error, or nothing in time"""

    provider = "fake"

    def __init__(self, payload=None, error=None, delay=0.0):
        self.payload = dict(AGENT_PAYLOAD) if payload is None else payload
        self.error = error
        self.delay = delay
        self.calls = 0

    async def extract(self, document_bytes, mime_type):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload

    def get_status(self):
        return {'provider': self.provider, 'configured': True}


def make_document(
    document_type=DocumentType.INSURANCE,
    expiry=None,
    uploaded_at=NOW,
    sequence=1,
    vehicle_id="vehicle-1",
    custom_type_name=None,
    policy_number=None,
    doc_id=None,
):
    """Document with confirmed values only"""
    return Document(
        id=doc_id or f"doc-{sequence}",
        vehicle_id=vehicle_id,
        sequence=sequence,
        document_type=document_type,
        custom_type_name=custom_type_name,
        uploaded_at=uploaded_at,
        policy_number=FieldProvenance.confirmed(policy_number),
        expiry_date=FieldProvenance.confirmed(expiry),
    )


def make_vehicle(documents=(), registration="MH12AB1234", vehicle_id="vehicle-1"):
    return Vehicle(
        id=vehicle_id,
        registration_number=registration,
        created_at=NOW,
        updated_at=NOW,
        documents=tuple(documents),
    )


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Every test starts from default configuration and no system components"""
    for name in ("EXPIRY_WARNING_DAYS", "ESSENTIAL_DOCUMENT_TYPES", "STORE_BACKEND",
                 "EXTRACTION_TIMEOUT", "MAX_UPLOAD_SIZE", "DEFAULT_ACTOR_ID"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    SystemComponents().reset()
    yield
    reset_config()
    SystemComponents().reset()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def store():
    return InMemoryFleetStore()


@pytest.fixture
def agent():
    return FakeExtractionAgent()


@pytest.fixture
def components(store, clock, agent):
    initialize_system_components(store=store, clock=clock, agent=agent)
    return get_system_components()


@pytest.fixture
def vehicle_service(components):
    return VehicleService()


@pytest.fixture
def client(components):
    from fastapi.testclient import TestClient
    from fleet_api.main import app

    return TestClient(app)


def run(coro):
    """Drive an async service call to completion"""
    return asyncio.run(coro)
