#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/document_inbox/services/extraction_agent.py
# Vision extraction agents: read a document image/PDF and propose field values

import asyncio
import base64
import json
import logging
from typing import Any, Dict, Mapping, Optional

from compliance_engine.config import Config
from compliance_engine.errors import AgentUnavailable, InvalidAgentPayload

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT = """
You are an assistant that extracts information from vehicle compliance documents.
The document can be an Insurance policy, a Fitness certificate, a PUC (Pollution Under Control)
certificate, an AITP (All India Tourist Permit) or a vehicle Registration Card (RC).

For every field give a confidence score between 0 and 1. If a field is not found,
not applicable, or you are unsure, return null for the field and for its confidence.

Fields:
- vehicleRegistrationNumber: licence plate number (e.g. MH12AB1234, DL1CAX0001)
- vehicleMakeSuggestion: manufacturer (e.g. "Tata Motors")
- vehicleModelSuggestion: model name (e.g. "Nexon")
- vehicleTypeSuggestion: category of the vehicle (e.g. "Car", "Bus", "Truck", "LMV")
- documentTypeSuggestion: one of Insurance, Fitness, PUC, AITP, RegistrationCard, Other, Unknown.
  Use Other when the document fits none of the listed types, Unknown when it cannot be identified.
- customTypeNameSuggestion: short descriptive name when documentTypeSuggestion is Other or Unknown
  (e.g. "Road Tax Receipt"), otherwise null
- policyNumber: policy or certificate number
- startDate: date the document becomes valid, YYYY-MM-DD
- expiryDate: date the document validity ends, YYYY-MM-DD

Return dates strictly as YYYY-MM-DD. If a date cannot be converted with high confidence, return null.
Respond ONLY with a JSON object using exactly these keys:
vehicleRegistrationNumber, vehicleRegistrationNumberConfidence,
documentTypeSuggestion, documentTypeConfidence, customTypeNameSuggestion,
policyNumber, policyNumberConfidence, startDate, startDateConfidence,
expiryDate, expiryDateConfidence, vehicleMakeSuggestion, vehicleMakeConfidence,
vehicleModelSuggestion, vehicleModelConfidence, vehicleTypeSuggestion, vehicleTypeConfidence
"""


def parse_agent_json(text: Optional[str]) -> Dict[str, Any]:
    """
    Parse the model's answer into a JSON object.

    Markdown code fences around the object are tolerated.

    Raises:
        InvalidAgentPayload: Empty answer, invalid JSON or not an object
    """
    if not text or not text.strip():
        raise InvalidAgentPayload("Extraction agent returned an empty response")

    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise InvalidAgentPayload(f"Extraction agent returned invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise InvalidAgentPayload("Extraction agent response is not a JSON object")

    return payload


class GeminiExtractionAgent:
    """Extraction agent backed by Google Gemini vision"""

    provider = "gemini"

    def __init__(self, api_key: Optional[str], model: str = "gemini-1.5-flash"):
        self.api_key = api_key
        self.model_name = model
        self.client = None
        self._initialized = False

    def _initialize(self):
        """Lazy initialization of Gemini client"""
        if self._initialized:
            return

        if not self.api_key:
            raise AgentUnavailable("GEMINI_API_KEY is not configured")

        try:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self.client = genai.GenerativeModel(
                self.model_name,
                generation_config={"response_mime_type": "application/json", "temperature": 0},
            )
            self._initialized = True

            logger.info(f"✅ Gemini extraction agent initialized (model: {self.model_name})")

        except ImportError as e:
            logger.error("google-generativeai not installed. Run: pip install google-generativeai")
            raise AgentUnavailable("google-generativeai is not installed") from e

    def _extract_sync(self, document_bytes: bytes, mime_type: str) -> str:
        self._initialize()
        response = self.client.generate_content([
            EXTRACTION_PROMPT,
            {"mime_type": mime_type, "data": document_bytes},
        ])
        return response.text

    async def extract(self, document_bytes: bytes, mime_type: str) -> Mapping[str, Any]:
        """
        Send the document to Gemini and return the raw JSON payload

        Raises:
            AgentUnavailable: Missing key or API failure
            InvalidAgentPayload: Answer is not a JSON object
        """
        try:
            text = await asyncio.to_thread(self._extract_sync, document_bytes, mime_type)
        except (AgentUnavailable, InvalidAgentPayload):
            raise
        except Exception as e:
            logger.error(f"Gemini extraction failed: {e}")
            raise AgentUnavailable(f"Gemini request failed: {type(e).__name__}") from e

        payload = parse_agent_json(text)
        logger.info(f"🤖 Gemini proposed {sum(1 for v in payload.values() if v is not None)} non-null values")
        return payload

    def get_status(self) -> Dict[str, Any]:
        return {'provider': self.provider, 'model': self.model_name, 'configured': bool(self.api_key)}


class OpenAIExtractionAgent:
    """Extraction agent backed by an OpenAI vision-capable chat model"""

    provider = "openai"

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini"):
        self.api_key = api_key
        self.model_name = model
        self._openai_client = None

    def _get_openai_client(self):
        """Lazy initializes and returns the OpenAI client."""
        if self._openai_client is None:
            if not self.api_key:
                raise AgentUnavailable("OPENAI_API_KEY is not configured")
            try:
                from openai import OpenAI
                self._openai_client = OpenAI(api_key=self.api_key)
                logger.debug("✅ OpenAI client initialized")
            except ImportError as e:
                logger.error("OpenAI library not found. Please install it with 'pip install openai'")
                raise AgentUnavailable("openai is not installed") from e
        return self._openai_client

    @staticmethod
    def _document_part(document_bytes: bytes, mime_type: str) -> Dict[str, Any]:
        data_uri = f"data:{mime_type};base64,{base64.b64encode(document_bytes).decode('ascii')}"
        if mime_type == "application/pdf":
            return {"type": "file", "file": {"filename": "document.pdf", "file_data": data_uri}}
        return {"type": "image_url", "image_url": {"url": data_uri}}

    def _extract_sync(self, document_bytes: bytes, mime_type: str) -> str:
        client = self._get_openai_client()
        response = client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": "You are a data extraction assistant for vehicle documents. Your response must be only a valid JSON object."},
                {"role": "user", "content": [
                    {"type": "text", "text": EXTRACTION_PROMPT},
                    self._document_part(document_bytes, mime_type),
                ]},
            ],
            response_format={"type": "json_object"},
            temperature=0,
            max_tokens=600,
        )
        return response.choices[0].message.content

    async def extract(self, document_bytes: bytes, mime_type: str) -> Mapping[str, Any]:
        """
        Send the document to OpenAI and return the raw JSON payload

        Raises:
            AgentUnavailable: Missing key or API failure
            InvalidAgentPayload: Answer is not a JSON object
        """
        try:
            text = await asyncio.to_thread(self._extract_sync, document_bytes, mime_type)
        except (AgentUnavailable, InvalidAgentPayload):
            raise
        except Exception as e:
            logger.error(f"OpenAI extraction failed: {e}")
            raise AgentUnavailable(f"OpenAI request failed: {type(e).__name__}") from e

        payload = parse_agent_json(text)
        logger.info(f"🤖 OpenAI proposed {sum(1 for v in payload.values() if v is not None)} non-null values")
        return payload

    def get_status(self) -> Dict[str, Any]:
        return {'provider': self.provider, 'model': self.model_name, 'configured': bool(self.api_key)}


def get_extraction_agent(config: Config):
    """Create the extraction agent selected by EXTRACTION_PROVIDER"""
    if config.EXTRACTION_PROVIDER == "openai":
        return OpenAIExtractionAgent(config.OPENAI_API_KEY, config.OPENAI_MODEL)
    return GeminiExtractionAgent(config.GEMINI_API_KEY, config.GEMINI_MODEL)
