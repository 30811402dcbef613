#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# fleet_api/modules/document_inbox/services/__init__.py

from .extraction_agent import (
    GeminiExtractionAgent,
    OpenAIExtractionAgent,
    get_extraction_agent
)
from .ingestion_service import (
    ExtractionPreview,
    IngestionService,
    get_ingestion_service
)

__all__ = [
    'GeminiExtractionAgent',
    'OpenAIExtractionAgent',
    'get_extraction_agent',
    'ExtractionPreview',
    'IngestionService',
    'get_ingestion_service'
]
