#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration module for the Fleet Compliance service
Handles environment variables, validation, and default settings
PURPOSE: one place for the warning window, store backend, extraction agent
and upload limits shared by the compliance core and the API layer
"""

import os
import logging
from typing import List, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class Config:
    """Configuration class for compliance computation, storage and extraction"""

    SUPPORTED_STORE_BACKENDS = ("memory", "postgres")
    SUPPORTED_EXTRACTION_PROVIDERS = ("gemini", "openai")

    def __init__(self):
        """Initialize configuration by loading environment variables"""
        load_dotenv()
        self._load_settings()
        self._validate_settings()

    def _load_settings(self):
        """Load all settings from environment variables with defaults"""

        # --- COMPLIANCE SETTINGS ---
        self.EXPIRY_WARNING_DAYS = int(os.getenv("EXPIRY_WARNING_DAYS", "30"))
        essential_env = os.getenv("ESSENTIAL_DOCUMENT_TYPES", "Insurance,Fitness,PUC")
        self.ESSENTIAL_DOCUMENT_TYPES = [t.strip() for t in essential_env.split(",") if t.strip()]

        # --- STORE SETTINGS ---
        self.STORE_BACKEND = os.getenv("STORE_BACKEND", "memory").lower()
        self.CONNECTION_STRING = os.getenv("FLEET_DATABASE_URL") or os.getenv("SUPABASE_CONNECTION_STRING")

        # --- EXTRACTION AGENT SETTINGS ---
        self.EXTRACTION_PROVIDER = os.getenv("EXTRACTION_PROVIDER", "gemini").lower()
        self.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
        self.GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        self.OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.EXTRACTION_TIMEOUT = float(os.getenv("EXTRACTION_TIMEOUT", "60"))

        # --- UPLOAD SETTINGS ---
        self.MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))  # 10MB
        self.ALLOWED_MIME_TYPES = ["application/pdf", "image/jpeg", "image/png", "image/webp"]

        # --- API SETTINGS ---
        self.DEFAULT_ACTOR_ID = os.getenv("DEFAULT_ACTOR_ID", "system")
        origins_env = os.getenv("ALLOWED_ORIGINS", "")
        self.ALLOWED_ORIGINS = [o.strip() for o in origins_env.split(",") if o.strip()]
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    def _validate_settings(self):
        """Validate configuration settings and raise errors for critical issues"""

        if self.EXPIRY_WARNING_DAYS < 0:
            raise ValueError("EXPIRY_WARNING_DAYS must be 0 or greater")

        from .models import DocumentType
        valid_types = {t.value for t in DocumentType}
        for doc_type in self.ESSENTIAL_DOCUMENT_TYPES:
            if doc_type not in valid_types:
                raise ValueError(f"Unknown document type in ESSENTIAL_DOCUMENT_TYPES: {doc_type}")

        if self.STORE_BACKEND not in self.SUPPORTED_STORE_BACKENDS:
            raise ValueError(f"STORE_BACKEND must be one of {self.SUPPORTED_STORE_BACKENDS}")

        if self.STORE_BACKEND == "postgres" and not self.CONNECTION_STRING:
            raise ValueError("FLEET_DATABASE_URL not found in .env file!")

        if self.EXTRACTION_PROVIDER not in self.SUPPORTED_EXTRACTION_PROVIDERS:
            raise ValueError(f"EXTRACTION_PROVIDER must be one of {self.SUPPORTED_EXTRACTION_PROVIDERS}")

        if self.EXTRACTION_TIMEOUT <= 0:
            raise ValueError("EXTRACTION_TIMEOUT must be positive")

        if self.MAX_UPLOAD_SIZE < 1:
            raise ValueError("MAX_UPLOAD_SIZE must be at least 1")

        # API keys are checked when the agent is first used, the service runs without them
        if self.EXTRACTION_PROVIDER == "gemini" and not self.GEMINI_API_KEY:
            logger.warning("⚠️ GEMINI_API_KEY not set - document extraction will be unavailable")
        if self.EXTRACTION_PROVIDER == "openai" and not self.OPENAI_API_KEY:
            logger.warning("⚠️ OPENAI_API_KEY not set - document extraction will be unavailable")

    def get_essential_types(self) -> List["DocumentType"]:
        """Return the essential document types as enum members"""
        from .models import DocumentType
        return [DocumentType(t) for t in self.ESSENTIAL_DOCUMENT_TYPES]

    def get_extraction_settings(self):
        """Return extraction agent settings as a dictionary"""
        return {
            'provider': self.EXTRACTION_PROVIDER,
            'model': self.GEMINI_MODEL if self.EXTRACTION_PROVIDER == "gemini" else self.OPENAI_MODEL,
            'timeout': self.EXTRACTION_TIMEOUT,
            'max_upload_size': self.MAX_UPLOAD_SIZE,
            'allowed_mime_types': list(self.ALLOWED_MIME_TYPES),
        }

    def print_config(self):
        """Log current configuration in a readable format"""
        logger.info("=" * 60)
        logger.info("=== FLEET COMPLIANCE CONFIGURATION ===")
        logger.info(f"Expiry warning window: {self.EXPIRY_WARNING_DAYS} days")
        logger.info(f"Essential document types: {', '.join(self.ESSENTIAL_DOCUMENT_TYPES)}")
        logger.info(f"Store backend: {self.STORE_BACKEND}")
        logger.info(f"Extraction provider: {self.EXTRACTION_PROVIDER} (timeout {self.EXTRACTION_TIMEOUT}s)")
        logger.info("=" * 60)


_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the configuration singleton"""
    global _config

    if _config is None:
        _config = Config()

    return _config


def reset_config():
    """Drop the cached configuration so the next get_config() re-reads the environment"""
    global _config
    _config = None
