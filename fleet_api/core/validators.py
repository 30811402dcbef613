# fleet_api/core/validators.py
# Input validation and error translation utilities

import re
from typing import Optional, Tuple
from fastapi import HTTPException

from compliance_engine.errors import (
    AgentTimeout,
    AgentUnavailable,
    AlertNotFound,
    ConcurrentWriteConflict,
    DuplicateRegistrationError,
    FieldValidationError,
    InvalidAgentPayload,
    VehicleNotFound,
)
from compliance_engine.models import registration_key


class RegistrationValidator:
    """Validates and sanitizes vehicle registration numbers"""

    # Letters, digits and the separators people type between groups
    ALLOWED_PATTERN = re.compile(r"^[A-Za-z0-9\s\-\.]+$")

    MAX_LENGTH = 20
    MIN_KEY_LENGTH = 2

    @classmethod
    def validate(cls, registration_number: Optional[str]) -> Tuple[bool, str, str]:
        """
        Validate registration number

        Returns:
            Tuple[is_valid, sanitized_value, error_message]
        """
        if not registration_number or not registration_number.strip():
            return False, "", "Registration number cannot be empty"

        value = re.sub(r"\s+", " ", registration_number.strip())

        if len(value) > cls.MAX_LENGTH:
            return False, "", f"Registration number too long (maximum {cls.MAX_LENGTH} characters)"

        if not cls.ALLOWED_PATTERN.match(value):
            return False, "", "Registration number may only contain letters, digits, spaces, dashes and dots"

        if len(registration_key(value)) < cls.MIN_KEY_LENGTH:
            return False, "", f"Registration number too short (minimum {cls.MIN_KEY_LENGTH} characters)"

        return True, value.upper(), ""


class UploadValidator:
    """Validates uploaded document files before they reach the extraction agent"""

    EXTENSION_MIME_TYPES = {
        ".pdf": "application/pdf",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".webp": "image/webp",
    }

    @classmethod
    def resolve_mime_type(cls, filename: Optional[str], content_type: Optional[str]) -> Optional[str]:
        """Declared content type, else a guess from the file extension"""
        if content_type and content_type != "application/octet-stream":
            return content_type.split(";")[0].strip().lower()
        if filename:
            for extension, mime_type in cls.EXTENSION_MIME_TYPES.items():
                if filename.lower().endswith(extension):
                    return mime_type
        return None

    @classmethod
    def validate_upload(
        cls,
        filename: Optional[str],
        content_type: Optional[str],
        size: int,
        allowed_mime_types,
        max_size: int,
    ) -> Tuple[bool, str, str]:
        """
        Validate an uploaded file

        Returns:
            Tuple[is_valid, mime_type, error_message]
        """
        mime_type = cls.resolve_mime_type(filename, content_type)

        if mime_type not in allowed_mime_types:
            return False, mime_type or "", (
                f"Unsupported file type '{mime_type or 'unknown'}'. "
                f"Allowed: {', '.join(allowed_mime_types)}"
            )

        if size <= 0:
            return False, mime_type, "Uploaded file is empty"

        if size > max_size:
            return False, mime_type, f"File too large ({size} bytes, maximum {max_size // (1024 * 1024)}MB)"

        return True, mime_type, ""


class ErrorMessageFormatter:
    """Formats technical errors into user-friendly messages"""

    @staticmethod
    def format_error(error: Exception, user_friendly: bool = True) -> str:
        """
        Format error message for user display

        Args:
            error: The exception that occurred
            user_friendly: If True, return simplified message. If False, return technical details.

        Returns:
            Formatted error message
        """
        error_str = str(error)
        error_type = type(error).__name__

        if not user_friendly:
            return f"{error_type}: {error_str}"

        if isinstance(error, (VehicleNotFound, AlertNotFound, DuplicateRegistrationError, FieldValidationError)):
            return error_str

        if isinstance(error, AgentTimeout):
            return "Document extraction took too long. Please enter the details manually or try again."

        if isinstance(error, (AgentUnavailable, InvalidAgentPayload)):
            return "AI extraction temporarily unavailable. Please enter the details manually."

        if isinstance(error, ConcurrentWriteConflict):
            return "This vehicle is being updated by someone else. Please try again."

        if "connection" in error_str.lower():
            return "Unable to connect to the database. Please try again in a moment."

        # Default user-friendly message
        return "An unexpected error occurred. Please try again later."

    @staticmethod
    def status_code_for(error: Exception) -> int:
        """HTTP status code for a compliance core error"""
        if isinstance(error, (VehicleNotFound, AlertNotFound)):
            return 404
        if isinstance(error, (DuplicateRegistrationError, FieldValidationError)):
            return 400
        if isinstance(error, ConcurrentWriteConflict):
            return 409
        if isinstance(error, AgentTimeout):
            return 504
        if isinstance(error, (AgentUnavailable, InvalidAgentPayload)):
            return 502
        return 500

    @classmethod
    def to_http_exception(cls, error: Exception) -> HTTPException:
        """Translate a compliance core error into an HTTPException"""
        return HTTPException(status_code=cls.status_code_for(error), detail=cls.format_error(error))
