# tests/test_validators.py
# Unit tests for input validators

import pytest

from compliance_engine.errors import (
    AgentTimeout,
    AgentUnavailable,
    ConcurrentWriteConflict,
    DuplicateRegistrationError,
    VehicleNotFound,
)
from fleet_api.core.validators import ErrorMessageFormatter, RegistrationValidator, UploadValidator

MAX = 10 * 1024 * 1024
ALLOWED = ["application/pdf", "image/jpeg", "image/png", "image/webp"]


class TestRegistrationValidator:
    """Test RegistrationValidator functionality"""

    def test_valid_registration(self):
        is_valid, sanitized, error = RegistrationValidator.validate(" mh12ab1234 ")
        assert is_valid == True
        assert sanitized == "MH12AB1234"
        assert error == ""

    def test_empty_registration(self):
        is_valid, sanitized, error = RegistrationValidator.validate("   ")
        assert is_valid == False
        assert "empty" in error.lower()


class TestUploadValidator:
    """Test upload checks before extraction"""

    def test_pdf_accepted(self):
        is_valid, mime_type, error = UploadValidator.validate_upload("a.pdf", "application/pdf", 100, ALLOWED, MAX)
        assert is_valid == True
        assert mime_type == "application/pdf"

    def test_mime_type_guessed_from_extension(self):
        is_valid, mime_type, error = UploadValidator.validate_upload(
            "scan.JPG", "application/octet-stream", 100, ALLOWED, MAX
        )
        assert is_valid == True
        assert mime_type == "image/jpeg"

    def test_unsupported_type_rejected(self):
        is_valid, mime_type, error = UploadValidator.validate_upload("notes.txt", "text/plain", 100, ALLOWED, MAX)
        assert is_valid == False
        assert "unsupported" in error.lower()

    def test_empty_file_rejected(self):
        is_valid, _, error = UploadValidator.validate_upload("a.pdf", "application/pdf", 0, ALLOWED, MAX)
        assert is_valid == False
        assert "empty" in error.lower()

    def test_oversized_file_rejected(self):
        is_valid, _, error = UploadValidator.validate_upload("a.pdf", "application/pdf", MAX + 1, ALLOWED, MAX)
        assert is_valid == False
        assert "too large" in error.lower()


class TestErrorMessageFormatter:
    """Test status codes and user-facing messages for core errors"""

    @pytest.mark.parametrize("error,status_code", [
        (VehicleNotFound("v-1"), 404),
        (DuplicateRegistrationError("MH12AB1234"), 400),
        (ConcurrentWriteConflict("busy"), 409),
        (AgentTimeout("slow"), 504),
        (AgentUnavailable("down"), 502),
        (RuntimeError("boom"), 500),
    ])
    def test_status_codes(self, error, status_code):
        assert ErrorMessageFormatter.status_code_for(error) == status_code

    def test_timeout_message_suggests_manual_entry(self):
        message = ErrorMessageFormatter.format_error(AgentTimeout("slow"))
        assert "manually" in message

    def test_technical_format(self):
        message = ErrorMessageFormatter.format_error(RuntimeError("boom"), user_friendly=False)
        assert message == "RuntimeError: boom"

    def test_to_http_exception(self):
        exc = ErrorMessageFormatter.to_http_exception(VehicleNotFound("v-1"))
        assert exc.status_code == 404
        assert "v-1" in exc.detail
