#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# compliance_engine/errors.py
# Error taxonomy shared by the compliance core and the API layer


class ComplianceError(Exception):
    """Base class for every error raised by the compliance core"""


class FieldValidationError(ComplianceError, ValueError):
    """A field value is malformed (bad date, unknown enum value)"""

    def __init__(self, field: str, value, reason: str):
        super().__init__(f"Invalid value for '{field}': {value!r} ({reason})")
        self.field = field
        self.value = value
        self.reason = reason


class AgentUnavailable(ComplianceError):
    """The extraction agent could not be reached or raised an error"""


class AgentTimeout(AgentUnavailable):
    """The extraction agent did not answer within the caller's deadline"""


class InvalidAgentPayload(ComplianceError):
    """The extraction agent answered with something that is not a JSON object"""


class ConcurrentWriteConflict(ComplianceError):
    """Another write for the same vehicle is in progress; retry with a fresh snapshot"""


class VehicleNotFound(ComplianceError, LookupError):
    def __init__(self, vehicle_id: str):
        super().__init__(f"Vehicle not found: {vehicle_id}")
        self.vehicle_id = vehicle_id


class AlertNotFound(ComplianceError, LookupError):
    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found: {alert_id}")
        self.alert_id = alert_id


class DuplicateRegistrationError(ComplianceError, ValueError):
    def __init__(self, registration_number: str):
        super().__init__(f"Vehicle with registration number '{registration_number}' already exists")
        self.registration_number = registration_number
