# backend/booking_engine/services/errors.py
"""
Error taxonomy of the booking engine.

Every error carries the HTTP status the API layer answers with and a
client-safe `detail`. InfrastructureError keeps the original exception as
__cause__ for the server log; its detail never leaks it.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Why a query or command was refused."""
    NOT_FOUND = "not_found"
    BUSINESS_RULE = "business_rule"
    VALIDATION = "validation"
    SLOT_UNAVAILABLE = "slot_unavailable"
    INFRASTRUCTURE = "infrastructure"


class BookingEngineError(Exception):
    status_code = 500
    kind = FailureKind.INFRASTRUCTURE

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(BookingEngineError):
    """Service, offer, store, branch, staff member or booking is missing."""
    status_code = 404
    kind = FailureKind.NOT_FOUND


class BusinessRuleViolation(BookingEngineError):
    """Store closed, booking disabled, outside the advance window, offer expired."""
    status_code = 400
    kind = FailureKind.BUSINESS_RULE


class InvalidTransition(BusinessRuleViolation):
    """Booking status change not allowed from the current status."""


class ValidationError(BookingEngineError):
    """Malformed date/time, off-grid start, missing fields."""
    status_code = 400
    kind = FailureKind.VALIDATION


class SlotUnavailable(BookingEngineError):
    """Capacity exhausted at the locked recheck. Callers must refresh availability."""
    status_code = 409
    kind = FailureKind.SLOT_UNAVAILABLE

    def __init__(self, detail: str = "Selected time slot is no longer available. Please refresh availability and choose again."):
        super().__init__(detail)


class InfrastructureError(BookingEngineError):
    """Database unreachable, lock timeout and similar faults."""
    status_code = 500
    kind = FailureKind.INFRASTRUCTURE

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)
