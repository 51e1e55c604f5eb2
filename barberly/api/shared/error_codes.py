"""
Standard Error Codes

Error codes returned in the error envelope, with their HTTP status.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """API error codes."""

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    BAD_REQUEST = "BAD_REQUEST"

    # Business logic errors
    APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"
    BARBER_NOT_FOUND = "BARBER_NOT_FOUND"
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    INVALID_STATE = "INVALID_STATE"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_STATUS_CODES = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.INVALID_STATE: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.APPOINTMENT_NOT_FOUND: 404,
    ErrorCode.BARBER_NOT_FOUND: 404,
    ErrorCode.SERVICE_NOT_FOUND: 404,
    ErrorCode.NOTIFICATION_NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.SLOT_UNAVAILABLE: 409,
    ErrorCode.CONCURRENT_MODIFICATION: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}

NOT_FOUND_CODES = {
    "Appointment": ErrorCode.APPOINTMENT_NOT_FOUND,
    "Barber": ErrorCode.BARBER_NOT_FOUND,
    "Service": ErrorCode.SERVICE_NOT_FOUND,
    "Notification": ErrorCode.NOTIFICATION_NOT_FOUND,
}


def get_status_code(error_code: ErrorCode) -> int:
    """HTTP status for an error code (500 when unmapped)."""
    return ERROR_STATUS_CODES.get(error_code, 500)
