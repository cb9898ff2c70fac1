"""Classification of recovery failures into user-facing messages."""

from __future__ import annotations

from enum import Enum

from ..errors import InvalidNavigationRequest, MalformedUrlKey, RecoveryException


class RecoveryErrorType(Enum):
    ENDPOINT_FAILURE = "ENDPOINT_FAILURE"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    NETWORK_ERROR = "NETWORK_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DATA_NOT_FOUND = "DATA_NOT_FOUND"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


MESSAGES = {
    RecoveryErrorType.NETWORK_ERROR: (
        "Unable to restore window state due to connection issues. Window opened in default state."
    ),
    RecoveryErrorType.DATA_NOT_FOUND: (
        "The requested data is no longer available. Window opened in default state."
    ),
    RecoveryErrorType.PERMISSION_DENIED: (
        "You don't have permission to access the requested data. Window opened in default state."
    ),
    RecoveryErrorType.INVALID_PARAMETERS: (
        "Invalid URL parameters detected. Window opened in default state."
    ),
    RecoveryErrorType.ENDPOINT_FAILURE: (
        "Unable to restore window state due to an internal error. Window opened in default state."
    ),
    RecoveryErrorType.UNKNOWN_ERROR: "Unable to restore window state. Window opened in default state.",
}


def classify_recovery_error(error: BaseException) -> RecoveryErrorType:
    if isinstance(error, RecoveryException):
        error = error.cause
    if isinstance(error, (MalformedUrlKey, InvalidNavigationRequest)):
        return RecoveryErrorType.INVALID_PARAMETERS
    if not isinstance(error, Exception):
        return RecoveryErrorType.UNKNOWN_ERROR

    message = str(error).lower()
    if isinstance(error, (ConnectionError, TimeoutError)) or "network" in message or "fetch" in message:
        return RecoveryErrorType.NETWORK_ERROR
    if isinstance(error, (KeyError, LookupError)) or "not found" in message or "404" in message:
        return RecoveryErrorType.DATA_NOT_FOUND
    if isinstance(error, PermissionError) or "unauthorized" in message or "403" in message:
        return RecoveryErrorType.PERMISSION_DENIED
    if isinstance(error, ValueError) or "invalid" in message or "parameter" in message:
        return RecoveryErrorType.INVALID_PARAMETERS
    return RecoveryErrorType.ENDPOINT_FAILURE


def user_message(error: BaseException) -> str:
    return MESSAGES[classify_recovery_error(error)]
