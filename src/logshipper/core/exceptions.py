"""
Custom exceptions for the log shipper.

Each exception maps to one failure kind of a forwarding invocation and
carries an HTTP status code for the container host's error responses.
"""

from typing import Any, Dict, Optional


class LogShipperException(Exception):
    """Base exception for the log shipper."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class DecodeError(LogShipperException):
    """Raised when the inbound payload cannot be decoded into a batch."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="decode_failure",
            details=details,
        )


class CredentialError(LogShipperException):
    """Raised when the customer token could not be decrypted. Permanent for the process."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=503,
            error_code="credential_failure",
            details=details,
        )


class CredentialTimeoutError(LogShipperException):
    """Raised when the customer token is still pending after the wait deadline."""

    def __init__(self, message: str = "Timed out waiting for the customer token", timeout_seconds: Optional[float] = None) -> None:
        details = {}
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds

        super().__init__(
            message=message,
            status_code=503,
            error_code="credential_timeout",
            details=details,
        )


class TransportError(LogShipperException):
    """Raised when the HTTP request to the listener fails at the network level."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code="transport_failure",
            details=details,
        )


class MalformedResponseError(LogShipperException):
    """Raised when the listener's reply does not acknowledge the batch."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code="malformed_response",
            details=details,
        )
