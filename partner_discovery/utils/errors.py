"""
Error hierarchy for the discovery gateway.

Two kinds of failure are exceptions: a request the gateway refuses before any
partner call (ValidationError, HTTP 400) and a failed partner exchange
(PartnerTransportError, HTTP 500). A partner-reported business failure is a
normal DiscoveryResult with a non-"0" result code and never raises.
"""

import asyncio
from enum import Enum
from typing import Any, Optional

import httpx


class ErrorType(str, Enum):
    """Error type classification."""
    VALIDATION_ERROR = "validation_error"
    PARTNER_TRANSPORT_ERROR = "partner_transport_error"
    INTERNAL_ERROR = "internal_error"


# =============================================================================
# Custom Exceptions
# =============================================================================

class DiscoveryError(Exception):
    """Base exception for gateway errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.INTERNAL_ERROR,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}


class ValidationError(DiscoveryError):
    """A required parameter is missing or structurally invalid."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, ErrorType.VALIDATION_ERROR, details)
        self.field = field


class PartnerTransportError(DiscoveryError):
    """Network, authentication or unexpected-shape failure from the partner."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, ErrorType.PARTNER_TRANSPORT_ERROR, details)
        self.status = status


# =============================================================================
# Error Handler
# =============================================================================

class ErrorHandler:
    """Maps exceptions onto the HTTP error contract."""

    @staticmethod
    def categorize_error(error: Exception) -> ErrorType:
        if isinstance(error, DiscoveryError):
            return error.error_type
        if isinstance(error, (httpx.HTTPError, ConnectionError, asyncio.TimeoutError)):
            return ErrorType.PARTNER_TRANSPORT_ERROR
        return ErrorType.INTERNAL_ERROR

    @staticmethod
    def status_for(error: Exception) -> int:
        """HTTP status for an exception: 400 for validation, 500 otherwise."""
        if isinstance(error, DiscoveryError):
            return error.status_code
        return 500

    @staticmethod
    def message_for(error: Exception) -> str:
        message = error.message if isinstance(error, DiscoveryError) else str(error)
        return message or "Unknown error"

    @classmethod
    def to_body(cls, error: Exception) -> dict[str, str]:
        """JSON error body: {"error": message}."""
        return {"error": cls.message_for(error)}
