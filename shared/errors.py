"""
Shared error handling for the Newsletter Gateway.

Every failure leaving the service is rendered as an ``ErrorResponse`` with
``success: false``. Upstream failures are raised as typed exceptions that
carry the upstream HTTP status, so callers branch on the class instead of
probing attributes.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    code: str
    error: str
    message: Optional[str] = None


class GatewayException(Exception):
    """Base exception for gateway services."""

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self, include_details: bool = False) -> ErrorResponse:
        """Convert to error response, optionally exposing the detail text."""
        detail = None
        if include_details:
            detail = self.details.get("detail") or self.message
        return ErrorResponse(code=self.code, error=self.message, message=detail)


class ConfigError(GatewayException):
    """Required configuration (credentials, audience id) is missing."""

    status_code = 500

    def __init__(self, message: str = "Incomplete configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIG_ERROR", message, details)


class ValidationError(GatewayException):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ResourceNotFoundError(GatewayException):
    """Requested resource does not exist."""

    status_code = 404

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ServiceError(GatewayException):
    """Service-related errors."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)


class RateLimitError(GatewayException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(self, message: str = "Too many requests, please try again later", details: Optional[Dict[str, Any]] = None):
        super().__init__("RATE_LIMIT_ERROR", message, details)


class UpstreamError(GatewayException):
    """The upstream API rejected or failed a request."""

    def __init__(
        self,
        message: str = "Upstream service error",
        status: Optional[int] = None,
        title: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        self.title = title
        super().__init__("UPSTREAM_ERROR", message, details)


class UpstreamNotFound(UpstreamError):
    """Upstream reported 404 for the requested resource."""

    status_code = 404

    def __init__(self, message: str = "Resource not found upstream", title: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status=404, title=title, details=details)
        self.code = "UPSTREAM_NOT_FOUND"


class UpstreamOther(UpstreamError):
    """Any other upstream failure, including malformed payloads."""

    status_code = 500
