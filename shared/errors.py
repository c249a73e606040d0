"""
Error types shared by the Accounts Access Layer services.

Every error a route lets escape is an ``AccessLayerException``; the base
service renders it as an ``ErrorResponse`` with the exception's HTTP status.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body returned for a failed request."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code = 400
    code = "ACCESS_LAYER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, *, code: Optional[str] = None):
        self.message = message
        self.details = details or {}
        if code:
            self.code = code
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """A request named something this service does not know."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ExternalServiceError(AccessLayerException):
    """A downstream service could not be reached or answered unusably."""

    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__(f"{service}: {message}", details)


class ServiceUnavailableError(ExternalServiceError):
    """Calls to a downstream service are currently blocked by its circuit breaker."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"
