"""
Custom Exception Classes for the NEXIA API.

Every failure the service reports to a client is one of the exceptions defined
here. Each carries a human-readable message, a stable `error_code` and an
optional `details` dictionary, and is translated into an HTTP response by
`to_http_exception`.

Error taxonomy:
- Transport failures from the hosted backend or the AI endpoint
  (`BackendError`, `BackendTimeoutError`, `StorageError`, `AIServiceError`,
  `ResponseFormatError`). These fail the current action only and are never
  retried automatically.
- Validation failures (`ProfileValidationError`, `ValidationError`,
  `EmptyMessageError`). These are collected per field and block the write.
- Ownership mismatches detected by re-fetching before a mutation
  (`ChatNotFoundError`, `PermissionDeniedError`).
- Authentication and configuration problems (`AuthenticationError`,
  `ConfigurationError`).

A missing profile is deliberately absent from this list: it is rendered as an
empty-state profile, not reported as an error.
"""

from typing import Optional, Dict, Any, List
from fastapi import HTTPException


class NexiaAPIException(Exception):
    """Base exception class for NEXIA API"""

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = "NEXIA_API_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class BackendError(NexiaAPIException):
    """Raised when a call to the hosted backend fails"""

    status_code = 502

    def __init__(self, operation: str, reason: str, status: Optional[int] = None):
        details = {"operation": operation, "reason": reason}
        if status is not None:
            details["status"] = status
        super().__init__(
            f"Backend operation '{operation}' failed: {reason}",
            "BACKEND_ERROR",
            details,
        )


class BackendTimeoutError(NexiaAPIException):
    """Raised when a backend call does not finish within its time limit"""

    status_code = 504

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Backend operation '{operation}' timed out after {timeout:g}s",
            "BACKEND_TIMEOUT",
            {"operation": operation, "timeout": timeout},
        )


class StorageError(NexiaAPIException):
    """Raised when object storage rejects an upload or removal"""

    status_code = 502

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Storage operation for '{path}' failed: {reason}",
            "STORAGE_ERROR",
            {"path": path, "reason": reason},
        )


class AIServiceError(NexiaAPIException):
    """Raised when the generative-AI endpoint cannot be reached or refuses"""

    status_code = 502

    def __init__(self, reason: str, status: Optional[int] = None):
        details = {"reason": reason, "retryable": True}
        if status is not None:
            details["status"] = status
        super().__init__(f"AI service error: {reason}", "AI_SERVICE_ERROR", details)


class ResponseFormatError(NexiaAPIException):
    """Raised when the AI endpoint answers with a malformed or empty body"""

    status_code = 502

    def __init__(self, reason: str = "Invalid response format from AI"):
        super().__init__(
            reason, "AI_RESPONSE_FORMAT_ERROR", {"reason": reason, "retryable": True}
        )


class ValidationError(NexiaAPIException):
    """Raised when input validation fails"""

    status_code = 400

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Validation failed for field '{field}': {reason}",
            "VALIDATION_ERROR",
            {"field": field, "value": str(value), "reason": reason},
        )


class ProfileValidationError(NexiaAPIException):
    """Raised when a profile save is blocked by one or more field errors"""

    status_code = 422

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        super().__init__(
            "Please fix the errors before saving",
            "PROFILE_VALIDATION_ERROR",
            {"fields": errors},
        )


class EmptyMessageError(NexiaAPIException):
    """Raised when a chat message is blank"""

    status_code = 400

    def __init__(self):
        super().__init__(
            "Message must not be empty", "EMPTY_MESSAGE", {"field": "message"}
        )


class ChatNotFoundError(NexiaAPIException):
    """Raised when a chat row is not visible to the caller"""

    status_code = 404

    def __init__(self, chat_id: str):
        super().__init__(
            f"Chat not found: {chat_id}", "CHAT_NOT_FOUND", {"chat_id": str(chat_id)}
        )


class PermissionDeniedError(NexiaAPIException):
    """Raised when a caller tries to mutate a row owned by someone else"""

    status_code = 403

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"You do not have permission to modify this {resource}",
            "PERMISSION_DENIED",
            {"resource": resource, "resource_id": str(resource_id)},
        )


class AuthenticationError(NexiaAPIException):
    """Raised when authentication fails"""

    status_code = 401

    def __init__(self, reason: str):
        super().__init__(
            f"Authentication failed: {reason}",
            "AUTHENTICATION_ERROR",
            {"reason": reason},
        )


class ConfigurationError(NexiaAPIException):
    """Raised when a component is built without the settings it needs"""

    status_code = 500

    def __init__(self, component: str, reason: str):
        super().__init__(
            f"Component '{component}' is not configured: {reason}",
            "CONFIGURATION_ERROR",
            {"component": component, "reason": reason},
        )


def to_http_exception(exc: NexiaAPIException) -> HTTPException:
    """Convert NexiaAPIException to FastAPI HTTPException"""
    return HTTPException(
        status_code=exc.status_code,
        detail={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )
