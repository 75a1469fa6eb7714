from __future__ import annotations

from typing import Any


class ApplicationError(Exception):
    code = "APPLICATION_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class ValidationError(ApplicationError):
    code = "VALIDATION_ERROR"


class AuthenticationError(ApplicationError):
    code = "AUTHENTICATION_FAILED"


class PermissionDeniedError(ApplicationError):
    code = "PERMISSION_DENIED"


class NotFoundError(ApplicationError):
    code = "NOT_FOUND"


class ConflictError(ApplicationError):
    code = "CONFLICT"


class TransientError(ApplicationError):
    code = "SERVICE_UNAVAILABLE"
