from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for failures raised by the core services.

    ``code`` is the stable machine-readable kind the API layer maps to a
    status; ``details`` carries whatever the caller needs to fix the request
    (for example the list of missing generation ids).
    """

    code = 'INTERNAL_ERROR'

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {'code': self.code, 'message': self.message}
        if self.details is not None:
            payload['details'] = self.details
        return payload


class ValidationError(ServiceError):
    """Malformed or out-of-range input."""

    code = 'VALIDATION_ERROR'


class NotFoundError(ServiceError):
    code = 'NOT_FOUND'


class ForbiddenError(ServiceError):
    code = 'FORBIDDEN'


class DatabaseError(ServiceError):
    """A store call failed or returned no rows when rows were expected."""

    code = 'DATABASE_ERROR'


class InternalError(ServiceError):
    code = 'INTERNAL_ERROR'


class AIServiceError(ServiceError):
    code = 'AI_SERVICE_ERROR'
