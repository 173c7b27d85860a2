"""
Service-layer errors

Services raise a ServiceError carrying an ErrorKind; the API layer maps the
kind to an HTTP status in one place (see app.main).
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Error categories exposed to clients."""
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTERNAL = "internal"


ERROR_STATUS = {
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INTERNAL: 500,
}


class ServiceError(Exception):
    """Base error raised by services."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, kind: ErrorKind | None = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.kind]

    def to_dict(self) -> dict:
        return {"error": self.message}


class UnauthorizedError(ServiceError):
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION


class InternalError(ServiceError):
    kind = ErrorKind.INTERNAL
