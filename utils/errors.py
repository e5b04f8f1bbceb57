"""
Domain errors raised by the service layer.

Every error carries an ErrorKind; the kind alone decides the HTTP status in
the exception handlers registered by main.py.
"""
import enum
from typing import List, Optional


class ErrorKind(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIALS = "invalid_credentials"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    CONFLICT = "conflict"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE: 400,
    ErrorKind.INVALID: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.CONFIGURATION: 500,
    ErrorKind.INTERNAL: 500,
}


class DomainError(Exception):
    def __init__(self, kind: ErrorKind, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.fields = fields or []

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        payload = {"error": self.name, "detail": self.message}
        if self.fields:
            payload["fields"] = self.fields
        return payload


class AuthError(DomainError):
    pass


class UserError(DomainError):
    pass


class PlanError(DomainError):
    pass


class ChatError(DomainError):
    pass


class StorageError(DomainError):
    pass


class ServerError(DomainError):
    def __init__(self, message: str = "Internal Server Error"):
        super().__init__(ErrorKind.INTERNAL, message)
