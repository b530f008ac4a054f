"""Domain error taxonomy.

Every error carries a stable ``kind`` string so the HTTP layer can return a
discriminated body instead of free text. ``ExpiredTokenError`` is
not a subclass of ``InvalidTokenError``; a client re-requests an expired
token but rejects an invalid one.
"""
from typing import Any


class DomainError(Exception):
    kind = "domain_error"
    status_code = 400

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationError(DomainError):
    kind = "validation_error"
    status_code = 422

    def __init__(self, message: str, *, field: str | None = None, details: dict[str, Any] | None = None):
        merged = dict(details or {})
        if field:
            merged.setdefault("field", field)
        super().__init__(message, details=merged)
        self.field = field


class CapacityExceededError(DomainError):
    kind = "capacity_exceeded"
    status_code = 409


class InvalidStateError(DomainError):
    kind = "invalid_state"
    status_code = 409


class NotFoundError(DomainError):
    kind = "not_found"
    status_code = 404


class InvalidTokenError(DomainError):
    kind = "invalid_token"
    status_code = 404


class ExpiredTokenError(DomainError):
    kind = "expired_token"
    status_code = 410
