"""Domain-level exceptions.

Services raise these errors to express business rule violations.
Each error carries an ErrorKind so route handlers can map it to an
HTTP status without inspecting the exception class hierarchy.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced by the service layer."""
    CONFLICT = 'conflict'
    INVALID_ARGUMENT = 'invalid_argument'
    NOT_FOUND = 'not_found'
    INTERNAL = 'internal'


class DomainError(Exception):
    """Base class for all domain errors."""
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConflictError(DomainError):
    """Username or email is already held by another user."""
    kind = ErrorKind.CONFLICT


class ValidationError(DomainError):
    """Input violates a business validation rule."""
    kind = ErrorKind.INVALID_ARGUMENT


class NotFoundError(DomainError):
    """Requested entity does not exist."""
    kind = ErrorKind.NOT_FOUND


class InternalError(DomainError):
    """Hashing or storage failed in a way the caller cannot fix."""
    kind = ErrorKind.INTERNAL
