from __future__ import annotations

from typing import Mapping, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    def __init__(self, message: str, *, fields: Optional[Mapping[str, str]] = None):
        super().__init__(message)
        self.fields = dict(fields or {})


class AuthorizationError(DomainError):
    """Raised when the actor's roles do not allow an action."""


class NotFoundError(DomainError):
    """Raised when a gate pass or directory entry does not exist."""


class InvalidTransition(DomainError):
    """Raised when the state machine rejects an event for the current status."""

    def __init__(self, *, current_status, attempted):
        self.current_status = current_status
        self.attempted = attempted
        super().__init__(
            f"Cannot {getattr(attempted, 'value', attempted)} a gate pass "
            f"in status {getattr(current_status, 'value', current_status)}"
        )


class TransientStorageError(DomainError):
    """Storage timeout or contention. Safe to retry."""


class PassNumberExhausted(DomainError):
    """Raised when the pass number width cannot hold the next sequence value."""
