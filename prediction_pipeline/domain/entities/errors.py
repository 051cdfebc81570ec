"""
Domain Errors

This module defines custom error classes for domain-specific exceptions.
"""

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for domain errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DataUnavailableError(DomainError):
    """Raised when the market data provider cannot be reached."""


class ProviderError(DomainError):
    """Raised when the AI prediction provider rejects a request."""


class ProviderTransientError(ProviderError):
    """Timeout, 5xx or rate limit from the AI provider. Safe to retry."""


class ProviderValidationError(ProviderError):
    """The provider answered, but the payload is malformed or out of range."""


class SessionNotFoundError(DomainError):
    """Raised when a prediction session cannot be found."""

    def __init__(self, session_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Prediction session {session_id} not found", details)


class SessionStateError(DomainError):
    """Raised when an operation is not allowed in the session's current status."""


class AlreadyLeasedError(DomainError):
    """Raised when another worker holds a live lease on the session."""

    def __init__(self, session_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Prediction session {session_id} is already leased", details)


class LeaseLostError(DomainError):
    """Raised when a lease-guarded write no longer matches the lease owner."""

    def __init__(self, session_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Lease on prediction session {session_id} was lost", details
        )


class PersistenceError(DomainError):
    """Raised when the session or result store rejects a write."""
