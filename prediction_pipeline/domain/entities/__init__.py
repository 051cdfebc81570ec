"""
Domain Entities Package

This package contains the core domain entities and business logic.
"""

from .errors import (
    AlreadyLeasedError,
    DataUnavailableError,
    DomainError,
    LeaseLostError,
    PersistenceError,
    ProviderError,
    ProviderTransientError,
    ProviderValidationError,
    SessionNotFoundError,
    SessionStateError,
)
from .market import Market, SelectionConstraints
from .prediction import (
    ConfidenceLevel,
    PredictionPayload,
    PredictionPrompt,
    PredictionResult,
)
from .session import (
    LEASABLE_STATUSES,
    TERMINAL_STATUSES,
    PredictionSession,
    SessionLease,
    SessionStatus,
)

__all__ = [
    "Market",
    "SelectionConstraints",
    "ConfidenceLevel",
    "PredictionPayload",
    "PredictionPrompt",
    "PredictionResult",
    "PredictionSession",
    "SessionLease",
    "SessionStatus",
    "TERMINAL_STATUSES",
    "LEASABLE_STATUSES",
    "DomainError",
    "DataUnavailableError",
    "ProviderError",
    "ProviderTransientError",
    "ProviderValidationError",
    "SessionNotFoundError",
    "SessionStateError",
    "AlreadyLeasedError",
    "LeaseLostError",
    "PersistenceError",
]
