"""
Use Cases Package - Application Layer

This package contains use cases that implement the business logic
of the application. Use cases orchestrate the flow of data to and from
the entities and implement the business rules of the application.
"""

from .batch_management_use_case import BatchManagementUseCase, BatchTriggerError
from .health_use_cases import GetHealthStatusUseCase
from .market_selection_use_case import MarketSelectionUseCase
from .prediction_dispatch_use_case import PredictionDispatchUseCase
from .session_recovery_use_case import SessionRecoveryUseCase
from .session_tracker import SessionTrackerUseCase

__all__ = [
    "BatchManagementUseCase",
    "BatchTriggerError",
    "GetHealthStatusUseCase",
    "MarketSelectionUseCase",
    "PredictionDispatchUseCase",
    "SessionRecoveryUseCase",
    "SessionTrackerUseCase",
]
