"""
DTOs Package - Application Layer

This package contains Data Transfer Objects (DTOs) used for data exchange
between the application layer and the presentation layer.
"""

from .batch_dto import (
    BatchRunResultDTO,
    CleanupResultDTO,
    RecoveryAcceptedDTO,
    RecoveryResultDTO,
    TriggerBatchRequestDTO,
    TriggerBatchResponseDTO,
)
from .health_dto import DependencyStatusDTO, SessionBacklogDTO, SystemHealthDTO
from .session_dto import SessionListDTO, SessionSummaryDTO

__all__ = [
    "BatchRunResultDTO",
    "CleanupResultDTO",
    "RecoveryAcceptedDTO",
    "RecoveryResultDTO",
    "TriggerBatchRequestDTO",
    "TriggerBatchResponseDTO",
    "DependencyStatusDTO",
    "SessionBacklogDTO",
    "SystemHealthDTO",
    "SessionListDTO",
    "SessionSummaryDTO",
]
