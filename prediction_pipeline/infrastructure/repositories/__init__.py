"""
Repositories Package - Infrastructure Layer

This package contains concrete implementations of the repository
interfaces defined in the domain layer. These implementations
handle the details of data persistence.
"""

from .prediction_result_repository import PredictionResultRepository
from .session_repository import SessionRepository

__all__ = ["PredictionResultRepository", "SessionRepository"]
