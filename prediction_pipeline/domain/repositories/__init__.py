"""
Repositories Package

This package contains interfaces defining repository contracts
for data access operations. Specific implementations are provided
by the infrastructure layer.
"""

from .prediction_result_repository import IPredictionResultRepository
from .session_repository import ISessionRepository

__all__ = ["IPredictionResultRepository", "ISessionRepository"]
