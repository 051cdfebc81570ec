"""Domain Repository Interface - Prediction Result."""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from prediction_pipeline.domain.entities.prediction import PredictionResult


class IPredictionResultRepository(ABC):
    """Interface for prediction result repository."""

    @abstractmethod
    async def save(self, result: PredictionResult) -> bool:
        """
        Insert a result unless one exists for its (session, market) pair.

        Returns:
            True when the result was inserted, False when it already existed.
        """
        pass

    @abstractmethod
    async def get(self, session_id: UUID, market_id: str) -> Optional[PredictionResult]:
        """Get the stored result for a market within a session."""
        pass

    @abstractmethod
    async def list_by_session(self, session_id: UUID) -> List[PredictionResult]:
        """Get all results stored for a session."""
        pass
