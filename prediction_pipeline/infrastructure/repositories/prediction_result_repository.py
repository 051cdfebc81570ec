"""
Infrastructure Repository - Prediction Result MongoDB Implementation

Results are write-once: saving upserts on (session_id, market_id) with
``$setOnInsert`` so a replayed write never overwrites or duplicates a row.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from pymongo.errors import DuplicateKeyError, PyMongoError

from prediction_pipeline.domain.entities.errors import PersistenceError
from prediction_pipeline.domain.entities.prediction import (
    ConfidenceLevel,
    PredictionResult,
)
from prediction_pipeline.domain.repositories.prediction_result_repository import (
    IPredictionResultRepository,
)
from prediction_pipeline.infrastructure.database.mongo_database import (
    RESULTS_COLLECTION,
    MongoDatabase,
)

logger = structlog.get_logger(__name__)


class PredictionResultRepository(IPredictionResultRepository):
    """MongoDB implementation of prediction result repository."""

    def __init__(self, database: MongoDatabase):
        self.database = database
        self.collection_name = RESULTS_COLLECTION

    async def save(self, result: PredictionResult) -> bool:
        """Insert a result unless one exists for its (session, market) pair."""
        try:
            collection = self.database.get_collection(self.collection_name)
            outcome = collection.update_one(
                {"session_id": str(result.session_id), "market_id": result.market_id},
                {"$setOnInsert": self._to_document(result)},
                upsert=True,
            )
        except DuplicateKeyError:
            # concurrent upsert of the same pair; the other write won
            return False
        except PyMongoError as e:
            logger.error(
                "prediction_result_repository.save_failed",
                session_id=str(result.session_id),
                market_id=result.market_id,
                error=str(e),
            )
            raise PersistenceError(
                "Failed to store prediction result",
                details={"market_id": result.market_id, "error": str(e)},
            ) from e

        inserted = outcome.upserted_id is not None
        if inserted:
            logger.info(
                "prediction_result_repository.saved",
                session_id=str(result.session_id),
                market_id=result.market_id,
            )
        return inserted

    async def get(self, session_id: UUID, market_id: str) -> Optional[PredictionResult]:
        """Get the stored result for a market within a session."""
        try:
            collection = self.database.get_collection(self.collection_name)
            document = collection.find_one(
                {"session_id": str(session_id), "market_id": market_id}
            )
        except PyMongoError as e:
            logger.error(
                "prediction_result_repository.get_failed",
                session_id=str(session_id),
                market_id=market_id,
                error=str(e),
            )
            raise PersistenceError(
                "Failed to read prediction result", details={"error": str(e)}
            ) from e

        return self._from_document(document) if document else None

    async def list_by_session(self, session_id: UUID) -> List[PredictionResult]:
        """Get all results stored for a session."""
        try:
            collection = self.database.get_collection(self.collection_name)
            documents = list(
                collection.find({"session_id": str(session_id)}).sort("created_at", 1)
            )
        except PyMongoError as e:
            logger.error(
                "prediction_result_repository.list_failed",
                session_id=str(session_id),
                error=str(e),
            )
            raise PersistenceError(
                "Failed to list prediction results", details={"error": str(e)}
            ) from e

        return [self._from_document(doc) for doc in documents]

    def _to_document(self, result: PredictionResult) -> Dict[str, Any]:
        return {
            "id": str(result.id),
            "session_id": str(result.session_id),
            "market_id": result.market_id,
            "model_name": result.model_name,
            "outcomes": list(result.outcomes),
            "outcome_probabilities": list(result.outcome_probabilities),
            "reasoning": result.reasoning,
            "confidence_level": result.confidence_level.value,
            "raw_response": result.raw_response,
            "system_prompt": result.system_prompt,
            "user_prompt": result.user_prompt,
            "created_at": result.created_at,
        }

    def _from_document(self, document: Dict[str, Any]) -> PredictionResult:
        return PredictionResult(
            id=UUID(document["id"]),
            session_id=UUID(document["session_id"]),
            market_id=document["market_id"],
            model_name=document["model_name"],
            outcomes=list(document.get("outcomes", [])),
            outcome_probabilities=[
                float(p) for p in document.get("outcome_probabilities", [])
            ],
            reasoning=document.get("reasoning", ""),
            confidence_level=ConfidenceLevel(document["confidence_level"]),
            raw_response=document.get("raw_response", ""),
            system_prompt=document.get("system_prompt", ""),
            user_prompt=document.get("user_prompt", ""),
            created_at=document["created_at"],
        )
