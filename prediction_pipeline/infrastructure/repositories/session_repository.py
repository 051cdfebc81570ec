"""
Infrastructure Repository - Prediction Session MongoDB Implementation

This module implements the prediction session repository using MongoDB.
Lease acquisition and lease-guarded writes are single-document conditional
updates, so they are atomic on the server.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from prediction_pipeline.domain.entities.errors import PersistenceError
from prediction_pipeline.domain.entities.session import (
    LEASABLE_STATUSES,
    PredictionSession,
    SessionStatus,
)
from prediction_pipeline.domain.repositories.session_repository import (
    ISessionRepository,
)
from prediction_pipeline.infrastructure.database.mongo_database import (
    SESSIONS_COLLECTION,
    MongoDatabase,
)

logger = structlog.get_logger(__name__)

# Fields written by a lease holder. Everything else is fixed at creation or
# owned by the lease acquisition itself.
_MUTABLE_FIELDS = (
    "status",
    "completed_market_ids",
    "failed_markets",
    "lease_owner",
    "lease_expires_at",
    "error",
    "updated_at",
    "completed_at",
)


class SessionRepository(ISessionRepository):
    """MongoDB implementation of prediction session repository."""

    def __init__(self, database: MongoDatabase):
        """Initialize repository with database connection."""
        self.database = database
        self.collection_name = SESSIONS_COLLECTION

    def _failure(self, action: str, error: PyMongoError, **context: Any):
        logger.error(
            f"session_repository.{action}_failed", error=str(error), **context
        )
        return PersistenceError(
            f"Failed to {action.replace('_', ' ')} prediction session",
            details={"error": str(error), **context},
        )

    async def create(self, session: PredictionSession) -> PredictionSession:
        """Create a new prediction session."""
        try:
            collection = self.database.get_collection(self.collection_name)
            result = collection.insert_one(self._to_document(session))
        except PyMongoError as e:
            raise self._failure("create", e, session_id=str(session.id)) from e

        if not result.acknowledged:
            raise PersistenceError(
                "Failed to insert prediction session",
                details={"session_id": str(session.id)},
            )
        return session

    async def get_by_id(self, session_id: UUID) -> Optional[PredictionSession]:
        """Get a prediction session by ID."""
        try:
            collection = self.database.get_collection(self.collection_name)
            document = collection.find_one({"id": str(session_id)})
        except PyMongoError as e:
            raise self._failure("get", e, session_id=str(session_id)) from e

        return self._from_document(document) if document else None

    async def list_sessions(
        self, owner_id: Optional[str] = None, skip: int = 0, limit: int = 50
    ) -> List[PredictionSession]:
        """List sessions, newest first, optionally restricted to one owner."""
        query: Dict[str, Any] = {}
        if owner_id is not None:
            query["owner_id"] = owner_id

        try:
            collection = self.database.get_collection(self.collection_name)
            cursor = collection.find(query).sort("created_at", -1)
            documents = list(cursor.skip(skip).limit(limit))
        except PyMongoError as e:
            raise self._failure("list", e, owner_id=owner_id) from e

        return [self._from_document(doc) for doc in documents]

    async def try_acquire_lease(
        self,
        session_id: UUID,
        owner: str,
        expires_at: datetime,
        now: datetime,
        stale_before: Optional[datetime] = None,
        count_recovery: bool = False,
    ) -> Optional[PredictionSession]:
        """Atomically claim a non-terminal session."""
        claimable: List[Dict[str, Any]] = [
            {"lease_owner": None},
            {"lease_expires_at": {"$lt": now}},
        ]
        if stale_before is not None:
            claimable.append({"updated_at": {"$lt": stale_before}})

        update: Dict[str, Any] = {
            "$set": {
                "status": SessionStatus.IN_PROGRESS.value,
                "lease_owner": owner,
                "lease_expires_at": expires_at,
                "updated_at": now,
            }
        }
        if count_recovery:
            update["$inc"] = {"recovery_attempts": 1}

        try:
            collection = self.database.get_collection(self.collection_name)
            document = collection.find_one_and_update(
                {
                    "id": str(session_id),
                    "status": {"$in": [s.value for s in LEASABLE_STATUSES]},
                    "$or": claimable,
                },
                update,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._failure("acquire_lease", e, session_id=str(session_id)) from e

        return self._from_document(document) if document else None

    async def save_leased(self, session: PredictionSession, owner: str) -> bool:
        """Persist the session state only while ``owner`` holds its lease."""
        document = self._to_document(session)
        fields = {key: document[key] for key in _MUTABLE_FIELDS}

        try:
            collection = self.database.get_collection(self.collection_name)
            result = collection.update_one(
                {"id": str(session.id), "lease_owner": owner},
                {"$set": fields},
            )
        except PyMongoError as e:
            raise self._failure("save", e, session_id=str(session.id)) from e

        return result.matched_count > 0

    async def find_stale(
        self, updated_before: datetime, limit: int
    ) -> List[PredictionSession]:
        """In-progress sessions not written since ``updated_before``."""
        try:
            collection = self.database.get_collection(self.collection_name)
            cursor = (
                collection.find(
                    {
                        "status": SessionStatus.IN_PROGRESS.value,
                        "updated_at": {"$lt": updated_before},
                    }
                )
                .sort("updated_at", 1)
                .limit(limit)
            )
            documents = list(cursor)
        except PyMongoError as e:
            raise self._failure("find_stale", e) from e

        return [self._from_document(doc) for doc in documents]

    async def count_sessions(
        self, status: SessionStatus, updated_before: Optional[datetime] = None
    ) -> int:
        """Number of sessions in ``status``, optionally only stale ones."""
        query: Dict[str, Any] = {"status": status.value}
        if updated_before is not None:
            query["updated_at"] = {"$lt": updated_before}

        try:
            collection = self.database.get_collection(self.collection_name)
            return collection.count_documents(query)
        except PyMongoError as e:
            raise self._failure("count", e, status=status.value) from e

    async def mark_abandoned(
        self, session_id: UUID, reason: str, updated_before: datetime
    ) -> bool:
        """Abandon a session if it is still in progress and stale."""
        now = datetime.now(timezone.utc)
        try:
            collection = self.database.get_collection(self.collection_name)
            result = collection.update_one(
                {
                    "id": str(session_id),
                    "status": SessionStatus.IN_PROGRESS.value,
                    "updated_at": {"$lt": updated_before},
                },
                {
                    "$set": {
                        "status": SessionStatus.ABANDONED.value,
                        "error": reason,
                        "lease_owner": None,
                        "lease_expires_at": None,
                        "updated_at": now,
                        "completed_at": now,
                    }
                },
            )
        except PyMongoError as e:
            raise self._failure("abandon", e, session_id=str(session_id)) from e

        return result.matched_count > 0

    async def fail_unstarted(
        self,
        reason: str,
        session_id: Optional[UUID] = None,
        updated_before: Optional[datetime] = None,
    ) -> int:
        """Fail pending sessions that were never leased."""
        query: Dict[str, Any] = {
            "status": SessionStatus.PENDING.value,
            "lease_owner": None,
        }
        if session_id is not None:
            query["id"] = str(session_id)
        if updated_before is not None:
            query["updated_at"] = {"$lt": updated_before}

        now = datetime.now(timezone.utc)
        try:
            collection = self.database.get_collection(self.collection_name)
            result = collection.update_many(
                query,
                {
                    "$set": {
                        "status": SessionStatus.FAILED.value,
                        "error": reason,
                        "updated_at": now,
                        "completed_at": now,
                    }
                },
            )
        except PyMongoError as e:
            raise self._failure("fail_unstarted", e) from e

        return result.modified_count

    async def delete_finished(
        self, statuses: Iterable[SessionStatus], updated_before: datetime
    ) -> int:
        """Delete sessions in ``statuses`` last written before the cutoff."""
        try:
            collection = self.database.get_collection(self.collection_name)
            result = collection.delete_many(
                {
                    "status": {"$in": [s.value for s in statuses]},
                    "updated_at": {"$lt": updated_before},
                }
            )
        except PyMongoError as e:
            raise self._failure("delete", e) from e

        return result.deleted_count

    def _to_document(self, session: PredictionSession) -> Dict[str, Any]:
        """Convert a session entity to a MongoDB document."""
        return {
            "id": str(session.id),
            "owner_id": session.owner_id,
            "status": session.status.value,
            "model_name": session.model_name,
            "target_market_ids": list(session.target_market_ids),
            "completed_market_ids": list(session.completed_market_ids),
            # market ids are not safe as field names
            "failed_markets": [
                {"market_id": market_id, "error": error}
                for market_id, error in session.failed_markets.items()
            ],
            "metadata": dict(session.metadata),
            "lease_owner": session.lease_owner,
            "lease_expires_at": session.lease_expires_at,
            "recovery_attempts": session.recovery_attempts,
            "error": session.error,
            "created_at": session.created_at,
            "updated_at": session.updated_at,
            "completed_at": session.completed_at,
        }

    def _from_document(self, document: Dict[str, Any]) -> PredictionSession:
        """Convert a MongoDB document to a session entity."""
        return PredictionSession(
            id=UUID(document["id"]),
            owner_id=document.get("owner_id"),
            status=SessionStatus(document["status"]),
            model_name=document.get("model_name", ""),
            target_market_ids=list(document.get("target_market_ids", [])),
            completed_market_ids=list(document.get("completed_market_ids", [])),
            failed_markets={
                entry["market_id"]: entry["error"]
                for entry in document.get("failed_markets", [])
            },
            metadata=dict(document.get("metadata", {})),
            lease_owner=document.get("lease_owner"),
            lease_expires_at=document.get("lease_expires_at"),
            recovery_attempts=int(document.get("recovery_attempts", 0)),
            error=document.get("error"),
            created_at=document["created_at"],
            updated_at=document["updated_at"],
            completed_at=document.get("completed_at"),
        )
