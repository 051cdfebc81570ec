"""
Domain Repository Interface - Prediction Session

This module defines the repository interface for prediction session
persistence, including the lease columns used for single-writer ownership.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from prediction_pipeline.domain.entities.session import (
    PredictionSession,
    SessionStatus,
)


class ISessionRepository(ABC):
    """Interface for prediction session repository."""

    @abstractmethod
    async def create(self, session: PredictionSession) -> PredictionSession:
        """Create a new prediction session."""
        pass

    @abstractmethod
    async def get_by_id(self, session_id: UUID) -> Optional[PredictionSession]:
        """Get a prediction session by ID."""
        pass

    @abstractmethod
    async def list_sessions(
        self, owner_id: Optional[str] = None, skip: int = 0, limit: int = 50
    ) -> List[PredictionSession]:
        """List sessions, newest first, optionally restricted to one owner."""
        pass

    @abstractmethod
    async def try_acquire_lease(
        self,
        session_id: UUID,
        owner: str,
        expires_at: datetime,
        now: datetime,
        stale_before: Optional[datetime] = None,
        count_recovery: bool = False,
    ) -> Optional[PredictionSession]:
        """
        Atomically claim a non-terminal session.

        The claim succeeds when the session holds no lease, its lease expired
        before ``now``, or (for takeovers) it was last written before
        ``stale_before``. Returns the updated session, or None when the claim
        did not match.
        """
        pass

    @abstractmethod
    async def save_leased(self, session: PredictionSession, owner: str) -> bool:
        """
        Persist the session state only while ``owner`` holds its lease.

        Returns:
            False when the lease is no longer held by ``owner``.
        """
        pass

    @abstractmethod
    async def find_stale(
        self, updated_before: datetime, limit: int
    ) -> List[PredictionSession]:
        """In-progress sessions not written since ``updated_before``."""
        pass

    @abstractmethod
    async def count_sessions(
        self, status: SessionStatus, updated_before: Optional[datetime] = None
    ) -> int:
        """Number of sessions in ``status``, optionally only stale ones."""
        pass

    @abstractmethod
    async def mark_abandoned(
        self, session_id: UUID, reason: str, updated_before: datetime
    ) -> bool:
        """Abandon a session if it is still in progress and stale."""
        pass

    @abstractmethod
    async def fail_unstarted(
        self,
        reason: str,
        session_id: Optional[UUID] = None,
        updated_before: Optional[datetime] = None,
    ) -> int:
        """
        Fail pending sessions that no worker ever leased.

        Restricted to one session, to sessions idle since ``updated_before``,
        or both. Returns the number of sessions failed.
        """
        pass

    @abstractmethod
    async def delete_finished(
        self, statuses: Iterable[SessionStatus], updated_before: datetime
    ) -> int:
        """Delete sessions in ``statuses`` last written before the cutoff."""
        pass
