"""
Application Use Cases - Session Tracker

Durable bookkeeping for prediction sessions. A worker owns a session through a
lease; every outcome is written through the lease so that a second worker
taking over the session can never be overwritten by the first one.
"""

import asyncio
import copy
import os
import socket
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set
from uuid import UUID, uuid4

import structlog

from prediction_pipeline.application.models import TrackerOptions
from prediction_pipeline.domain.entities.errors import (
    AlreadyLeasedError,
    LeaseLostError,
    PersistenceError,
    SessionNotFoundError,
    SessionStateError,
)
from prediction_pipeline.domain.entities.session import (
    LEASABLE_STATUSES,
    PredictionSession,
    SessionLease,
)
from prediction_pipeline.domain.repositories.session_repository import (
    ISessionRepository,
)

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_lease_owner() -> str:
    """Identifier unique to this process and call."""
    return f"{socket.gethostname()}:{os.getpid()}:{uuid4().hex[:8]}"


class SessionTrackerUseCase:
    """Creates sessions and records per-market outcomes under a lease."""

    def __init__(
        self,
        session_repository: ISessionRepository,
        options: Optional[TrackerOptions] = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._repository = session_repository
        self._options = options or TrackerOptions()
        self._clock = clock
        self._sleep = sleep
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._working: Dict[UUID, PredictionSession] = {}
        self._dirty: Set[UUID] = set()

    async def create_session(
        self,
        target_market_ids: Iterable[str],
        model_name: str,
        metadata: Optional[Dict[str, Any]] = None,
        owner_id: Optional[str] = None,
    ) -> PredictionSession:
        """
        Persist a new session before any prediction is dispatched.

        A session with no targets is created directly as completed.

        Raises:
            PersistenceError: When the session cannot be stored
        """
        session = PredictionSession(
            owner_id=owner_id,
            model_name=model_name,
            target_market_ids=list(target_market_ids),
            metadata=dict(metadata or {}),
        )
        if not session.target_market_ids:
            session.mark_finished()

        try:
            created = await self._repository.create(session)
        except PersistenceError:
            raise
        except Exception as exc:
            logger.error(
                "session_tracker.create_failed",
                session_id=str(session.id),
                error=str(exc),
            )
            raise PersistenceError(
                "Failed to create prediction session",
                details={"session_id": str(session.id)},
            ) from exc

        logger.info(
            "session_tracker.created",
            session_id=str(created.id),
            status=created.status.value,
            targets=len(created.target_market_ids),
            model_name=created.model_name,
        )
        return created

    async def mark_in_progress(
        self,
        session_id: UUID,
        stale_before: Optional[datetime] = None,
        count_recovery: bool = False,
        owner: Optional[str] = None,
    ) -> SessionLease:
        """
        Acquire the session lease and move it to ``in_progress``.

        Args:
            session_id: Session to lease
            stale_before: Also take over live leases on sessions not written
                since this instant (recovery takeover)
            count_recovery: Increment ``recovery_attempts`` on success
            owner: Lease owner identifier; generated when omitted

        Raises:
            SessionNotFoundError: Unknown session
            SessionStateError: The session is no longer runnable
            AlreadyLeasedError: Another worker holds a live lease
        """
        owner = owner or new_lease_owner()
        now = self._clock()
        expires_at = now + timedelta(seconds=self._options.lease_ttl_seconds)

        session = await self._repository.try_acquire_lease(
            session_id,
            owner,
            expires_at,
            now,
            stale_before=stale_before,
            count_recovery=count_recovery,
        )
        if session is None:
            existing = await self._repository.get_by_id(session_id)
            if existing is None:
                raise SessionNotFoundError(session_id)
            if existing.status not in LEASABLE_STATUSES:
                raise SessionStateError(
                    f"Session {session_id} is {existing.status.value}",
                    details={"session_id": str(session_id)},
                )
            raise AlreadyLeasedError(session_id)

        self._working[session_id] = session
        self._dirty.discard(session_id)
        logger.info(
            "session_tracker.lease_acquired",
            session_id=str(session_id),
            owner=owner,
            recovery_attempts=session.recovery_attempts,
        )
        return SessionLease(session_id=session_id, owner=owner, expires_at=expires_at)

    def snapshot(self, lease: SessionLease) -> PredictionSession:
        """Copy of the leased session as this worker currently sees it."""
        session = self._working.get(lease.session_id)
        if session is None or session.lease_owner != lease.owner:
            raise LeaseLostError(lease.session_id)
        return copy.deepcopy(session)

    async def record_outcome(
        self, lease: SessionLease, market_id: str, error: Optional[str] = None
    ) -> bool:
        """
        Record a success (``error is None``) or terminal failure for a market.

        Replaying an outcome that is already stored is a no-op.

        Returns:
            True when the session changed and was written.

        Raises:
            LeaseLostError: Another worker took over the session
            PersistenceError: The write failed after all retries
        """
        async with self._lock_for(lease.session_id):
            session = self._owned(lease)
            if error is None:
                changed = session.record_success(market_id)
            else:
                changed = session.record_failure(market_id, error)

            if not changed and lease.session_id not in self._dirty:
                return False

            await self._persist(session, lease)
            return True

    async def finalize(self, lease: SessionLease) -> PredictionSession:
        """Move the session to its terminal status and release the lease."""
        async with self._lock_for(lease.session_id):
            session = self._owned(lease)
            status = session.mark_finished()
            try:
                await self._persist(session, lease)
            finally:
                self._forget(lease.session_id)

        logger.info(
            "session_tracker.finalized",
            session_id=str(session.id),
            status=status.value,
            completed=len(session.completed_market_ids),
            failed=len(session.failed_markets),
        )
        return copy.deepcopy(session)

    async def release(self, lease: SessionLease) -> None:
        """Drop the lease without changing the session status."""
        async with self._lock_for(lease.session_id):
            session = self._working.get(lease.session_id)
            if session is None or session.lease_owner != lease.owner:
                return
            session.release_lease()
            try:
                await self._persist(session, lease)
            finally:
                self._forget(lease.session_id)

        logger.info("session_tracker.lease_released", session_id=str(lease.session_id))

    def _lock_for(self, session_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def _owned(self, lease: SessionLease) -> PredictionSession:
        session = self._working.get(lease.session_id)
        if session is None or session.lease_owner != lease.owner:
            raise LeaseLostError(lease.session_id)
        return session

    def _forget(self, session_id: UUID) -> None:
        self._working.pop(session_id, None)
        self._locks.pop(session_id, None)
        self._dirty.discard(session_id)

    async def _persist(self, session: PredictionSession, lease: SessionLease) -> None:
        now = self._clock()
        session.updated_at = now
        if session.lease_owner is not None:
            session.lease_expires_at = now + timedelta(
                seconds=self._options.lease_ttl_seconds
            )

        retries = self._options.persistence_retries
        last_error: Optional[Exception] = None
        for attempt in range(retries + 1):
            try:
                saved = await self._repository.save_leased(session, lease.owner)
            except Exception as exc:
                last_error = exc
                if attempt < retries:
                    delay = self._options.persistence_backoff_seconds * (2**attempt)
                    logger.warning(
                        "session_tracker.persist_retry",
                        session_id=str(session.id),
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(exc),
                    )
                    await self._sleep(delay)
                continue

            if not saved:
                self._forget(session.id)
                logger.warning(
                    "session_tracker.lease_lost",
                    session_id=str(session.id),
                    owner=lease.owner,
                )
                raise LeaseLostError(session.id)

            self._dirty.discard(session.id)
            return

        self._dirty.add(session.id)
        logger.critical(
            "session_tracker.persist_failed",
            session_id=str(session.id),
            attempts=retries + 1,
            error=str(last_error),
        )
        raise PersistenceError(
            "Failed to persist session state",
            details={"session_id": str(session.id), "error": str(last_error)},
        ) from last_error
