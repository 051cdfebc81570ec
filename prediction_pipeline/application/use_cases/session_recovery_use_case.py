"""
Application Use Cases - Session Recovery

Resumes or abandons sessions whose worker stopped writing, and purges old
terminal sessions.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from prediction_pipeline.application.dtos.batch_dto import (
    CleanupResultDTO,
    RecoveryResultDTO,
)
from prediction_pipeline.application.models import RecoveryOptions
from prediction_pipeline.application.use_cases.prediction_dispatch_use_case import (
    PredictionDispatchUseCase,
)
from prediction_pipeline.domain.entities.errors import (
    AlreadyLeasedError,
    SessionNotFoundError,
    SessionStateError,
)
from prediction_pipeline.domain.entities.session import TERMINAL_STATUSES
from prediction_pipeline.domain.repositories.session_repository import (
    ISessionRepository,
)

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionRecoveryUseCase:
    """Use case for the periodic recovery and cleanup sweeps."""

    def __init__(
        self,
        session_repository: ISessionRepository,
        dispatcher: PredictionDispatchUseCase,
        options: Optional[RecoveryOptions] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = session_repository
        self._dispatcher = dispatcher
        self._options = options or RecoveryOptions()
        self._clock = clock

    async def recover_stuck_sessions(
        self, stale_after_minutes: Optional[float] = None
    ) -> RecoveryResultDTO:
        """
        Resume in-progress sessions that stopped writing.

        Sessions that already used up their recovery attempts are marked
        abandoned instead. Each sweep handles at most ``batch_size`` sessions.
        """
        minutes = (
            self._options.stale_after_minutes
            if stale_after_minutes is None
            else stale_after_minutes
        )
        cutoff = self._clock() - timedelta(minutes=minutes)
        stuck = await self._repository.find_stale(cutoff, self._options.batch_size)

        result = RecoveryResultDTO()
        logger.info(
            "session_recovery.sweep.started",
            candidates=len(stuck),
            cutoff=cutoff.isoformat(),
        )

        for session in stuck:
            result.processed += 1
            log = logger.bind(
                session_id=str(session.id),
                recovery_attempts=session.recovery_attempts,
            )

            if session.recovery_attempts >= self._options.max_recovery_attempts:
                reason = (
                    f"Abandoned after {session.recovery_attempts} recovery attempts"
                )
                if await self._repository.mark_abandoned(session.id, reason, cutoff):
                    result.abandoned += 1
                    log.warning("session_recovery.abandoned")
                else:
                    result.skipped += 1
                    log.info("session_recovery.abandon_skipped")
                continue

            try:
                run = await self._dispatcher.resume(session.id, stale_before=cutoff)
            except (AlreadyLeasedError, SessionNotFoundError, SessionStateError) as exc:
                result.skipped += 1
                log.info("session_recovery.skipped", reason=exc.message)
                continue
            except Exception as exc:
                result.failed += 1
                result.errors[str(session.id)] = str(exc)
                log.error("session_recovery.resume_failed", error=str(exc))
                continue

            if run.lease_lost:
                result.skipped += 1
                log.info("session_recovery.lease_lost")
            else:
                result.recovered += 1
                log.info("session_recovery.recovered", status=run.status.value)

        logger.info("session_recovery.sweep.finished", **result.model_dump())
        return result

    async def cleanup_old_sessions(
        self, older_than_hours: Optional[float] = None
    ) -> CleanupResultDTO:
        """Delete terminal sessions last written before the retention window.

        Pending sessions that no worker picked up within ``pending_expiry_hours``
        are failed first, so they reach the retention window too. Prediction
        results are left in place.
        """
        now = self._clock()
        expired = await self._repository.fail_unstarted(
            "Batch was never started",
            updated_before=now - timedelta(hours=self._options.pending_expiry_hours),
        )
        if expired:
            logger.warning("session_recovery.cleanup.expired_pending", expired=expired)

        hours = (
            self._options.cleanup_after_hours
            if older_than_hours is None
            else older_than_hours
        )
        cutoff = now - timedelta(hours=hours)
        deleted = await self._repository.delete_finished(TERMINAL_STATUSES, cutoff)

        logger.info(
            "session_recovery.cleanup.finished",
            deleted=deleted,
            expired=expired,
            cutoff=cutoff.isoformat(),
        )
        return CleanupResultDTO(deleted=deleted, expired=expired)
