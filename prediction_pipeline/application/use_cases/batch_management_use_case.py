"""
Application Use Cases - Batch Management

Entry points used by the HTTP layer and the scheduler: trigger a batch,
trigger recovery and read session status.
"""

from typing import List, Optional
from uuid import UUID

import structlog

from prediction_pipeline.application.dtos.batch_dto import (
    RecoveryAcceptedDTO,
    TriggerBatchRequestDTO,
    TriggerBatchResponseDTO,
)
from prediction_pipeline.application.dtos.session_dto import (
    SessionListDTO,
    SessionSummaryDTO,
)
from prediction_pipeline.application.models import ScheduledBatchOptions
from prediction_pipeline.application.use_cases.market_selection_use_case import (
    MarketSelectionUseCase,
)
from prediction_pipeline.application.use_cases.session_tracker import (
    SessionTrackerUseCase,
)
from prediction_pipeline.domain.entities.errors import (
    DataUnavailableError,
    PersistenceError,
)
from prediction_pipeline.domain.entities.market import SelectionConstraints
from prediction_pipeline.domain.entities.session import SessionStatus
from prediction_pipeline.domain.ports.batch_orchestrator import IBatchOrchestrator
from prediction_pipeline.domain.repositories.session_repository import (
    ISessionRepository,
)

logger = structlog.get_logger(__name__)


class BatchTriggerError(Exception):
    """Exception raised when a batch cannot be started."""

    def __init__(self, message: str, retryable: bool = True):
        self.message = message
        self.retryable = retryable
        super().__init__(message)


class BatchManagementUseCase:
    """Use case for starting batches and reading their progress."""

    def __init__(
        self,
        market_selection: MarketSelectionUseCase,
        session_tracker: SessionTrackerUseCase,
        orchestrator: IBatchOrchestrator,
        session_repository: ISessionRepository,
    ) -> None:
        self._selection = market_selection
        self._tracker = session_tracker
        self._orchestrator = orchestrator
        self._sessions = session_repository

    async def trigger(
        self,
        request: TriggerBatchRequestDTO,
        owner_id: Optional[str] = None,
        source: str = "cron",
    ) -> TriggerBatchResponseDTO:
        """
        Select markets, create the session and queue it for the workers.

        Returns as soon as the batch is queued; predictions run in background.

        Raises:
            BatchTriggerError: When selection, session creation or queueing fails
        """
        constraints = SelectionConstraints(
            top_count=request.top_markets_count,
            end_date_range_hours=request.end_date_range_hours,
            target_days_from_now=request.target_days_from_now,
            category_balance=request.category_balance,
            exclude_categories=tuple(request.exclude_categories),
        )

        try:
            markets = await self._selection.select_candidates(constraints)
        except DataUnavailableError as exc:
            logger.error("batch.trigger.selection_failed", error=exc.message)
            raise BatchTriggerError("Market data is currently unavailable") from exc
        except ValueError as exc:
            logger.warning("batch.trigger.invalid_constraints", error=str(exc))
            raise BatchTriggerError(str(exc), retryable=False) from exc

        metadata = {
            "source": source,
            "top_markets_count": request.top_markets_count,
            "end_date_range_hours": request.end_date_range_hours,
            "target_days_from_now": request.target_days_from_now,
            "category_balance": request.category_balance,
            "exclude_categories": list(request.exclude_categories),
        }
        if request.additional_context:
            metadata["additional_context"] = request.additional_context

        try:
            session = await self._tracker.create_session(
                [market.id for market in markets],
                model_name=request.model_name,
                metadata=metadata,
                owner_id=owner_id,
            )
        except PersistenceError as exc:
            logger.error("batch.trigger.session_failed", error=exc.message)
            raise BatchTriggerError("Failed to create prediction session") from exc

        if session.status is SessionStatus.COMPLETED:
            logger.info("batch.trigger.no_markets", session_id=str(session.id))
            return TriggerBatchResponseDTO(
                accepted=True,
                message="No eligible markets found",
                session_id=session.id,
            )

        try:
            task_id = await self._orchestrator.dispatch_batch(session.id)
        except Exception as exc:
            logger.error(
                "batch.trigger.dispatch_failed",
                session_id=str(session.id),
                error=str(exc),
            )
            await self._fail_unqueued(session.id)
            raise BatchTriggerError("Failed to queue prediction batch") from exc

        logger.info(
            "batch.trigger.accepted",
            session_id=str(session.id),
            task_id=task_id,
            markets=len(markets),
            model_name=request.model_name,
        )
        return TriggerBatchResponseDTO(
            accepted=True,
            message=f"Batch prediction generation started for {len(markets)} markets",
            session_id=session.id,
        )

    async def _fail_unqueued(self, session_id: UUID) -> None:
        # nothing was queued for this session
        try:
            await self._sessions.fail_unstarted(
                "Failed to queue prediction batch", session_id=session_id
            )
        except PersistenceError as exc:
            logger.error(
                "batch.trigger.fail_unqueued_failed",
                session_id=str(session_id),
                error=exc.message,
            )

    async def trigger_scheduled(
        self, options: ScheduledBatchOptions
    ) -> List[TriggerBatchResponseDTO]:
        """Start the daily batch once for every configured model."""
        responses: List[TriggerBatchResponseDTO] = []
        for model_name in options.models:
            request = TriggerBatchRequestDTO(
                top_markets_count=options.top_markets_count,
                end_date_range_hours=options.end_date_range_hours,
                target_days_from_now=options.target_days_from_now,
                model_name=model_name,
                exclude_categories=list(options.exclude_categories),
            )
            try:
                responses.append(await self.trigger(request, source="schedule"))
            except BatchTriggerError as exc:
                logger.error(
                    "batch.scheduled.failed", model_name=model_name, error=exc.message
                )
                responses.append(
                    TriggerBatchResponseDTO(accepted=False, message=exc.message)
                )
        return responses

    async def trigger_recovery(self) -> RecoveryAcceptedDTO:
        """Queue a recovery sweep followed by cleanup."""
        try:
            task_id = await self._orchestrator.dispatch_recovery()
        except Exception as exc:
            logger.error("batch.recovery.dispatch_failed", error=str(exc))
            raise BatchTriggerError("Failed to queue session recovery") from exc

        logger.info("batch.recovery.accepted", task_id=task_id)
        return RecoveryAcceptedDTO(task_id=task_id)

    async def get_status(
        self, session_id: UUID, owner_id: Optional[str] = None
    ) -> Optional[SessionSummaryDTO]:
        """
        Get the status of a session.

        Returns None when the session does not exist or belongs to someone
        other than ``owner_id``.
        """
        session = await self._sessions.get_by_id(session_id)
        if session is None:
            return None
        if owner_id is not None and session.owner_id != owner_id:
            return None
        return SessionSummaryDTO.from_domain(session)

    async def list_sessions(
        self, owner_id: Optional[str] = None, skip: int = 0, limit: int = 50
    ) -> SessionListDTO:
        """List sessions newest first."""
        sessions = await self._sessions.list_sessions(
            owner_id=owner_id, skip=skip, limit=limit
        )
        return SessionListDTO(
            sessions=[SessionSummaryDTO.from_domain(s) for s in sessions],
            skip=skip,
            limit=limit,
        )
