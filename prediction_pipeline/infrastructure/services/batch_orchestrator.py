"""Celery-backed implementation of the batch orchestrator port."""

from __future__ import annotations

import asyncio
from typing import Optional
from uuid import UUID

from prediction_pipeline.domain.ports.batch_orchestrator import IBatchOrchestrator
from prediction_pipeline.infrastructure.services.celery_config import celery_app
from prediction_pipeline.shared import get_logger
from prediction_pipeline.shared.consts import (
    BATCH_QUEUE,
    RECOVERY_QUEUE,
    RECOVERY_TASK,
    RUN_BATCH_TASK,
)

logger = get_logger(__name__)


class CeleryBatchOrchestrator(IBatchOrchestrator):
    """Dispatch prediction batches and recovery sweeps through Celery."""

    def __init__(
        self, batch_queue: str = BATCH_QUEUE, recovery_queue: str = RECOVERY_QUEUE
    ) -> None:
        self._batch_queue = batch_queue
        self._recovery_queue = recovery_queue

    async def dispatch_batch(self, session_id: UUID) -> str:
        """Send the batch task to Celery asynchronously."""

        def _send_task() -> str:
            logger.info(
                "batch_orchestrator.dispatch",
                session_id=str(session_id),
                queue=self._batch_queue,
            )
            result = celery_app.send_task(
                RUN_BATCH_TASK,
                kwargs={"session_id": str(session_id)},
                queue=self._batch_queue,
            )
            return result.id

        task_id: Optional[str] = await asyncio.to_thread(_send_task)
        return task_id or ""

    async def dispatch_recovery(self) -> str:
        def _send_task() -> str:
            logger.info("batch_orchestrator.recovery", queue=self._recovery_queue)
            result = celery_app.send_task(RECOVERY_TASK, queue=self._recovery_queue)
            return result.id

        task_id: Optional[str] = await asyncio.to_thread(_send_task)
        return task_id or ""
