"""Celery tasks that generate prediction batches."""

import asyncio
from typing import Any, Dict, List
from uuid import UUID

from prediction_pipeline.domain.entities.errors import (
    AlreadyLeasedError,
    SessionNotFoundError,
    SessionStateError,
)
from prediction_pipeline.infrastructure.services.celery_config import celery_app
from prediction_pipeline.infrastructure.services.tasks import base
from prediction_pipeline.infrastructure.services.tasks.base import CallbackTask, logger
from prediction_pipeline.infrastructure.settings import get_settings
from prediction_pipeline.shared.consts import RUN_BATCH_TASK, SCHEDULED_BATCH_TASK


@celery_app.task(bind=True, base=CallbackTask, name=RUN_BATCH_TASK)
def run_prediction_batch(self, session_id: str) -> Dict[str, Any]:
    """Generate every prediction of a freshly created session."""

    logger.info("batch.task.started", session_id=session_id, task_id=self.request.id)
    services = base.build_pipeline()
    try:
        result = asyncio.run(services.dispatcher.run_batch(UUID(session_id)))
    except (AlreadyLeasedError, SessionNotFoundError, SessionStateError) as exc:
        # duplicate delivery or a session already taken over by recovery
        logger.warning("batch.task.skipped", session_id=session_id, reason=exc.message)
        return {"session_id": session_id, "skipped": True, "reason": exc.message}
    finally:
        services.close()

    return result.model_dump(mode="json")


@celery_app.task(bind=True, base=CallbackTask, name=SCHEDULED_BATCH_TASK)
def generate_scheduled_batches(self) -> List[Dict[str, Any]]:
    """Daily batch: one session per configured model."""

    options = get_settings().prediction.scheduled_options()
    services = base.build_pipeline()
    try:
        responses = asyncio.run(services.batch_management.trigger_scheduled(options))
    finally:
        services.close()

    return [response.model_dump(mode="json", by_alias=True) for response in responses]
