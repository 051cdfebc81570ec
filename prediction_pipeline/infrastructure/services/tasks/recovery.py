"""Celery task that recovers stuck sessions and purges old ones."""

import asyncio
from typing import Any, Dict

from prediction_pipeline.infrastructure.services.celery_config import celery_app
from prediction_pipeline.infrastructure.services.tasks import base
from prediction_pipeline.infrastructure.services.tasks.base import CallbackTask, logger
from prediction_pipeline.shared.consts import RECOVERY_TASK


async def _sweep(services: base.PipelineServices) -> Dict[str, Any]:
    recovery = await services.recovery.recover_stuck_sessions()
    cleanup = await services.recovery.cleanup_old_sessions()
    return {
        "recovery": recovery.model_dump(mode="json"),
        "cleanup": cleanup.model_dump(mode="json"),
    }


@celery_app.task(bind=True, base=CallbackTask, name=RECOVERY_TASK)
def recover_prediction_sessions(self) -> Dict[str, Any]:
    """Resume or abandon stuck sessions, then delete expired terminal ones."""

    logger.info("recovery.task.started", task_id=self.request.id)
    services = base.build_pipeline()
    try:
        return asyncio.run(_sweep(services))
    finally:
        services.close()
