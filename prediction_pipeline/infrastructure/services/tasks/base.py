"""Shared Celery infrastructure components."""

from dataclasses import dataclass
from typing import Any, Optional

import structlog
from celery import Task

from prediction_pipeline.application.use_cases import (
    BatchManagementUseCase,
    MarketSelectionUseCase,
    PredictionDispatchUseCase,
    SessionRecoveryUseCase,
    SessionTrackerUseCase,
)
from prediction_pipeline.infrastructure.settings import (
    InfrastructureSettings,
    get_settings,
)

logger = structlog.get_logger(__name__)


class CallbackTask(Task):
    """Base task class that centralizes logging behaviour."""

    def on_success(self, retval, task_id, args, kwargs):
        logger.info("task.succeeded", task_id=task_id, task=self.name, result=retval)

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(
            "task.failed",
            task_id=task_id,
            task=self.name,
            error=str(exc),
            traceback=einfo.traceback,
            exc_info=exc,
        )


@dataclass
class PipelineServices:
    """Use cases wired for a single task invocation."""

    database: Any
    dispatcher: PredictionDispatchUseCase
    recovery: SessionRecoveryUseCase
    batch_management: BatchManagementUseCase

    def close(self) -> None:
        self.database.close()


def build_pipeline(
    settings: Optional[InfrastructureSettings] = None,
) -> PipelineServices:
    """Build the worker-side object graph from infrastructure settings."""

    from prediction_pipeline.infrastructure.database.mongo_database import (
        MongoDatabase,
    )
    from prediction_pipeline.infrastructure.gateways import (
        GammaMarketGateway,
        OpenRouterGateway,
    )
    from prediction_pipeline.infrastructure.repositories import (
        PredictionResultRepository,
        SessionRepository,
    )
    from prediction_pipeline.infrastructure.services.batch_orchestrator import (
        CeleryBatchOrchestrator,
    )

    settings = settings or get_settings()
    database = MongoDatabase(
        mongo_uri=settings.database.mongo_uri,
        db_name=settings.database.database_name,
    )
    session_repository = SessionRepository(database)
    market_gateway = GammaMarketGateway(
        base_url=settings.market_data.base_url,
        timeout=settings.market_data.timeout_seconds,
        page_size=settings.market_data.page_size,
        max_pages=settings.market_data.max_pages,
    )
    provider_gateway = OpenRouterGateway(
        api_key=settings.openrouter.api_key,
        base_url=settings.openrouter.base_url,
        timeout=settings.openrouter.timeout_seconds,
        referer=settings.openrouter.referer,
        app_title=settings.openrouter.app_title,
    )

    tracker = SessionTrackerUseCase(
        session_repository, options=settings.prediction.tracker_options()
    )
    dispatcher = PredictionDispatchUseCase(
        session_tracker=tracker,
        market_gateway=market_gateway,
        provider_gateway=provider_gateway,
        result_repository=PredictionResultRepository(database),
        options=settings.prediction.dispatch_options(),
    )
    recovery = SessionRecoveryUseCase(
        session_repository,
        dispatcher,
        options=settings.prediction.recovery_options(),
    )
    batch_management = BatchManagementUseCase(
        market_selection=MarketSelectionUseCase(
            market_gateway, max_top_count=settings.prediction.max_top_count
        ),
        session_tracker=tracker,
        orchestrator=CeleryBatchOrchestrator(),
        session_repository=session_repository,
    )
    return PipelineServices(
        database=database,
        dispatcher=dispatcher,
        recovery=recovery,
        batch_management=batch_management,
    )
