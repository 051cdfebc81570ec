"""
Dependency container injection module - Main Layer

This module implements the dependency injection container
to simplify the management and lifecycle of dependencies
in the application.
"""

from contextlib import asynccontextmanager

from dependency_injector import containers, providers

from prediction_pipeline.application.models import (
    DispatchOptions,
    RecoveryOptions,
    TrackerOptions,
)
from prediction_pipeline.application.use_cases.batch_management_use_case import (
    BatchManagementUseCase,
)
from prediction_pipeline.application.use_cases.health_use_cases import (
    GetHealthStatusUseCase,
)
from prediction_pipeline.application.use_cases.market_selection_use_case import (
    MarketSelectionUseCase,
)
from prediction_pipeline.application.use_cases.prediction_dispatch_use_case import (
    PredictionDispatchUseCase,
)
from prediction_pipeline.application.use_cases.session_recovery_use_case import (
    SessionRecoveryUseCase,
)
from prediction_pipeline.application.use_cases.session_tracker import (
    SessionTrackerUseCase,
)
from prediction_pipeline.infrastructure.database import MongoDatabase
from prediction_pipeline.infrastructure.gateways.gamma_market_gateway import (
    GammaMarketGateway,
)
from prediction_pipeline.infrastructure.gateways.openrouter_gateway import (
    OpenRouterGateway,
)
from prediction_pipeline.infrastructure.repositories.prediction_result_repository import (  # noqa: E501
    PredictionResultRepository,
)
from prediction_pipeline.infrastructure.repositories.session_repository import (
    SessionRepository,
)
from prediction_pipeline.infrastructure.services.batch_orchestrator import (
    CeleryBatchOrchestrator,
)
from prediction_pipeline.infrastructure.services.health_check_service import (
    HealthCheckService,
)
from prediction_pipeline.shared import get_logger

from .config import AppSettings

logger = get_logger(__name__)


class AppContainer(containers.DeclarativeContainer):
    """Composition Root using dependecy-injector."""

    wiring_config = containers.WiringConfiguration(packages=["..presentation"])

    # Settings
    config = providers.Configuration()

    # Infrastructure
    mongo_database = providers.Singleton(
        MongoDatabase,
        mongo_uri=config.database.mongo_uri,
        db_name=config.database.database_name,
    )

    session_repository = providers.Singleton(
        SessionRepository,
        database=mongo_database,
    )

    prediction_result_repository = providers.Singleton(
        PredictionResultRepository,
        database=mongo_database,
    )

    batch_orchestrator = providers.Singleton(CeleryBatchOrchestrator)

    # Gateways
    market_gateway = providers.Singleton(
        GammaMarketGateway,
        base_url=config.market_data.base_url,
        timeout=config.market_data.timeout_seconds,
        page_size=config.market_data.page_size,
        max_pages=config.market_data.max_pages,
    )

    provider_gateway = providers.Singleton(
        OpenRouterGateway,
        api_key=config.openrouter.api_key,
        base_url=config.openrouter.base_url,
        timeout=config.openrouter.timeout_seconds,
        referer=config.openrouter.referer,
        app_title=config.openrouter.app_title,
    )

    health_check_service = providers.Singleton(
        HealthCheckService,
        mongo_database=mongo_database,
        redis_url=config.celery.result_backend_url,
    )

    # Tuning
    tracker_options = providers.Singleton(
        TrackerOptions,
        lease_ttl_seconds=config.prediction.lease_ttl_seconds,
        persistence_retries=config.prediction.persistence_retries,
        persistence_backoff_seconds=config.prediction.persistence_backoff_seconds,
    )

    dispatch_options = providers.Singleton(
        DispatchOptions,
        concurrency=config.prediction.concurrency,
        call_timeout_seconds=config.prediction.call_timeout_seconds,
        max_retries=config.prediction.max_retries,
        retry_backoff_seconds=config.prediction.retry_backoff_seconds,
        retry_backoff_max_seconds=config.prediction.retry_backoff_max_seconds,
        probability_sum_tolerance=config.prediction.probability_sum_tolerance,
        persistence_retries=config.prediction.persistence_retries,
        persistence_backoff_seconds=config.prediction.persistence_backoff_seconds,
    )

    recovery_options = providers.Singleton(
        RecoveryOptions,
        stale_after_minutes=config.prediction.stale_after_minutes,
        batch_size=config.prediction.recovery_batch_size,
        max_recovery_attempts=config.prediction.max_recovery_attempts,
        cleanup_after_hours=config.prediction.cleanup_after_hours,
        pending_expiry_hours=config.prediction.pending_expiry_hours,
    )

    # Application (use cases)
    session_tracker = providers.Singleton(
        SessionTrackerUseCase,
        session_repository=session_repository,
        options=tracker_options,
    )

    market_selection_use_case = providers.Factory(
        MarketSelectionUseCase,
        market_gateway=market_gateway,
        max_top_count=config.prediction.max_top_count,
    )

    prediction_dispatch_use_case = providers.Factory(
        PredictionDispatchUseCase,
        session_tracker=session_tracker,
        market_gateway=market_gateway,
        provider_gateway=provider_gateway,
        result_repository=prediction_result_repository,
        options=dispatch_options,
    )

    session_recovery_use_case = providers.Factory(
        SessionRecoveryUseCase,
        session_repository=session_repository,
        dispatcher=prediction_dispatch_use_case,
        options=recovery_options,
    )

    batch_management_use_case = providers.Factory(
        BatchManagementUseCase,
        market_selection=market_selection_use_case,
        session_tracker=session_tracker,
        orchestrator=batch_orchestrator,
        session_repository=session_repository,
    )

    get_health_status_use_case = providers.Factory(
        GetHealthStatusUseCase,
        health_check_service=health_check_service,
        session_repository=session_repository,
        stale_after_minutes=config.prediction.stale_after_minutes,
    )


# -------------------------
# Global Container Instance
# -------------------------
_app_container: AppContainer | None = None


def init_container(settings: AppSettings) -> AppContainer:
    """Initialize global container with application settings."""

    global _app_container

    container = AppContainer()
    container.config.from_pydantic(settings)
    _app_container = container
    return container


def get_container() -> AppContainer:
    """Get the initialized global container."""

    if _app_container is None:
        raise RuntimeError("Container has not been initialized yet")

    return _app_container


@asynccontextmanager
async def app_lifespan():
    """
    Centralized lifecycle management for external resources.

    Creates the session store indexes on startup and closes the MongoDB
    client on shutdown.
    """
    container = get_container()
    mongo_database = container.mongo_database()

    try:
        logger.info("container.mongo.ensure_connection")
        await mongo_database.create_indexes()

        logger.info("container.resources.initialized")
        yield container

    finally:
        logger.info("container.mongo.close")
        mongo_database.close()

        logger.info("container.resources.shutdown")
