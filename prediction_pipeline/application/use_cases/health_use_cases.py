"""Use cases for the health endpoint."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from prediction_pipeline.application.dtos.health_dto import SystemHealthDTO
from prediction_pipeline.domain.entities.errors import PersistenceError
from prediction_pipeline.domain.entities.health import (
    SessionBacklog,
    ServiceStatus,
    SystemHealth,
)
from prediction_pipeline.domain.entities.session import SessionStatus
from prediction_pipeline.domain.ports.health_check import IHealthCheckService
from prediction_pipeline.domain.repositories.session_repository import (
    ISessionRepository,
)

logger = structlog.get_logger(__name__)


class GetHealthStatusUseCase:
    """Combine dependency checks with the session backlog."""

    def __init__(
        self,
        health_check_service: IHealthCheckService,
        session_repository: ISessionRepository,
        stale_after_minutes: float = 10.0,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._health_check_service = health_check_service
        self._session_repository = session_repository
        self._stale_after = timedelta(minutes=stale_after_minutes)
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def execute(self) -> SystemHealthDTO:
        dependencies = await self._health_check_service.check_dependencies()

        backlog = None
        store_up = all(
            d.status is ServiceStatus.UP for d in dependencies if d.name == "mongo"
        )
        if store_up:
            backlog = await self._session_backlog()

        health = SystemHealth(
            status=SystemHealth.aggregate(dependencies, backlog),
            dependencies=dependencies,
            backlog=backlog,
        )
        return SystemHealthDTO.from_domain(health)

    async def _session_backlog(self) -> Optional[SessionBacklog]:
        repository = self._session_repository
        try:
            return SessionBacklog(
                pending=await repository.count_sessions(SessionStatus.PENDING),
                in_progress=await repository.count_sessions(SessionStatus.IN_PROGRESS),
                stale=await repository.count_sessions(
                    SessionStatus.IN_PROGRESS,
                    updated_before=self._now() - self._stale_after,
                ),
            )
        except PersistenceError as e:
            logger.warning("health.backlog.unavailable", error=str(e))
            return None
