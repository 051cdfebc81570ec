from __future__ import annotations

from datetime import timedelta

import pytest

from prediction_pipeline.application.use_cases.health_use_cases import (
    GetHealthStatusUseCase,
)
from prediction_pipeline.domain.entities.health import (
    DependencyStatus,
    ServiceStatus,
)
from prediction_pipeline.domain.entities.session import (
    PredictionSession,
    SessionStatus,
)
from tests.conftest import NOW, Clock


class _HealthService:
    def __init__(self, mongo: ServiceStatus, redis: ServiceStatus) -> None:
        self._statuses = [
            DependencyStatus(name="mongo", status=mongo),
            DependencyStatus(name="redis", status=redis, critical=False),
        ]

    async def check_dependencies(self):
        return list(self._statuses)


async def _store(repository, status: SessionStatus, updated_minutes_ago: int) -> None:
    session = PredictionSession(
        model_name="m", target_market_ids=["a"], status=status
    )
    session.created_at = session.updated_at = NOW - timedelta(
        minutes=updated_minutes_ago
    )
    await repository.create(session)


def _use_case(service, repository) -> GetHealthStatusUseCase:
    return GetHealthStatusUseCase(
        health_check_service=service,
        session_repository=repository,
        stale_after_minutes=10,
        now=Clock(NOW),
    )


@pytest.mark.asyncio
async def test_reports_backlog_and_up_status(session_repository) -> None:
    await _store(session_repository, SessionStatus.PENDING, 1)
    await _store(session_repository, SessionStatus.IN_PROGRESS, 2)
    await _store(session_repository, SessionStatus.COMPLETED, 60)

    dto = await _use_case(
        _HealthService(ServiceStatus.UP, ServiceStatus.UP), session_repository
    ).execute()

    assert dto.status is ServiceStatus.UP
    assert (dto.backlog.pending, dto.backlog.in_progress, dto.backlog.stale) == (
        1,
        1,
        0,
    )


@pytest.mark.asyncio
async def test_stale_session_degrades(session_repository) -> None:
    await _store(session_repository, SessionStatus.IN_PROGRESS, 30)

    dto = await _use_case(
        _HealthService(ServiceStatus.UP, ServiceStatus.UP), session_repository
    ).execute()

    assert dto.status is ServiceStatus.DEGRADED
    assert dto.backlog.stale == 1


@pytest.mark.asyncio
async def test_store_down_skips_backlog(session_repository, fake_mongo_database):
    dto = await _use_case(
        _HealthService(ServiceStatus.DOWN, ServiceStatus.UP), session_repository
    ).execute()

    assert dto.status is ServiceStatus.DOWN
    assert dto.backlog is None
    collection = fake_mongo_database.get_collection("prediction_sessions")
    assert collection.calls.get("count_documents", 0) == 0


@pytest.mark.asyncio
async def test_backlog_query_failure_is_tolerated(
    session_repository, fake_mongo_database
) -> None:
    fake_mongo_database.get_collection("prediction_sessions").fail_on(
        "count_documents"
    )

    dto = await _use_case(
        _HealthService(ServiceStatus.UP, ServiceStatus.DOWN), session_repository
    ).execute()

    assert dto.status is ServiceStatus.DEGRADED
    assert dto.backlog is None
