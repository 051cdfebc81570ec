from __future__ import annotations

from prediction_pipeline.application.dtos.health_dto import SystemHealthDTO
from prediction_pipeline.domain.entities.health import (
    DependencyStatus,
    SessionBacklog,
    ServiceStatus,
    SystemHealth,
)


def test_system_health_dto_from_domain() -> None:
    health = SystemHealth(
        status=ServiceStatus.UP,
        dependencies=[
            DependencyStatus(name="mongo", status=ServiceStatus.UP, latency_ms=1.5)
        ],
        backlog=SessionBacklog(pending=2, in_progress=1, stale=0),
    )

    dto = SystemHealthDTO.from_domain(health)

    assert dto.status is ServiceStatus.UP
    assert dto.dependencies[0].latency_ms == 1.5
    assert dto.dependencies[0].critical is True
    assert dto.backlog.pending == 2


def test_system_health_dto_without_backlog() -> None:
    health = SystemHealth(status=ServiceStatus.DOWN)

    assert SystemHealthDTO.from_domain(health).backlog is None
