from __future__ import annotations

from prediction_pipeline.domain.entities.health import (
    DependencyStatus,
    SessionBacklog,
    ServiceStatus,
    SystemHealth,
)


def _dep(name: str, status: ServiceStatus, critical: bool = True) -> DependencyStatus:
    return DependencyStatus(name=name, status=status, critical=critical)


def test_dependency_status_defaults_checked_at() -> None:
    status = _dep("mongo", ServiceStatus.UP)
    assert status.checked_at.tzinfo is not None
    assert status.critical is True


def test_aggregate_all_up() -> None:
    deps = [_dep("mongo", ServiceStatus.UP), _dep("redis", ServiceStatus.UP, False)]
    assert SystemHealth.aggregate(deps, SessionBacklog()) is ServiceStatus.UP


def test_aggregate_supporting_dependency_down_degrades() -> None:
    deps = [_dep("mongo", ServiceStatus.UP), _dep("redis", ServiceStatus.DOWN, False)]
    assert SystemHealth.aggregate(deps) is ServiceStatus.DEGRADED


def test_aggregate_critical_dependency_down() -> None:
    deps = [_dep("mongo", ServiceStatus.DOWN), _dep("redis", ServiceStatus.UP, False)]
    assert SystemHealth.aggregate(deps) is ServiceStatus.DOWN


def test_aggregate_stale_sessions_degrade() -> None:
    deps = [_dep("mongo", ServiceStatus.UP)]
    backlog = SessionBacklog(pending=0, in_progress=2, stale=1)
    assert SystemHealth.aggregate(deps, backlog) is ServiceStatus.DEGRADED
