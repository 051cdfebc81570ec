"""DTOs for system health responses."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from prediction_pipeline.domain.entities.health import (
    DependencyStatus,
    SessionBacklog,
    ServiceStatus,
    SystemHealth,
)


class DependencyStatusDTO(BaseModel):
    name: str = Field(description="Dependency identifier")
    status: ServiceStatus
    critical: bool = Field(description="Whether losing it takes the service down")
    message: Optional[str] = None
    checked_at: datetime
    latency_ms: Optional[float] = None

    @classmethod
    def from_domain(cls, status: DependencyStatus) -> "DependencyStatusDTO":
        return cls(
            name=status.name,
            status=status.status,
            critical=status.critical,
            message=status.message,
            checked_at=status.checked_at,
            latency_ms=status.latency_ms,
        )


class SessionBacklogDTO(BaseModel):
    pending: int = Field(description="Sessions waiting for a worker")
    in_progress: int = Field(description="Sessions currently leased")
    stale: int = Field(description="Leased sessions awaiting recovery")

    @classmethod
    def from_domain(cls, backlog: SessionBacklog) -> "SessionBacklogDTO":
        return cls(
            pending=backlog.pending,
            in_progress=backlog.in_progress,
            stale=backlog.stale,
        )


class SystemHealthDTO(BaseModel):
    """DTO representing the /health response payload."""

    status: ServiceStatus = Field(description="Overall service status")
    dependencies: List[DependencyStatusDTO] = Field(default_factory=list)
    backlog: Optional[SessionBacklogDTO] = Field(
        default=None, description="Absent when the session store is unreachable"
    )

    @classmethod
    def from_domain(cls, health: SystemHealth) -> "SystemHealthDTO":
        return cls(
            status=health.status,
            dependencies=[
                DependencyStatusDTO.from_domain(dep) for dep in health.dependencies
            ],
            backlog=(
                SessionBacklogDTO.from_domain(health.backlog)
                if health.backlog is not None
                else None
            ),
        )

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "degraded",
                "dependencies": [
                    {
                        "name": "mongo",
                        "status": "up",
                        "critical": True,
                        "message": "Session store reachable",
                        "checked_at": "2025-06-01T06:00:00Z",
                        "latency_ms": 4.2,
                    },
                    {
                        "name": "redis",
                        "status": "down",
                        "critical": False,
                        "message": "Task result backend unreachable: timeout",
                        "checked_at": "2025-06-01T06:00:00Z",
                        "latency_ms": 5003.1,
                    },
                ],
                "backlog": {"pending": 1, "in_progress": 2, "stale": 0},
            }
        }
    }
