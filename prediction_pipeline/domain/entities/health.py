"""
Health domain entities.

A dependency is either critical (the session store) or supporting (the task
result backend). Losing a critical one takes the service down, losing a
supporting one only degrades it. The session backlog tells operators whether
the recovery sweep is keeping up.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence


class ServiceStatus(str, Enum):
    """Availability for a dependency or the whole service."""

    UP = "up"
    DEGRADED = "degraded"
    DOWN = "down"


@dataclass(slots=True)
class DependencyStatus:
    """Result of probing one external dependency."""

    name: str
    status: ServiceStatus
    critical: bool = True
    message: Optional[str] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    latency_ms: Optional[float] = None


@dataclass(slots=True)
class SessionBacklog:
    """Non-terminal sessions currently in the store."""

    pending: int = 0
    in_progress: int = 0
    stale: int = 0


@dataclass(slots=True)
class SystemHealth:
    """Aggregated health for the service."""

    status: ServiceStatus
    dependencies: List[DependencyStatus] = field(default_factory=list)
    backlog: Optional[SessionBacklog] = None

    @staticmethod
    def aggregate(
        dependencies: Sequence[DependencyStatus],
        backlog: Optional[SessionBacklog] = None,
    ) -> ServiceStatus:
        down = [d for d in dependencies if d.status is not ServiceStatus.UP]
        if any(d.critical for d in down):
            return ServiceStatus.DOWN
        if down or (backlog is not None and backlog.stale > 0):
            return ServiceStatus.DEGRADED
        return ServiceStatus.UP
