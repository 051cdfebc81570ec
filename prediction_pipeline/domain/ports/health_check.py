"""Port for probing the external dependencies of the service."""

from __future__ import annotations

from typing import List, Protocol

from prediction_pipeline.domain.entities.health import DependencyStatus


class IHealthCheckService(Protocol):
    """Checks every dependency the pipeline needs."""

    async def check_dependencies(self) -> List[DependencyStatus]:
        """Return one status per dependency, never raising."""
        ...
