"""Dependency checks for the session store and the task result backend."""

from __future__ import annotations

import asyncio
from time import perf_counter
from typing import List, Optional

import redis.asyncio as aioredis

from prediction_pipeline.domain.entities.health import (
    DependencyStatus,
    ServiceStatus,
)
from prediction_pipeline.domain.ports.health_check import IHealthCheckService
from prediction_pipeline.infrastructure.database.mongo_database import MongoDatabase


def _elapsed_ms(start: float) -> float:
    return (perf_counter() - start) * 1000


class HealthCheckService(IHealthCheckService):
    """Ping MongoDB (critical) and the Celery result backend (supporting)."""

    def __init__(
        self,
        mongo_database: MongoDatabase,
        redis_url: Optional[str] = None,
        *,
        socket_timeout: float = 5.0,
    ) -> None:
        self._mongo_database = mongo_database
        self._redis_url = redis_url
        self._socket_timeout = socket_timeout

    async def check_dependencies(self) -> List[DependencyStatus]:
        checks = [self._check_session_store()]
        if self._redis_url:
            checks.append(self._check_result_backend())
        return list(await asyncio.gather(*checks))

    async def _check_session_store(self) -> DependencyStatus:
        start = perf_counter()
        try:
            await asyncio.to_thread(self._mongo_database.ping)
        except Exception as exc:
            return DependencyStatus(
                name="mongo",
                status=ServiceStatus.DOWN,
                message=f"Session store unreachable: {exc}",
                latency_ms=_elapsed_ms(start),
            )
        return DependencyStatus(
            name="mongo",
            status=ServiceStatus.UP,
            message="Session store reachable",
            latency_ms=_elapsed_ms(start),
        )

    async def _check_result_backend(self) -> DependencyStatus:
        start = perf_counter()
        client = aioredis.from_url(
            self._redis_url,
            socket_connect_timeout=self._socket_timeout,
            socket_timeout=self._socket_timeout,
        )
        try:
            await client.ping()
            status, message = ServiceStatus.UP, "Task result backend reachable"
        except Exception as exc:
            status, message = (
                ServiceStatus.DOWN,
                f"Task result backend unreachable: {exc}",
            )
        finally:
            await client.aclose()

        return DependencyStatus(
            name="redis",
            status=status,
            critical=False,
            message=message,
            latency_ms=_elapsed_ms(start),
        )
