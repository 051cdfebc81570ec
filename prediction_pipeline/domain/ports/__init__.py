"""Domain ports package."""

from .batch_orchestrator import IBatchOrchestrator
from .health_check import IHealthCheckService

__all__ = ["IBatchOrchestrator", "IHealthCheckService"]
