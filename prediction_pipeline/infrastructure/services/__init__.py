"""Infrastructure services package."""

from . import tasks
from .batch_orchestrator import CeleryBatchOrchestrator
from .celery_config import celery_app
from .health_check_service import HealthCheckService

__all__ = ["celery_app", "tasks", "HealthCheckService", "CeleryBatchOrchestrator"]
