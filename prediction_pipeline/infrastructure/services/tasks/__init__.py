"""Celery task implementations for infrastructure services."""

from .base import CallbackTask, PipelineServices, build_pipeline, logger
from .batch import generate_scheduled_batches, run_prediction_batch
from .recovery import recover_prediction_sessions

__all__ = [
    "CallbackTask",
    "PipelineServices",
    "build_pipeline",
    "generate_scheduled_batches",
    "logger",
    "recover_prediction_sessions",
    "run_prediction_batch",
]
