#!/usr/bin/env python3
"""
Worker Entry Point - Main Layer

This module serves as the entry point for the Celery worker.
Similar to app.py, it initializes logging and settings before starting the
worker. Both API and Worker are application entry points that belong to the
Main layer.
"""

from typing import List, Optional

from prediction_pipeline.main.config import get_settings
from prediction_pipeline.shared import (
    configure_logging,
    get_logger,
    update_logging_from_settings,
)
from prediction_pipeline.shared.consts import BATCH_QUEUE, RECOVERY_QUEUE

configure_logging()

settings = get_settings()

update_logging_from_settings(settings)

logger = get_logger(__name__)


def create_worker():
    """
    Configure and return the Celery worker.

    Similar to create_app() in app.py, this function builds the Celery app
    from the loaded settings.
    """
    settings = get_settings()

    from prediction_pipeline.infrastructure.services.celery_config import (
        create_celery_app,
    )

    worker_app = create_celery_app(
        broker_url=settings.celery.broker_url,
        backend_url=settings.celery.result_backend_url,
    )

    logger.info(
        "Configuring Celery worker",
        broker_url=settings.celery.broker_url,
        backend_url=settings.celery.result_backend_url,
        app_name=worker_app.main,
    )

    return worker_app


def worker_arguments(concurrency: Optional[int] = None) -> List[str]:
    """Command line used to start the worker on both pipeline queues."""
    settings = get_settings()
    return [
        "worker",
        f"--loglevel={settings.logging.level.value.lower()}",
        f"--queues={BATCH_QUEUE},{RECOVERY_QUEUE}",
        f"--concurrency={concurrency or 2}",
    ]


def main():
    """Main entry point for Celery worker."""

    logger.info("Starting Celery worker")

    worker_app = create_worker()
    worker_app.worker_main(worker_arguments())


if __name__ == "__main__":
    main()
