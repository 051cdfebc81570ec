from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from prediction_pipeline.main.worker import create_worker, main, worker_arguments


class _StubCeleryApp:
    def __init__(self) -> None:
        self.main = "prediction_worker"
        self.worker_main = MagicMock()


@pytest.fixture(autouse=True)
def patch_create_celery(monkeypatch):
    monkeypatch.setattr(
        "prediction_pipeline.infrastructure.services.celery_config.create_celery_app",
        lambda **kwargs: _StubCeleryApp(),
    )


def test_create_worker_uses_settings() -> None:
    worker_app = create_worker()
    assert worker_app.main == "prediction_worker"


def test_worker_listens_on_both_queues() -> None:
    args = worker_arguments()
    assert "--queues=prediction_batches,session_recovery" in args


def test_main_invokes_worker(monkeypatch) -> None:
    stub_app = _StubCeleryApp()
    monkeypatch.setattr(
        "prediction_pipeline.main.worker.create_worker", lambda: stub_app
    )

    main()

    stub_app.worker_main.assert_called_once()
