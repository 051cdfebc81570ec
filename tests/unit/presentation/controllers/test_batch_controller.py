from __future__ import annotations

from typing import cast
from uuid import uuid4

import pytest
from fastapi import HTTPException

from prediction_pipeline.application.dtos.batch_dto import (
    RecoveryAcceptedDTO,
    TriggerBatchRequestDTO,
    TriggerBatchResponseDTO,
)
from prediction_pipeline.application.use_cases.batch_management_use_case import (
    BatchManagementUseCase,
    BatchTriggerError,
)
from prediction_pipeline.presentation.controllers.batch_controller import (
    generate_batch_predictions,
    session_recovery,
)


class _BatchUseCase:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = []

    async def trigger(self, request, owner_id=None):
        self.calls.append((request, owner_id))
        if self.error:
            raise self.error
        return TriggerBatchResponseDTO(message="started", session_id=uuid4())

    async def trigger_recovery(self):
        if self.error:
            raise self.error
        return RecoveryAcceptedDTO(task_id="t-1")


def _use_case(error=None) -> BatchManagementUseCase:
    return cast(BatchManagementUseCase, _BatchUseCase(error))


@pytest.mark.asyncio
async def test_generate_uses_defaults_when_body_missing() -> None:
    use_case = _use_case()

    response = await generate_batch_predictions(
        request=None, x_user_id="u1", batch_use_case=use_case
    )

    assert response.accepted is True
    request, owner = use_case.calls[0]
    assert request == TriggerBatchRequestDTO()
    assert owner == "u1"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, status",
    [
        (BatchTriggerError("Market data is currently unavailable"), 503),
        (BatchTriggerError("top_count must be greater than 0", retryable=False), 400),
        (RuntimeError("boom"), 500),
    ],
)
async def test_generate_maps_errors(error, status) -> None:
    with pytest.raises(HTTPException) as excinfo:
        await generate_batch_predictions(
            request=TriggerBatchRequestDTO(),
            x_user_id=None,
            batch_use_case=_use_case(error),
        )

    assert excinfo.value.status_code == status
    assert "boom" not in str(excinfo.value.detail)


@pytest.mark.asyncio
async def test_session_recovery_accepts() -> None:
    response = await session_recovery(batch_use_case=_use_case())

    assert response.accepted is True
    assert response.task_id == "t-1"


@pytest.mark.asyncio
async def test_session_recovery_unavailable() -> None:
    with pytest.raises(HTTPException) as excinfo:
        await session_recovery(
            batch_use_case=_use_case(BatchTriggerError("Failed to queue"))
        )

    assert excinfo.value.status_code == 503
