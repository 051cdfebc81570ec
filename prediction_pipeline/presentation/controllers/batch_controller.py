"""
Presentation Layer - Batch Controller

Scheduler-facing endpoints that start batch generation and session recovery.
Both are protected by the shared cron secret and return as soon as the work is
queued.
"""

from typing import Optional

import structlog
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Body, Depends, Header, HTTPException, status

from prediction_pipeline.application.dtos.batch_dto import (
    RecoveryAcceptedDTO,
    TriggerBatchRequestDTO,
    TriggerBatchResponseDTO,
)
from prediction_pipeline.application.use_cases.batch_management_use_case import (
    BatchManagementUseCase,
    BatchTriggerError,
)
from prediction_pipeline.main.container import AppContainer
from prediction_pipeline.presentation.dependencies import verify_cron_secret

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)]
)


@router.post(
    "/generate-batch-predictions",
    response_model=TriggerBatchResponseDTO,
    summary="Start batch prediction generation",
    description="""
    Select the top markets by volume resolving around the target date, create a
    prediction session and queue it for the workers. Every body field is
    optional.
    """,
)
@inject
async def generate_batch_predictions(
    request: Optional[TriggerBatchRequestDTO] = Body(default=None),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    batch_use_case: BatchManagementUseCase = Depends(
        Provide[AppContainer.batch_management_use_case]
    ),
) -> TriggerBatchResponseDTO:
    """Trigger a batch and return the new session id."""
    try:
        return await batch_use_case.trigger(
            request or TriggerBatchRequestDTO(), owner_id=x_user_id
        )

    except BatchTriggerError as e:
        if not e.retryable:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid batch parameters",
            )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Batch prediction generation is temporarily unavailable",
        )

    except Exception as e:
        logger.error("batch.trigger.unexpected_error", error=str(e), exc_info=e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post(
    "/session-recovery",
    response_model=RecoveryAcceptedDTO,
    summary="Recover stuck sessions",
    description="Queue a recovery sweep followed by cleanup of old sessions.",
)
@inject
async def session_recovery(
    batch_use_case: BatchManagementUseCase = Depends(
        Provide[AppContainer.batch_management_use_case]
    ),
) -> RecoveryAcceptedDTO:
    """Queue the recovery task."""
    try:
        return await batch_use_case.trigger_recovery()

    except BatchTriggerError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session recovery is temporarily unavailable",
        )

    except Exception as e:
        logger.error("recovery.trigger.unexpected_error", error=str(e), exc_info=e)
        raise HTTPException(status_code=500, detail="Internal server error")
