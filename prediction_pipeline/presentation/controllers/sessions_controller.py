"""
Presentation Layer - Sessions Controller

Read-only views of prediction sessions, scoped to the calling user.
"""

from uuid import UUID

import structlog
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, HTTPException, Query

from prediction_pipeline.application.dtos.session_dto import (
    SessionListDTO,
    SessionSummaryDTO,
)
from prediction_pipeline.application.use_cases.batch_management_use_case import (
    BatchManagementUseCase,
)
from prediction_pipeline.main.container import AppContainer
from prediction_pipeline.presentation.dependencies import require_user_id

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/prediction-sessions", tags=["Sessions"])


@router.get(
    "",
    response_model=SessionListDTO,
    summary="List prediction sessions",
    description="List the caller's prediction sessions, newest first.",
)
@inject
async def list_sessions(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(
        50, ge=1, le=200, description="Maximum number of records to return"
    ),
    user_id: str = Depends(require_user_id),
    batch_use_case: BatchManagementUseCase = Depends(
        Provide[AppContainer.batch_management_use_case]
    ),
) -> SessionListDTO:
    """List sessions owned by the caller."""
    try:
        return await batch_use_case.list_sessions(
            owner_id=user_id, skip=skip, limit=limit
        )

    except Exception as e:
        logger.error("sessions.list.unexpected_error", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get(
    "/{session_id}",
    response_model=SessionSummaryDTO,
    summary="Get prediction session status",
    description="""
    Status and progress of a prediction session: counts of completed and
    failed markets, per-market error summaries and timestamps.
    """,
)
@inject
async def get_session(
    session_id: UUID,
    user_id: str = Depends(require_user_id),
    batch_use_case: BatchManagementUseCase = Depends(
        Provide[AppContainer.batch_management_use_case]
    ),
) -> SessionSummaryDTO:
    """Get one of the caller's sessions."""
    try:
        result = await batch_use_case.get_status(session_id, owner_id=user_id)

        if not result:
            raise HTTPException(
                status_code=404, detail=f"Prediction session {session_id} not found"
            )

        return result

    except HTTPException:
        raise

    except Exception as e:
        logger.error(
            "sessions.get.unexpected_error", session_id=str(session_id), error=str(e)
        )
        raise HTTPException(status_code=500, detail="Internal server error")
