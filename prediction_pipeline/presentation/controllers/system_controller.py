"""System endpoints exposing health."""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, HTTPException, Response, status

from prediction_pipeline.application.dtos.health_dto import SystemHealthDTO
from prediction_pipeline.application.use_cases.health_use_cases import (
    GetHealthStatusUseCase,
)
from prediction_pipeline.domain.entities.health import ServiceStatus
from prediction_pipeline.shared import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["System"])


@router.get(
    "/health",
    response_model=SystemHealthDTO,
    summary="Service health",
    description="""
    Check MongoDB and the Celery result backend and report the session backlog.
    Responds 503 when the session store is down so load balancers can drain
    the instance; a degraded service still answers 200.
    """,
)
@inject
async def health(
    response: Response,
    get_health_status_use_case: GetHealthStatusUseCase = Depends(
        Provide["get_health_status_use_case"]
    ),
) -> SystemHealthDTO:
    try:
        health_status = await get_health_status_use_case.execute()
    except Exception as exc:
        logger.error("health.check.failure", error=str(exc), exc_info=exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to retrieve system health status",
        ) from exc

    if health_status.status is ServiceStatus.DOWN:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    logger.debug("health.check.completed", status=health_status.status.value)
    return health_status
