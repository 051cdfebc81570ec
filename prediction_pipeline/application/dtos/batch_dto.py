"""
Application DTOs - Batch Predictions

Request/response contracts for triggering batches and recovery sweeps, and
the summaries returned by background runs.
"""

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from prediction_pipeline.domain.entities.session import SessionStatus
from prediction_pipeline.shared.consts import DEFAULT_MODEL_NAME


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TriggerBatchRequestDTO(_CamelModel):
    """DTO for a batch generation trigger. Every field is optional."""

    top_markets_count: int = Field(
        default=20, gt=0, description="Number of markets to select"
    )
    end_date_range_hours: float = Field(
        default=24, gt=0, description="Width of the resolution window in hours"
    )
    target_days_from_now: float = Field(
        default=7, ge=0, description="Days from now at which the window is centred"
    )
    model_name: str = Field(
        default=DEFAULT_MODEL_NAME, min_length=1, description="AI model identifier"
    )
    category_balance: bool = Field(
        default=False, description="Spread equal-volume picks across categories"
    )
    exclude_categories: List[str] = Field(
        default_factory=list, description="Categories never selected"
    )
    additional_context: Optional[str] = Field(
        default=None, description="Extra context appended to every prompt"
    )


class TriggerBatchResponseDTO(_CamelModel):
    """DTO returned once a batch has been handed to the workers."""

    accepted: bool = True
    message: str
    session_id: Optional[UUID] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "accepted": True,
                "message": "Batch prediction generation started for 20 markets",
                "sessionId": "7b6f4b44-3c5e-4c1e-9f57-2a0a7b8c0d11",
            }
        },
    )


class RecoveryAcceptedDTO(_CamelModel):
    """DTO returned once a recovery sweep has been queued."""

    accepted: bool = True
    message: str = "Session recovery queued"
    task_id: Optional[str] = None


class BatchRunResultDTO(BaseModel):
    """Summary of one dispatcher run over a session."""

    session_id: UUID
    status: SessionStatus
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    lease_lost: bool = False


class RecoveryResultDTO(BaseModel):
    """Summary of one recovery sweep."""

    processed: int = 0
    recovered: int = 0
    abandoned: int = 0
    skipped: int = 0
    failed: int = 0
    errors: Dict[str, str] = Field(default_factory=dict)


class CleanupResultDTO(BaseModel):
    """Summary of one cleanup pass."""

    deleted: int = 0
    expired: int = 0
