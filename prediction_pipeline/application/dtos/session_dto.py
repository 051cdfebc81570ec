"""Application DTOs - Prediction Sessions."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from prediction_pipeline.domain.entities.session import (
    PredictionSession,
    SessionStatus,
)


class SessionSummaryDTO(BaseModel):
    """DTO describing the status of a prediction session."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    status: SessionStatus
    model_name: str
    total_markets: int
    completed_markets: int
    failed_markets: int
    progress: float = Field(description="Share of markets with an outcome (0-100)")
    failures: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None
    recovery_attempts: int = 0
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, session: PredictionSession) -> "SessionSummaryDTO":
        return cls(
            id=session.id,
            status=session.status,
            model_name=session.model_name,
            total_markets=len(session.target_market_ids),
            completed_markets=len(session.completed_market_ids),
            failed_markets=len(session.failed_markets),
            progress=round(session.get_progress(), 2),
            failures=dict(session.failed_markets),
            error=session.error,
            recovery_attempts=session.recovery_attempts,
            created_at=session.created_at,
            updated_at=session.updated_at,
            completed_at=session.completed_at,
        )


class SessionListDTO(BaseModel):
    """Page of session summaries."""

    sessions: List[SessionSummaryDTO] = Field(default_factory=list)
    skip: int = 0
    limit: int = 50
