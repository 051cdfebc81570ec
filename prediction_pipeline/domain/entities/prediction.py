"""
Domain Entities - Prediction

Validated payloads returned by an AI model and the immutable result rows
stored for every market a session completes.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List
from uuid import UUID, uuid4


class ConfidenceLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass(frozen=True)
class PredictionPrompt:
    """System and user messages sent to the AI provider."""

    system_message: str
    user_message: str


@dataclass(frozen=True)
class PredictionPayload:
    """Structured prediction after strict validation."""

    outcomes: List[str]
    outcome_probabilities: List[float]
    reasoning: str
    confidence_level: ConfidenceLevel


@dataclass
class PredictionResult:
    """One stored prediction for a market within a session."""

    session_id: UUID
    market_id: str
    model_name: str
    outcomes: List[str]
    outcome_probabilities: List[float]
    reasoning: str
    confidence_level: ConfidenceLevel
    raw_response: str
    system_prompt: str = ""
    user_prompt: str = ""
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_payload(
        cls,
        *,
        session_id: UUID,
        market_id: str,
        model_name: str,
        payload: PredictionPayload,
        raw_response: str,
        prompt: PredictionPrompt,
    ) -> "PredictionResult":
        return cls(
            session_id=session_id,
            market_id=market_id,
            model_name=model_name,
            outcomes=list(payload.outcomes),
            outcome_probabilities=list(payload.outcome_probabilities),
            reasoning=payload.reasoning,
            confidence_level=payload.confidence_level,
            raw_response=raw_response,
            system_prompt=prompt.system_message,
            user_prompt=prompt.user_message,
        )
