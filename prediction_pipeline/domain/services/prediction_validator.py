"""Domain service helpers for validating AI prediction responses."""

import json
import math
import re
from typing import Annotated, Any, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from prediction_pipeline.domain.entities.errors import ProviderValidationError
from prediction_pipeline.domain.entities.prediction import (
    ConfidenceLevel,
    PredictionPayload,
)

PROBABILITY_SUM_TOLERANCE = 0.01

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", re.DOTALL)


class _PredictionSchema(BaseModel):
    """Wire schema of the JSON object the model must return."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    outcomes: List[Annotated[str, Field(min_length=1)]] = Field(..., min_length=1)
    outcome_probabilities: List[float] = Field(
        ..., alias="outcomesProbabilities", min_length=1
    )
    reasoning: str = Field(..., min_length=1)
    confidence_level: ConfidenceLevel


def strip_markdown_fence(text: str) -> str:
    """Remove a single surrounding markdown code fence, if any."""

    stripped = text.strip()
    match = _FENCE_PATTERN.match(stripped)
    return match.group(1).strip() if match else stripped


def _decode(raw: str) -> Any:
    try:
        return json.loads(strip_markdown_fence(raw))
    except json.JSONDecodeError as exc:
        raise ProviderValidationError(
            "Model response is not valid JSON", details={"error": str(exc)}
        ) from exc


def _check_probabilities(
    outcomes: List[str], probabilities: List[float], tolerance: float
) -> None:
    errors: List[str] = []

    if len(outcomes) != len(probabilities):
        errors.append(
            f"Got {len(outcomes)} outcomes but {len(probabilities)} probabilities."
        )
    for idx, value in enumerate(probabilities):
        if not math.isfinite(value) or not 0.0 <= value <= 1.0:
            errors.append(f"Probability #{idx + 1} ({value}) must be between 0 and 1.")

    total = sum(probabilities)
    if abs(total - 1.0) > tolerance:
        errors.append(f"Probabilities must sum to 1, got {total:.4f}.")

    if errors:
        raise ProviderValidationError(
            "Prediction probabilities are invalid", details={"errors": errors}
        )


def align_to_market_order(
    outcomes: List[str],
    probabilities: List[float],
    market_outcomes: Optional[Sequence[str]],
) -> Tuple[List[str], List[float]]:
    """
    Reorder predicted outcomes to match the market's outcome order.

    Labels that cannot be matched one-to-one leave the prediction untouched.
    """

    if not market_outcomes or len(market_outcomes) != len(outcomes):
        return outcomes, probabilities

    position = {label: idx for idx, label in enumerate(market_outcomes)}
    aligned_outcomes: List[Optional[str]] = [None] * len(outcomes)
    aligned_probs = [0.0] * len(outcomes)
    for label, prob in zip(outcomes, probabilities):
        idx = position.get(label)
        if idx is None or aligned_outcomes[idx] is not None:
            return outcomes, probabilities
        aligned_outcomes[idx] = label
        aligned_probs[idx] = prob

    return [str(o) for o in aligned_outcomes], aligned_probs


def parse_prediction_payload(
    raw: str,
    market_outcomes: Optional[Sequence[str]] = None,
    tolerance: float = PROBABILITY_SUM_TOLERANCE,
) -> PredictionPayload:
    """Parse and validate the raw text returned by the model.

    Raises:
        ProviderValidationError: If the response is malformed, incomplete, or
            its probabilities are out of range.
    """

    if not raw or not raw.strip():
        raise ProviderValidationError("Model returned an empty response")

    data = _decode(raw)
    if not isinstance(data, dict):
        raise ProviderValidationError("Model response must be a JSON object")

    try:
        parsed = _PredictionSchema.model_validate(data)
    except ValidationError as exc:
        raise ProviderValidationError(
            "Model response does not match the prediction schema",
            details={"errors": exc.errors(include_url=False)},
        ) from exc

    _check_probabilities(parsed.outcomes, parsed.outcome_probabilities, tolerance)
    outcomes, probabilities = align_to_market_order(
        parsed.outcomes, parsed.outcome_probabilities, market_outcomes
    )

    return PredictionPayload(
        outcomes=outcomes,
        outcome_probabilities=probabilities,
        reasoning=parsed.reasoning,
        confidence_level=parsed.confidence_level,
    )
