from __future__ import annotations

from prediction_pipeline.application.dtos.session_dto import SessionSummaryDTO
from prediction_pipeline.domain.entities.session import (
    PredictionSession,
    SessionStatus,
)


def test_summary_from_domain() -> None:
    session = PredictionSession(
        model_name="m",
        status=SessionStatus.IN_PROGRESS,
        target_market_ids=["a", "b", "c"],
    )
    session.record_success("a")
    session.record_failure("b", "Prediction request timed out")

    summary = SessionSummaryDTO.from_domain(session)

    assert summary.total_markets == 3
    assert summary.completed_markets == 1
    assert summary.failed_markets == 1
    assert summary.progress == 66.67
    assert summary.failures == {"b": "Prediction request timed out"}
    dumped = summary.model_dump(by_alias=True)
    assert "totalMarkets" in dumped and "recoveryAttempts" in dumped
