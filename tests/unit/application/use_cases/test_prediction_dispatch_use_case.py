from __future__ import annotations

from typing import List

import pytest

from prediction_pipeline.application.models import DispatchOptions, TrackerOptions
from prediction_pipeline.application.dtos.session_dto import SessionSummaryDTO
from prediction_pipeline.application.use_cases import (
    prediction_dispatch_use_case as dispatch_module,
)
from prediction_pipeline.application.use_cases.prediction_dispatch_use_case import (
    PredictionDispatchUseCase,
)
from prediction_pipeline.application.use_cases.session_tracker import (
    SessionTrackerUseCase,
)
from prediction_pipeline.domain.entities.errors import (
    ProviderError,
    ProviderTransientError,
)
from prediction_pipeline.domain.entities.session import SessionStatus
from tests.conftest import (
    FakeMarketGateway,
    FakeProvider,
    RecordingLogger,
    make_market,
    no_sleep,
)


class _WorkerKilled(BaseException):
    """Simulates the worker process dying mid-batch."""


def _market_ids(count: int) -> List[str]:
    return [f"m{i:02d}" for i in range(count)]


@pytest.fixture()
def tracker(session_repository, clock) -> SessionTrackerUseCase:
    return SessionTrackerUseCase(
        session_repository,
        options=TrackerOptions(persistence_retries=0),
        clock=clock,
        sleep=no_sleep,
    )


def _dispatcher(tracker, result_repository, provider, market_ids, **options):
    gateway = FakeMarketGateway([make_market(m) for m in market_ids])
    return PredictionDispatchUseCase(
        session_tracker=tracker,
        market_gateway=gateway,
        provider_gateway=provider,
        result_repository=result_repository,
        options=DispatchOptions(**options),
        sleep=no_sleep,
    )


@pytest.mark.asyncio
async def test_all_markets_succeed(tracker, result_repository, session_repository):
    ids = _market_ids(4)
    provider = FakeProvider()
    dispatcher = _dispatcher(tracker, result_repository, provider, ids)
    session = await tracker.create_session(ids, "model")

    result = await dispatcher.run_batch(session.id)

    assert result.status is SessionStatus.COMPLETED
    assert (result.succeeded, result.failed, result.skipped) == (4, 0, 0)
    stored = await session_repository.get_by_id(session.id)
    assert sorted(stored.completed_market_ids) == ids
    assert stored.lease_owner is None
    assert len(await result_repository.list_by_session(session.id)) == 4


@pytest.mark.asyncio
async def test_concurrency_is_bounded(tracker, result_repository) -> None:
    ids = _market_ids(9)
    provider = FakeProvider(delay=0.01)
    dispatcher = _dispatcher(tracker, result_repository, provider, ids, concurrency=3)
    session = await tracker.create_session(ids, "model")

    await dispatcher.run_batch(session.id)

    assert provider.max_active == 3
    assert sorted(provider.calls) == ids


@pytest.mark.asyncio
async def test_timeout_is_retried_once_then_fails(
    tracker, result_repository, session_repository
) -> None:
    ids = ["slow", "fast"]
    provider = FakeProvider(script={"slow": ["hang", "hang"]})
    dispatcher = _dispatcher(
        tracker, result_repository, provider, ids, call_timeout_seconds=0.05
    )
    session = await tracker.create_session(ids, "model")

    result = await dispatcher.run_batch(session.id)

    assert provider.calls.count("slow") == 2
    assert result.status is SessionStatus.PARTIALLY_FAILED
    stored = await session_repository.get_by_id(session.id)
    assert stored.failed_markets == {"slow": "Prediction request timed out"}
    assert stored.completed_market_ids == ["fast"]


@pytest.mark.asyncio
async def test_transient_error_recovers_on_retry(tracker, result_repository) -> None:
    provider = FakeProvider(
        script={"a": [ProviderTransientError("OpenRouter rate limit exceeded")]}
    )
    dispatcher = _dispatcher(tracker, result_repository, provider, ["a"])
    session = await tracker.create_session(["a"], "model")

    result = await dispatcher.run_batch(session.id)

    assert result.status is SessionStatus.COMPLETED
    assert provider.calls == ["a", "a"]


@pytest.mark.asyncio
async def test_invalid_payload_and_provider_errors_are_not_retried(
    tracker, result_repository, session_repository
) -> None:
    ids = ["bad", "rejected"]
    provider = FakeProvider(
        script={"bad": ["not json"], "rejected": [ProviderError("API error 400")]}
    )
    dispatcher = _dispatcher(tracker, result_repository, provider, ids)
    session = await tracker.create_session(ids, "model")

    result = await dispatcher.run_batch(session.id)

    assert result.status is SessionStatus.FAILED
    assert provider.calls.count("bad") == 1
    assert provider.calls.count("rejected") == 1
    stored = await session_repository.get_by_id(session.id)
    assert stored.failed_markets == {
        "bad": "Invalid prediction response",
        "rejected": "Prediction provider error",
    }
    assert stored.error == "All 2 markets failed"


@pytest.mark.asyncio
async def test_missing_market_fails_after_retry(
    tracker, result_repository, session_repository
) -> None:
    provider = FakeProvider()
    dispatcher = _dispatcher(tracker, result_repository, provider, ["known"])
    session = await tracker.create_session(["known", "gone"], "model")

    result = await dispatcher.run_batch(session.id)

    assert result.status is SessionStatus.PARTIALLY_FAILED
    stored = await session_repository.get_by_id(session.id)
    assert stored.failed_markets == {"gone": "Market data unavailable"}
    assert "gone" not in provider.calls


@pytest.mark.asyncio
async def test_existing_result_skips_provider(
    tracker, result_repository, session_repository
) -> None:
    ids = ["a", "b"]
    provider = FakeProvider()
    dispatcher = _dispatcher(tracker, result_repository, provider, ids)
    session = await tracker.create_session(ids, "model")
    await dispatcher.run_batch(session.id)
    provider.calls.clear()

    # session row lost the outcome but the result row survived
    session_two = await tracker.create_session(ids, "model")
    for market_id in ids:
        stored = await result_repository.get(session.id, market_id)
        stored.session_id = session_two.id
        await result_repository.save(stored)

    result = await dispatcher.run_batch(session_two.id)

    assert provider.calls == []
    assert result.succeeded == 2
    assert result.status is SessionStatus.COMPLETED


@pytest.mark.asyncio
async def test_killed_worker_is_resumed_without_reprocessing(
    tracker, result_repository, session_repository, clock
) -> None:
    ids = _market_ids(10)

    async def kill_on_fourth(market_id: str, call_number: int) -> None:
        if call_number == 4:
            raise _WorkerKilled()

    provider = FakeProvider(on_call=kill_on_fourth)
    dispatcher = _dispatcher(tracker, result_repository, provider, ids, concurrency=1)
    session = await tracker.create_session(ids, "model")

    with pytest.raises(_WorkerKilled):
        await dispatcher.run_batch(session.id)

    stored = await session_repository.get_by_id(session.id)
    assert stored.status is SessionStatus.IN_PROGRESS
    assert stored.completed_market_ids == ids[:3]
    assert stored.lease_owner is not None

    provider.on_call = None
    provider.calls.clear()
    clock.advance(minutes=15)
    resumed = await dispatcher.resume(session.id, stale_before=clock.now)

    assert provider.calls == ids[3:]
    assert resumed.skipped == 3
    assert resumed.succeeded == 7
    assert resumed.status is SessionStatus.COMPLETED
    stored = await session_repository.get_by_id(session.id)
    assert stored.recovery_attempts == 1
    assert len(await result_repository.list_by_session(session.id)) == 10


@pytest.mark.asyncio
async def test_takeover_mid_run_stops_old_worker(
    tracker, result_repository, session_repository, clock
) -> None:
    ids = _market_ids(5)
    rival = SessionTrackerUseCase(session_repository, clock=clock, sleep=no_sleep)

    async def steal_on_second(market_id: str, call_number: int) -> None:
        if call_number == 2:
            clock.advance(minutes=30)
            await rival.mark_in_progress(
                session.id, stale_before=clock.now, owner="rival"
            )

    provider = FakeProvider(on_call=steal_on_second)
    dispatcher = _dispatcher(tracker, result_repository, provider, ids, concurrency=1)
    session = await tracker.create_session(ids, "model")

    result = await dispatcher.run_batch(session.id)

    assert result.lease_lost is True
    assert len(provider.calls) == 2
    stored = await session_repository.get_by_id(session.id)
    assert stored.lease_owner == "rival"
    assert stored.completed_market_ids == ids[:1]


@pytest.mark.asyncio
async def test_unexpected_error_releases_lease(
    tracker, result_repository, session_repository, monkeypatch
) -> None:
    provider = FakeProvider()
    dispatcher = _dispatcher(tracker, result_repository, provider, ["a"])
    session = await tracker.create_session(["a"], "model")

    async def explode(*args, **kwargs):
        raise RuntimeError("tracker bug")

    monkeypatch.setattr(tracker, "record_outcome", explode)

    with pytest.raises(RuntimeError):
        await dispatcher.run_batch(session.id)

    stored = await session_repository.get_by_id(session.id)
    assert stored.status is SessionStatus.IN_PROGRESS
    assert stored.lease_owner is None


@pytest.mark.asyncio
async def test_session_without_pending_markets_finalizes(
    tracker, result_repository
) -> None:
    provider = FakeProvider()
    dispatcher = _dispatcher(tracker, result_repository, provider, ["a"])
    session = await tracker.create_session(["a"], "model")
    lease = await tracker.mark_in_progress(session.id)
    await tracker.record_outcome(lease, "a")
    await tracker.release(lease)

    result = await dispatcher.run_batch(session.id)

    assert result.status is SessionStatus.COMPLETED
    assert result.skipped == 1
    assert provider.calls == []


def _results(fake_mongo_database):
    return fake_mongo_database.get_collection("prediction_results")


@pytest.mark.asyncio
async def test_result_write_is_retried(
    tracker, result_repository, session_repository, fake_mongo_database
) -> None:
    provider = FakeProvider()
    dispatcher = _dispatcher(tracker, result_repository, provider, ["m1"])
    session = await tracker.create_session(["m1"], "model")
    _results(fake_mongo_database).fail_on("update_one", times=1)

    result = await dispatcher.run_batch(session.id)

    assert result.status is SessionStatus.COMPLETED
    assert provider.calls == ["m1"]
    stored = await session_repository.get_by_id(session.id)
    assert stored.completed_market_ids == ["m1"]
    assert await result_repository.get(session.id, "m1") is not None


@pytest.mark.asyncio
async def test_result_write_gives_up_loudly(
    tracker, result_repository, session_repository, fake_mongo_database, monkeypatch
) -> None:
    recorder = RecordingLogger()
    monkeypatch.setattr(dispatch_module, "logger", recorder)
    provider = FakeProvider()
    dispatcher = _dispatcher(
        tracker, result_repository, provider, ["m1"], persistence_retries=2
    )
    session = await tracker.create_session(["m1"], "model")
    _results(fake_mongo_database).fail_on("update_one", times=3)

    result = await dispatcher.run_batch(session.id)

    assert result.status is SessionStatus.FAILED
    assert provider.calls == ["m1"]
    assert _results(fake_mongo_database).calls["update_one"] == 3
    assert recorder.levels("dispatcher.market.store_retry") == ["warning", "warning"]
    assert recorder.levels("dispatcher.market.store_failed") == ["critical"]
    stored = await session_repository.get_by_id(session.id)
    assert stored.failed_markets == {"m1": "Failed to store prediction result"}


@pytest.mark.asyncio
async def test_failure_details_stay_out_of_session_status(
    tracker, result_repository, session_repository
) -> None:
    leaked = "mongodb://admin:pw@db-internal:27017 choices"
    provider = FakeProvider(
        script={
            "m1": [KeyError(leaked)],
            "m2": [ProviderError(f"OpenRouter request failed: {leaked}")],
        }
    )
    dispatcher = _dispatcher(tracker, result_repository, provider, ["m1", "m2"])
    session = await tracker.create_session(["m1", "m2"], "model")

    await dispatcher.run_batch(session.id)

    summary = SessionSummaryDTO.from_domain(
        await session_repository.get_by_id(session.id)
    )
    assert summary.failures == {
        "m1": "Internal error",
        "m2": "Prediction provider error",
    }
    assert "db-internal" not in summary.model_dump_json()
