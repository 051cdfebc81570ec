"""
Application Use Cases - Prediction Dispatch

Runs the predictions of one session with a fixed number of concurrent
workers. Each market outcome is written through the session tracker as soon
as it is known, so a crash loses at most the market in flight.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Tuple
from uuid import UUID

import structlog

from prediction_pipeline.application.dtos.batch_dto import BatchRunResultDTO
from prediction_pipeline.application.models import DispatchOptions
from prediction_pipeline.application.use_cases.session_tracker import (
    SessionTrackerUseCase,
)
from prediction_pipeline.domain.entities.errors import (
    DataUnavailableError,
    LeaseLostError,
    PersistenceError,
    ProviderError,
    ProviderTransientError,
    ProviderValidationError,
)
from prediction_pipeline.domain.entities.prediction import (
    PredictionPayload,
    PredictionPrompt,
    PredictionResult,
)
from prediction_pipeline.domain.entities.session import (
    PredictionSession,
    SessionLease,
    SessionStatus,
)
from prediction_pipeline.domain.gateways.market_data_gateway import IMarketDataGateway
from prediction_pipeline.domain.gateways.prediction_provider_gateway import (
    IPredictionProviderGateway,
)
from prediction_pipeline.domain.repositories.prediction_result_repository import (
    IPredictionResultRepository,
)
from prediction_pipeline.domain.services import (
    MarketAttempt,
    RetryPolicy,
    build_prediction_prompt,
    parse_prediction_payload,
)

logger = structlog.get_logger(__name__)

_RETRYABLE = (ProviderTransientError, DataUnavailableError, asyncio.TimeoutError)


@dataclass
class _RunState:
    succeeded: int = 0
    failed: int = 0
    lease_lost: bool = False


# Stored per market and shown to users; the detailed error only goes to logs.
TIMEOUT_FAILURE = "Prediction request timed out"
MARKET_DATA_FAILURE = "Market data unavailable"
INVALID_RESPONSE_FAILURE = "Invalid prediction response"
PROVIDER_FAILURE = "Prediction provider error"
STORAGE_FAILURE = "Failed to store prediction result"
INTERNAL_FAILURE = "Internal error"


def _summarize(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return TIMEOUT_FAILURE
    if isinstance(exc, DataUnavailableError):
        return MARKET_DATA_FAILURE
    if isinstance(exc, ProviderValidationError):
        return INVALID_RESPONSE_FAILURE
    if isinstance(exc, ProviderError):
        return PROVIDER_FAILURE
    return INTERNAL_FAILURE


def _detail(exc: BaseException) -> str:
    return getattr(exc, "message", None) or str(exc) or type(exc).__name__


class PredictionDispatchUseCase:
    """Use case that generates the predictions of a session."""

    def __init__(
        self,
        session_tracker: SessionTrackerUseCase,
        market_gateway: IMarketDataGateway,
        provider_gateway: IPredictionProviderGateway,
        result_repository: IPredictionResultRepository,
        options: Optional[DispatchOptions] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._tracker = session_tracker
        self._market_gateway = market_gateway
        self._provider = provider_gateway
        self._results = result_repository
        self._options = options or DispatchOptions()
        self._sleep = sleep
        self._policy = RetryPolicy(
            max_retries=self._options.max_retries,
            backoff_base_seconds=self._options.retry_backoff_seconds,
            backoff_max_seconds=self._options.retry_backoff_max_seconds,
        )

    async def run_batch(self, session_id: UUID) -> BatchRunResultDTO:
        """Lease a fresh session and generate its predictions."""
        lease = await self._tracker.mark_in_progress(session_id)
        return await self._execute(lease)

    async def resume(
        self, session_id: UUID, stale_before: Optional[datetime] = None
    ) -> BatchRunResultDTO:
        """Take over a stalled session and process its remaining markets."""
        lease = await self._tracker.mark_in_progress(
            session_id, stale_before=stale_before, count_recovery=True
        )
        return await self._execute(lease)

    async def _execute(self, lease: SessionLease) -> BatchRunResultDTO:
        session = self._tracker.snapshot(lease)
        pending = session.remaining_market_ids()
        skipped = len(session.target_market_ids) - len(pending)
        run = _RunState()

        logger.info(
            "dispatcher.run.started",
            session_id=str(session.id),
            model_name=session.model_name,
            pending=len(pending),
            skipped=skipped,
            concurrency=self._options.concurrency,
        )

        queue: "asyncio.Queue[str]" = asyncio.Queue()
        for market_id in pending:
            queue.put_nowait(market_id)
        stop = asyncio.Event()

        worker_count = min(max(self._options.concurrency, 1), len(pending))
        workers = [
            asyncio.create_task(self._worker(lease, session, queue, stop, run))
            for _ in range(worker_count)
        ]
        try:
            await asyncio.gather(*workers)
        except Exception:
            await self._cancel(workers)
            logger.exception("dispatcher.run.aborted", session_id=str(session.id))
            await self._tracker.release(lease)
            raise
        except BaseException:
            await self._cancel(workers)
            raise

        status = SessionStatus.IN_PROGRESS
        if not run.lease_lost:
            try:
                status = (await self._tracker.finalize(lease)).status
            except LeaseLostError:
                run.lease_lost = True

        if run.lease_lost:
            logger.warning("dispatcher.run.lease_lost", session_id=str(session.id))

        result = BatchRunResultDTO(
            session_id=session.id,
            status=status,
            total=len(session.target_market_ids),
            succeeded=run.succeeded,
            failed=run.failed,
            skipped=skipped,
            lease_lost=run.lease_lost,
        )
        logger.info("dispatcher.run.finished", **result.model_dump(mode="json"))
        return result

    @staticmethod
    async def _cancel(workers) -> None:
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)

    async def _worker(
        self,
        lease: SessionLease,
        session: PredictionSession,
        queue: "asyncio.Queue[str]",
        stop: asyncio.Event,
        run: _RunState,
    ) -> None:
        while not stop.is_set():
            try:
                market_id = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            error = await self._process_market(session, market_id)
            await self._record(lease, market_id, error, stop, run)

    async def _process_market(
        self, session: PredictionSession, market_id: str
    ) -> Optional[str]:
        """Generate and store one prediction. Returns an error summary on failure."""
        log = logger.bind(session_id=str(session.id), market_id=market_id)

        try:
            existing = await self._results.get(session.id, market_id)
        except PersistenceError as exc:
            # saving is insert-if-absent, so a missed lookup cannot duplicate
            log.warning("dispatcher.market.lookup_failed", error=exc.message)
            existing = None
        if existing is not None:
            log.info("dispatcher.market.already_stored")
            return None

        attempt = MarketAttempt(market_id=market_id, policy=self._policy)
        while True:
            attempt.start()
            try:
                prompt, raw, payload = await self._predict(session, market_id)
            except _RETRYABLE as exc:
                error, retry = exc, attempt.fail(_summarize(exc), retryable=True)
            except ProviderError as exc:
                error, retry = exc, attempt.fail(_summarize(exc), retryable=False)
            except Exception as exc:
                log.exception("dispatcher.market.unexpected_error")
                error, retry = exc, attempt.fail(_summarize(exc), retryable=False)
            else:
                break

            if not retry:
                log.warning(
                    "dispatcher.market.failed",
                    attempts=attempt.attempts,
                    error=_detail(error),
                )
                return attempt.last_error

            delay = attempt.next_delay()
            log.info(
                "dispatcher.market.retry",
                attempt=attempt.attempts,
                delay=delay,
                error=_detail(error),
            )
            await self._sleep(delay)

        result = PredictionResult.from_payload(
            session_id=session.id,
            market_id=market_id,
            model_name=session.model_name,
            payload=payload,
            raw_response=raw,
            prompt=prompt,
        )
        if not await self._store(result, log):
            return STORAGE_FAILURE

        attempt.succeed()
        log.info("dispatcher.market.succeeded", attempts=attempt.attempts)
        return None

    async def _store(self, result: PredictionResult, log: Any) -> bool:
        """Save a generated prediction, retrying with backoff before giving up."""
        retries = self._options.persistence_retries
        for attempt in range(retries + 1):
            try:
                await self._results.save(result)
                return True
            except Exception as exc:
                if attempt == retries:
                    # the provider call is paid for and its output is lost
                    log.critical(
                        "dispatcher.market.store_failed",
                        attempts=retries + 1,
                        error=str(exc),
                    )
                    return False
                delay = self._options.persistence_backoff_seconds * (2**attempt)
                log.warning(
                    "dispatcher.market.store_retry",
                    attempt=attempt + 1,
                    delay=delay,
                    error=str(exc),
                )
                await self._sleep(delay)
        return False

    async def _predict(
        self, session: PredictionSession, market_id: str
    ) -> Tuple[PredictionPrompt, str, PredictionPayload]:
        market = await self._market_gateway.get_market(market_id)
        if market is None:
            raise DataUnavailableError(f"Market {market_id} not found")

        prompt = build_prediction_prompt(
            market, session.metadata.get("additional_context")
        )
        raw = await asyncio.wait_for(
            self._provider.complete(session.model_name, prompt),
            timeout=self._options.call_timeout_seconds,
        )
        payload = parse_prediction_payload(
            raw, market.outcomes, self._options.probability_sum_tolerance
        )
        return prompt, raw, payload

    async def _record(
        self,
        lease: SessionLease,
        market_id: str,
        error: Optional[str],
        stop: asyncio.Event,
        run: _RunState,
    ) -> None:
        if error is None:
            run.succeeded += 1
        else:
            run.failed += 1

        try:
            await self._tracker.record_outcome(lease, market_id, error)
        except LeaseLostError:
            run.lease_lost = True
            stop.set()
        except PersistenceError as exc:
            logger.error(
                "dispatcher.outcome.not_persisted",
                session_id=str(lease.session_id),
                market_id=market_id,
                error=exc.message,
            )
