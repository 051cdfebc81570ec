"""
Application Use Cases - Market Selection

Picks the markets a batch will predict on.
"""

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional

import structlog

from prediction_pipeline.domain.entities.errors import DataUnavailableError
from prediction_pipeline.domain.entities.market import Market, SelectionConstraints
from prediction_pipeline.domain.gateways.market_data_gateway import IMarketDataGateway
from prediction_pipeline.domain.services import rank_candidates

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarketSelectionUseCase:
    """Use case that ranks open markets resolving around a target date."""

    def __init__(
        self,
        market_gateway: IMarketDataGateway,
        max_top_count: int = 200,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._market_gateway = market_gateway
        self._max_top_count = max_top_count
        self._clock = clock

    def _validate(self, constraints: SelectionConstraints) -> SelectionConstraints:
        if constraints.top_count <= 0:
            raise ValueError("top_count must be greater than 0")
        if constraints.end_date_range_hours <= 0:
            raise ValueError("end_date_range_hours must be greater than 0")
        if constraints.target_days_from_now < 0:
            raise ValueError("target_days_from_now must not be negative")
        if constraints.top_count > self._max_top_count:
            logger.warning(
                "market_selection.top_count_capped",
                requested=constraints.top_count,
                cap=self._max_top_count,
            )
            return replace(constraints, top_count=self._max_top_count)
        return constraints

    async def select_candidates(
        self, constraints: SelectionConstraints, now: Optional[datetime] = None
    ) -> List[Market]:
        """
        Select up to ``top_count`` open markets resolving inside the window.

        Args:
            constraints: Selection parameters
            now: Reference time; defaults to the current UTC time

        Returns:
            Markets ordered by volume (descending), then id. May be empty.

        Raises:
            ValueError: When the constraints are out of range
            DataUnavailableError: When the market source cannot be read
        """
        constraints = self._validate(constraints)
        now = now or self._clock()
        start, end = constraints.window(now)

        try:
            markets = await self._market_gateway.list_markets_ending_between(start, end)
        except DataUnavailableError:
            raise
        except Exception as exc:
            logger.error("market_selection.fetch_failed", error=str(exc))
            raise DataUnavailableError(
                "Unable to read markets from the market data provider",
                details={"error": str(exc)},
            ) from exc

        selected = rank_candidates(markets, constraints, now)
        logger.info(
            "market_selection.completed",
            window_start=start.isoformat(),
            window_end=end.isoformat(),
            fetched=len(markets),
            selected=len(selected),
        )
        return selected
