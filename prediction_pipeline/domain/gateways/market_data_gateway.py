"""Market data provider gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from prediction_pipeline.domain.entities.market import Market


class IMarketDataGateway(ABC):
    """Read access to prediction markets."""

    @abstractmethod
    async def list_markets_ending_between(
        self, start: datetime, end: datetime
    ) -> List[Market]:
        """Return open markets whose end date falls inside ``[start, end]``.

        Raises:
            DataUnavailableError: If the provider cannot be reached or
                returns an unusable response.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_market(self, market_id: str) -> Optional[Market]:
        """Return a single market, or None when it does not exist."""
        raise NotImplementedError
