"""
Infrastructure Gateway - Polymarket Gamma Implementation

This module implements the market data gateway against the Polymarket Gamma
REST API.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import structlog

from prediction_pipeline.domain.entities.errors import DataUnavailableError
from prediction_pipeline.domain.entities.market import Market
from prediction_pipeline.domain.gateways.market_data_gateway import IMarketDataGateway

logger = structlog.get_logger(__name__)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_list(value: Any) -> List[str]:
    # Gamma serializes outcome labels as a JSON encoded string
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    if isinstance(value, list):
        return [str(item) for item in value]
    return []


def _parse_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class GammaMarketGateway(IMarketDataGateway):
    """Implementation of the market data gateway using HTTP client."""

    def __init__(
        self,
        base_url: str = "https://gamma-api.polymarket.com",
        timeout: float = 15.0,
        page_size: int = 100,
        max_pages: int = 10,
    ):
        """
        Initialize Gamma gateway.

        Args:
            base_url: Base URL of the Gamma API
            timeout: Request timeout in seconds
            page_size: Markets requested per page
            max_pages: Upper bound on pages read per listing
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self.max_pages = max_pages

    async def list_markets_ending_between(
        self, start: datetime, end: datetime
    ) -> List[Market]:
        """Return open markets whose end date falls inside ``[start, end]``."""

        url = f"{self.base_url}/markets"
        base_params: Dict[str, Any] = {
            "active": "true",
            "closed": "false",
            "archived": "false",
            "end_date_min": start.astimezone(timezone.utc).isoformat(),
            "end_date_max": end.astimezone(timezone.utc).isoformat(),
            "order": "volume",
            "ascending": "false",
            "limit": self.page_size,
        }

        markets: List[Market] = []
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                for page in range(self.max_pages):
                    params = dict(base_params, offset=page * self.page_size)
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    items = self._extract_items(response.json())
                    markets.extend(
                        m for m in (self._to_market(item) for item in items) if m
                    )
                    if len(items) < self.page_size:
                        break

        except httpx.HTTPStatusError as e:
            logger.error(
                "gamma.list.http_error",
                status_code=e.response.status_code,
                url=url,
            )
            raise DataUnavailableError(
                f"Gamma API HTTP error {e.response.status_code}"
            ) from e

        except httpx.RequestError as e:
            logger.error("gamma.list.request_error", error=str(e), url=url)
            raise DataUnavailableError(f"Gamma API request failed: {str(e)}") from e

        except ValueError as e:
            logger.error("gamma.list.invalid_payload", error=str(e), url=url)
            raise DataUnavailableError("Gamma API returned invalid JSON") from e

        logger.debug("gamma.list.completed", markets=len(markets))
        return markets

    async def get_market(self, market_id: str) -> Optional[Market]:
        """Return a single market, or None when it does not exist."""

        url = f"{self.base_url}/markets/{market_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                payload = response.json()

        except httpx.HTTPStatusError as e:
            logger.error(
                "gamma.market.http_error",
                status_code=e.response.status_code,
                market_id=market_id,
            )
            raise DataUnavailableError(
                f"Gamma API HTTP error {e.response.status_code}"
            ) from e

        except httpx.RequestError as e:
            logger.error(
                "gamma.market.request_error", error=str(e), market_id=market_id
            )
            raise DataUnavailableError(f"Gamma API request failed: {str(e)}") from e

        except ValueError as e:
            raise DataUnavailableError("Gamma API returned invalid JSON") from e

        if isinstance(payload, list):
            payload = payload[0] if payload else None
        return self._to_market(payload) if isinstance(payload, dict) else None

    def _extract_items(self, payload: Any) -> List[Dict[str, Any]]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict):
            for key in ("data", "markets"):
                if isinstance(payload.get(key), list):
                    return payload[key]
        return []

    def _to_market(self, item: Dict[str, Any]) -> Optional[Market]:
        market_id = item.get("id")
        question = item.get("question")
        if market_id is None or not question:
            return None

        volume = _parse_float(item.get("volumeNum"))
        if volume is None:
            volume = _parse_float(item.get("volume"))

        return Market(
            id=str(market_id),
            question=str(question),
            description=item.get("description") or None,
            outcomes=_parse_list(item.get("outcomes")),
            volume=volume,
            end_date=_parse_datetime(item.get("endDate")),
            category=item.get("category") or None,
            active=bool(item.get("active", True)),
            closed=bool(item.get("closed", False)),
            accepting_orders=bool(item.get("acceptingOrders", True)),
        )
