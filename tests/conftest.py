from __future__ import annotations

import asyncio
import copy
import json
import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import pytest
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from prediction_pipeline.domain.entities.market import Market  # noqa: E402
from prediction_pipeline.domain.entities.prediction import (  # noqa: E402
    PredictionPrompt,
)
from prediction_pipeline.domain.gateways.market_data_gateway import (  # noqa: E402
    IMarketDataGateway,
)
from prediction_pipeline.domain.gateways.prediction_provider_gateway import (  # noqa: E402
    IPredictionProviderGateway,
)
from prediction_pipeline.infrastructure.repositories import (  # noqa: E402
    PredictionResultRepository,
    SessionRepository,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

VALID_RESPONSE = json.dumps(
    {
        "outcomes": ["Yes", "No"],
        "outcomesProbabilities": [0.6, 0.4],
        "reasoning": "Momentum favours the outcome.",
        "confidence_level": "High",
    }
)


# -------------------------
# MongoDB fakes
# -------------------------
class FakeCursor:
    def __init__(self, documents: Sequence[Dict[str, Any]]):
        self._documents = list(documents)
        self._skip = 0
        self._limit: int | None = None

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def skip(self, amount: int) -> "FakeCursor":
        self._skip = amount
        return self

    def limit(self, amount: int) -> "FakeCursor":
        self._limit = amount
        return self

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        docs = self._documents[self._skip :]
        if self._limit:
            docs = docs[: self._limit]
        return iter(copy.deepcopy(docs))


class FakeCollection:
    """Small subset of the pymongo collection API used by the repositories."""

    def __init__(self) -> None:
        self.documents: List[Dict[str, Any]] = []
        self.created_indexes: List[tuple[Any, ...]] = []
        self.calls: Dict[str, int] = {}
        self._failures: Dict[str, int] = {}

    # failure injection
    def fail_on(self, method: str, times: int = 1) -> None:
        self._failures[method] = times

    def _enter(self, method: str) -> None:
        self.calls[method] = self.calls.get(method, 0) + 1
        remaining = self._failures.get(method, 0)
        if remaining:
            self._failures[method] = remaining - 1
            raise PyMongoError(f"{method} unavailable")

    # queries
    @classmethod
    def _matches(cls, document: Dict[str, Any], query: Dict[str, Any]) -> bool:
        for key, expected in query.items():
            if key == "$or":
                if not any(cls._matches(document, sub) for sub in expected):
                    return False
                continue
            value = document.get(key)
            if isinstance(expected, dict):
                for op, operand in expected.items():
                    if op == "$in" and value not in operand:
                        return False
                    if op == "$lt" and (value is None or not value < operand):
                        return False
            elif value != expected:
                return False
        return True

    @staticmethod
    def _apply(document: Dict[str, Any], update: Dict[str, Any]) -> None:
        document.update(copy.deepcopy(update.get("$set", {})))
        for key, amount in update.get("$inc", {}).items():
            document[key] = document.get(key, 0) + amount

    def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self._enter("find_one")
        for document in self.documents:
            if self._matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        self._enter("find")
        return FakeCursor([d for d in self.documents if self._matches(d, query)])

    def insert_one(self, document: Dict[str, Any]) -> Any:
        self._enter("insert_one")
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(acknowledged=True, inserted_id=document.get("id"))

    def update_one(
        self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False
    ) -> Any:
        self._enter("update_one")
        for document in self.documents:
            if self._matches(document, query):
                self._apply(document, update)
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if upsert:
            document = copy.deepcopy(query)
            document.update(copy.deepcopy(update.get("$setOnInsert", {})))
            self._apply(document, update)
            self.documents.append(document)
            return SimpleNamespace(matched_count=0, upserted_id=document.get("id"))
        return SimpleNamespace(matched_count=0, upserted_id=None)

    def update_many(self, query: Dict[str, Any], update: Dict[str, Any]) -> Any:
        self._enter("update_many")
        matched = [d for d in self.documents if self._matches(d, query)]
        for document in matched:
            self._apply(document, update)
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        return_document: Any = ReturnDocument.BEFORE,
    ) -> Optional[Dict[str, Any]]:
        self._enter("find_one_and_update")
        for document in self.documents:
            if self._matches(document, query):
                before = copy.deepcopy(document)
                self._apply(document, update)
                if return_document == ReturnDocument.AFTER:
                    return copy.deepcopy(document)
                return before
        return None

    def count_documents(self, query: Dict[str, Any]) -> int:
        self._enter("count_documents")
        return sum(1 for d in self.documents if self._matches(d, query))

    def delete_many(self, query: Dict[str, Any]) -> Any:
        self._enter("delete_many")
        kept = [d for d in self.documents if not self._matches(d, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)

    def create_index(self, keys: Any, name: str | None = None, **kwargs: Any) -> Any:
        self.created_indexes.append((keys, name, kwargs))
        return name or keys


class FakeMongoDatabase:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}
        self.closed = False

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    def ping(self) -> None:
        pass

    async def create_indexes(self) -> None:  # pragma: no cover - stub for tests
        pass

    def close(self) -> None:
        self.closed = True


# -------------------------
# Gateway fakes
# -------------------------
def make_market(
    market_id: str,
    volume: Optional[float] = 100.0,
    end_date: Optional[datetime] = None,
    category: Optional[str] = None,
    **kwargs: Any,
) -> Market:
    return Market(
        id=market_id,
        question=f"Will {market_id} happen?",
        outcomes=kwargs.pop("outcomes", ["Yes", "No"]),
        volume=volume,
        end_date=end_date or NOW + timedelta(days=7),
        category=category,
        **kwargs,
    )


class FakeMarketGateway(IMarketDataGateway):
    def __init__(self, markets: Sequence[Market] = ()) -> None:
        self.markets = {m.id: m for m in markets}
        self.listing: List[Market] = list(markets)
        self.error: Optional[Exception] = None
        self.windows: List[tuple[datetime, datetime]] = []

    async def list_markets_ending_between(
        self, start: datetime, end: datetime
    ) -> List[Market]:
        self.windows.append((start, end))
        if self.error:
            raise self.error
        return list(self.listing)

    async def get_market(self, market_id: str) -> Optional[Market]:
        return self.markets.get(market_id)


_MARKET_ID = re.compile(r'Market: "Will (\S+) happen\?"')

Step = Any  # str response, Exception instance, or "hang"


class FakeProvider(IPredictionProviderGateway):
    """Scripted provider; steps are consumed per market, then VALID_RESPONSE."""

    def __init__(
        self,
        script: Optional[Dict[str, List[Step]]] = None,
        delay: float = 0.0,
        on_call: Optional[Callable[[str, int], Any]] = None,
    ) -> None:
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.delay = delay
        self.on_call = on_call
        self.calls: List[str] = []
        self.active = 0
        self.max_active = 0

    async def complete(self, model_name: str, prompt: PredictionPrompt) -> str:
        match = _MARKET_ID.search(prompt.user_message)
        market_id = match.group(1) if match else ""
        self.calls.append(market_id)
        if self.on_call:
            await self.on_call(market_id, len(self.calls))

        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            steps = self.script.get(market_id)
            step = steps.pop(0) if steps else VALID_RESPONSE
            if step == "hang":
                await asyncio.sleep(3600)
            if isinstance(step, BaseException):
                raise step
            return step
        finally:
            self.active -= 1


class Clock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class RecordingLogger:
    """Stand-in for a module level structlog logger."""

    def __init__(self) -> None:
        self.events: List[tuple[str, str, Dict[str, Any]]] = []

    def bind(self, **kwargs: Any) -> "RecordingLogger":
        return self

    def __getattr__(self, level: str) -> Callable[..., None]:
        def _log(event: str, **kwargs: Any) -> None:
            self.events.append((level, event, kwargs))

        return _log

    def levels(self, event: str) -> List[str]:
        return [level for level, name, _ in self.events if name == event]


async def no_sleep(_: float) -> None:
    return None


# -------------------------
# Fixtures
# -------------------------
@pytest.fixture()
def fake_mongo_database() -> FakeMongoDatabase:
    return FakeMongoDatabase()


@pytest.fixture()
def session_repository(fake_mongo_database: FakeMongoDatabase) -> SessionRepository:
    return SessionRepository(fake_mongo_database)  # type: ignore[arg-type]


@pytest.fixture()
def result_repository(
    fake_mongo_database: FakeMongoDatabase,
) -> PredictionResultRepository:
    return PredictionResultRepository(fake_mongo_database)  # type: ignore[arg-type]


@pytest.fixture()
def clock() -> Clock:
    return Clock()


@pytest.fixture()
def dummy_now() -> datetime:
    return NOW
