from __future__ import annotations

from typing import Dict

import pymongo.errors
import pytest

from prediction_pipeline.infrastructure.database.mongo_database import (
    RESULTS_COLLECTION,
    SESSIONS_COLLECTION,
    MongoDatabase,
)
from tests.conftest import FakeCollection


class _StubMongoClient:
    def __init__(self, uri: str, **kwargs) -> None:
        self.uri = uri
        self.kwargs = kwargs
        self.databases: Dict[str, Dict[str, FakeCollection]] = {}
        self.closed = False
        self.commands = []
        self.admin = self

    def __getitem__(self, name: str):
        return _StubDatabase(self.databases.setdefault(name, {}))

    def command(self, cmd: str) -> None:
        self.commands.append(cmd)

    def close(self) -> None:
        self.closed = True


class _StubDatabase:
    def __init__(self, collections: Dict[str, FakeCollection]) -> None:
        self.collections = collections

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture(autouse=True)
def patch_mongo_client(monkeypatch) -> None:
    monkeypatch.setattr(
        "prediction_pipeline.infrastructure.database.mongo_database.MongoClient",
        _StubMongoClient,
    )


def test_client_is_timezone_aware_and_closes() -> None:
    database = MongoDatabase("mongodb://localhost:27017", "pipeline")

    database.ping()
    database.close()

    assert database.client.kwargs == {"tz_aware": True}
    assert database.client.commands == ["ping"]
    assert database.client.closed is True


@pytest.mark.asyncio
async def test_create_indexes() -> None:
    database = MongoDatabase("mongodb://localhost:27017", "pipeline")

    await database.create_indexes()

    sessions = database.get_collection(SESSIONS_COLLECTION)
    results = database.get_collection(RESULTS_COLLECTION)
    session_indexes = {name: kwargs for _, name, kwargs in sessions.created_indexes}
    result_indexes = {name: kwargs for _, name, kwargs in results.created_indexes}
    assert session_indexes["session_id_idx"] == {"unique": True}
    assert "status_updated_at_idx" in session_indexes
    assert result_indexes["session_market_idx"] == {"unique": True}


@pytest.mark.asyncio
async def test_create_indexes_tolerates_operation_failure(monkeypatch) -> None:
    database = MongoDatabase("mongodb://localhost:27017", "pipeline")

    def boom(*args, **kwargs):
        raise pymongo.errors.OperationFailure("index conflict")

    monkeypatch.setattr(FakeCollection, "create_index", boom)

    await database.create_indexes()
