"""
Integration tests against a live MongoDB server.

Skipped unless MONGODB_URL is set. Transactions need a replica set.

Usage:
    MONGODB_URL=mongodb://localhost:27017 pytest tests/integration
"""

import asyncio
import os
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from pymongo.errors import DuplicateKeyError

from mongorepo import (
    AsyncMongoRepository,
    MongoRepository,
    MongoRepositoryOptions,
    create_ascending_index,
)

from sample_documents import Forecast

MONGODB_URL = os.environ.get("MONGODB_URL")

pytestmark = pytest.mark.skipif(not MONGODB_URL, reason="MONGODB_URL not set")


@pytest.fixture
def database_name() -> str:
    return f"mongorepo_test_{uuid4().hex[:8]}"


@pytest.fixture
def repository(database_name: str):
    options = MongoRepositoryOptions(
        indexes=[create_ascending_index(Forecast, lambda f: f.date, unique=True)]
    )
    repository = MongoRepository(Forecast, MONGODB_URL, database_name, options)
    yield repository
    repository.client.drop_database(database_name)
    repository.close()


def test_insert_and_filter(repository: MongoRepository) -> None:
    forecast = repository.insert_one(
        Forecast(name="Sunny", temperature_c=25, date=datetime(2024, 5, 1, tzinfo=timezone.utc))
    )

    found = repository.filter_by({"name": "Sunny"})

    assert [f.id for f in found] == [forecast.id]
    assert "date" in [info["name"] for info in repository.collection.list_indexes()]


def test_unique_index_is_enforced(repository: MongoRepository) -> None:
    date = datetime(2024, 5, 2, tzinfo=timezone.utc)
    repository.insert_one(Forecast(name="Sunny", temperature_c=25, date=date))

    with pytest.raises(DuplicateKeyError):
        repository.insert_one(Forecast(name="Rain", temperature_c=10, date=date))


def test_async_repository_round_trip(database_name: str) -> None:
    async def run() -> None:
        repository = AsyncMongoRepository(Forecast, MONGODB_URL, database_name, None)
        try:
            forecast = await repository.insert_one(Forecast(name="Windy", temperature_c=14))
            assert (await repository.find_by_id(forecast.id)).name == "Windy"
            assert await repository.delete_many({}) == 1
        finally:
            await repository.client.drop_database(database_name)
            repository.close()

    asyncio.run(run())
