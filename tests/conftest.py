"""Repository fixtures backed by the in-memory client."""

import pytest

from mongorepo import MongoRepository, MongoRepositoryOptions
from mongorepo.config import get_settings

from fakes import ClientRecorder
from sample_documents import Forecast


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client_factory() -> ClientRecorder:
    return ClientRecorder()


@pytest.fixture
def repository(client_factory: ClientRecorder):
    repository = MongoRepository(
        Forecast,
        "mongodb://localhost:27017",
        "weather",
        MongoRepositoryOptions(indexes=None),
        client_factory=client_factory,
    )
    yield repository
    repository.close()
