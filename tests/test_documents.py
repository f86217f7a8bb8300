"""Tests for document collection binding and conversion."""

from typing import Optional
from uuid import UUID, uuid4

from bson import ObjectId
from pydantic import Field

from mongorepo import MongoDocument, bson_collection, get_collection_name
from mongorepo.documents import from_bson, key_type_of, to_bson

from sample_documents import Forecast, Person, Tag


def test_collection_name_from_decorator() -> None:
    assert get_collection_name(Forecast) == "temperature"
    assert get_collection_name(Person) == "people"


def test_collection_binding_is_not_inherited() -> None:
    class DetailedForecast(Forecast):
        humidity: int = 0

    assert get_collection_name(DetailedForecast) is None

    bson_collection("detailed")(DetailedForecast)
    assert get_collection_name(DetailedForecast) == "detailed"
    assert get_collection_name(Forecast) == "temperature"


def test_undecorated_document_has_no_collection() -> None:
    class Loose(MongoDocument):
        value: int

    assert get_collection_name(Loose) is None


def test_key_type_unwraps_optional() -> None:
    assert key_type_of(Forecast) is UUID
    assert key_type_of(Person) is ObjectId
    assert key_type_of(Tag) is str


def test_key_type_of_plain_annotation() -> None:
    @bson_collection("counters")
    class Counter(MongoDocument):
        id: Optional[int] = Field(default=None, alias="_id")

    assert key_type_of(Counter) is int


def test_to_bson_stores_key_as_underscore_id() -> None:
    key = uuid4()
    raw = to_bson(Forecast(id=key, name="Sunny", temperature_c=25))

    assert raw["_id"] == key
    assert "id" not in raw
    assert raw["name"] == "Sunny"


def test_from_bson() -> None:
    key = uuid4()
    forecast = from_bson(Forecast, {"_id": key, "name": "Cloudy", "temperature_c": 12})

    assert forecast.id == key
    assert forecast.name == "Cloudy"
    assert from_bson(Forecast, None) is None
