"""Tests for the example weather forecast API."""

from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from mongorepo import RepositoryProvider

from examples.weather_api import WeatherForecast, create_app
from fakes import ClientRecorder


def make_client() -> tuple[TestClient, ClientRecorder]:
    factory = ClientRecorder()
    provider = RepositoryProvider(
        connection_string="mongodb://localhost:27017",
        database="weather",
        client_factory=factory,
    )
    return TestClient(create_app(provider)), factory


def test_create_then_fetch_forecast() -> None:
    client, factory = make_client()

    response = client.post(
        "/weatherforecast",
        json={"date": "2024-05-01T00:00:00Z", "temperature_c": 25, "summary": "Sunny"},
    )

    assert response.status_code == 201
    created = response.json()
    assert UUID(created["id"])
    assert created["summary"] == "Sunny"
    assert created["temperature_f"] == 76

    fetched = client.get(f"/weatherforecast/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["temperature_c"] == 25

    listed = client.get("/weatherforecast")
    assert [item["id"] for item in listed.json()] == [created["id"]]

    collection = factory.collection()
    assert "date" in collection.indexes
    assert collection.indexes["date"]["unique"] is True


def test_unknown_forecast_returns_404() -> None:
    client, _ = make_client()

    response = client.get(f"/weatherforecast/{uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"detail": "Forecast not found"}


def test_invalid_forecast_is_rejected() -> None:
    client, _ = make_client()

    response = client.post("/weatherforecast", json={"summary": "Missing fields"})

    assert response.status_code == 422


def test_temperature_conversion() -> None:
    forecast = WeatherForecast(date="2024-01-01T00:00:00", temperature_c=0)

    assert forecast.temperature_f == 32
