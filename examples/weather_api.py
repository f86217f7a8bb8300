"""
Example weather forecast API built on mongorepo.

Run with:
    uvicorn examples.weather_api:create_app --factory
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, status
from pydantic import Field

from mongorepo import (
    MongoDocument,
    MongoRepository,
    RepositoryProvider,
    bson_collection,
    create_ascending_index,
)
from mongorepo.config import get_settings
from mongorepo.observability import configure_logging, initialize_logfire


@bson_collection("temperature")
class WeatherForecast(MongoDocument):
    id: Optional[UUID] = Field(default=None, alias="_id")
    date: datetime
    temperature_c: int
    summary: Optional[str] = None

    @property
    def temperature_f(self) -> int:
        return 32 + int(self.temperature_c / 0.5556)


def serialize(forecast: WeatherForecast) -> dict:
    data = forecast.model_dump(mode="json")
    data["temperature_f"] = forecast.temperature_f
    return data


def create_app(provider: Optional[RepositoryProvider] = None) -> FastAPI:
    settings = get_settings()
    if provider is None:
        provider = RepositoryProvider.from_settings(settings)

    provider.add_mongo_repository(
        WeatherForecast,
        indexes=[create_ascending_index(WeatherForecast, lambda f: f.date, unique=True)],
    )
    scope = provider.create_scope()
    get_repository = provider.dependency(WeatherForecast, scope=scope)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        initialize_logfire(settings)
        yield
        scope.close()

    app = FastAPI(title="Weather Forecast API", lifespan=lifespan)

    @app.get("/weatherforecast", name="WeatherForecast")
    def list_forecasts(repository: MongoRepository = Depends(get_repository)):
        return [serialize(forecast) for forecast in repository.all()]

    @app.get("/weatherforecast/{forecast_id}", name="GetWeatherForecastById")
    def get_forecast(forecast_id: UUID, repository: MongoRepository = Depends(get_repository)):
        forecast = repository.find_by_id(forecast_id)
        if forecast is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Forecast not found")
        return serialize(forecast)

    @app.post("/weatherforecast", status_code=status.HTTP_201_CREATED, name="CreateWeatherForecast")
    def create_forecast(forecast: WeatherForecast, repository: MongoRepository = Depends(get_repository)):
        repository.insert_one(forecast)
        return serialize(forecast)

    return app
