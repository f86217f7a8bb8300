"""Document types shared by the test modules."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from bson import ObjectId
from pydantic import BaseModel, Field

from mongorepo import MongoDocument, bson_collection


@bson_collection("temperature")
class Forecast(MongoDocument):
    id: Optional[UUID] = Field(default=None, alias="_id")
    name: str
    temperature_c: int
    date: Optional[datetime] = None


@bson_collection("people")
class Person(MongoDocument):
    id: Optional[ObjectId] = Field(default=None, alias="_id")
    first_name: str
    last_name: str
    age: int = 0


@bson_collection("tags")
class Tag(MongoDocument):
    id: Optional[str] = Field(default=None, alias="_id")
    label: str


class ForecastName(BaseModel):
    name: str
