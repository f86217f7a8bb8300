"""
Document base class and collection binding.

This module provides:
- MongoDocument: pydantic base model whose `id` field is stored as `_id`
- bson_collection(): class decorator binding a document type to its collection
- Conversion helpers between models and driver dictionaries
"""

import types
from typing import Any, Callable, Optional, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field

COLLECTION_ATTRIBUTE = "__bson_collection__"

TDocument = TypeVar("TDocument", bound="MongoDocument")


class MongoDocument(BaseModel):
    """
    Base document class for repository-managed models.

    Subclasses narrow the key type by redeclaring `id`, e.g.:

        @bson_collection("temperature")
        class WeatherForecast(MongoDocument):
            id: Optional[UUID] = Field(default=None, alias="_id")
            temperature_c: int
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Any = Field(default=None, alias="_id")


def bson_collection(name: str) -> Callable[[type], type]:
    """Bind a document type to a collection name. Not inherited by subclasses."""

    def decorator(document_type: type) -> type:
        setattr(document_type, COLLECTION_ATTRIBUTE, name)
        return document_type

    return decorator


def get_collection_name(document_type: type) -> Optional[str]:
    """Return the collection bound to exactly this type, or None."""
    name = document_type.__dict__.get(COLLECTION_ATTRIBUTE)
    return name or None


def key_type_of(document_type: type[BaseModel]) -> Any:
    """Declared type of the `id` field with Optional unwrapped."""
    field = document_type.model_fields.get("id")
    if field is None:
        return None

    annotation = field.annotation
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def field_alias(document_type: type[BaseModel], field_name: str) -> str:
    """Name a model field is stored under."""
    field = document_type.model_fields[field_name]
    return field.alias or field_name


def to_bson(document: BaseModel) -> dict[str, Any]:
    return document.model_dump(by_alias=True)


def from_bson(document_type: type[TDocument], raw: Optional[dict[str, Any]]) -> Optional[TDocument]:
    if raw is None:
        return None
    return document_type.model_validate(raw)
