"""
Index definitions built from type-checked field selectors.

A selector is either a field name (`"date"`) or a single attribute access on
the document's fields (`lambda f: f.date`). Both are checked against the
model's declared fields when the index is built, so a typo fails at startup
rather than when the server creates the index.

Index names are derived from the stored field names: a single-field index is
named after its field and a compound index joins its fields with "_" in the
order given. The names are stable across runs, which keeps index
reconciliation idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional, Union

import pymongo
from pydantic import BaseModel
from pymongo import IndexModel

from .documents import field_alias
from .exceptions import IndexDefinitionError

FieldSelector = Union[str, Callable[[Any], Any]]


class IndexDirection(IntEnum):
    ASCENDING = pymongo.ASCENDING
    DESCENDING = pymongo.DESCENDING


class MongoIndex(BaseModel):
    """Ordered index keys plus name and uniqueness."""

    keys: list[tuple[str, IndexDirection]]
    name: Optional[str] = None
    unique: bool = False

    @property
    def field_names(self) -> list[str]:
        return [key for key, _ in self.keys]

    def to_index_model(self) -> IndexModel:
        kwargs: dict[str, Any] = {"unique": self.unique}
        if self.name is not None:
            kwargs["name"] = self.name
        return IndexModel([(key, int(direction)) for key, direction in self.keys], **kwargs)


@dataclass(frozen=True)
class CompoundIndexField:
    direction: IndexDirection
    selector: FieldSelector


class _FieldToken:
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __getattr__(self, item: str) -> Any:
        raise IndexDefinitionError(
            f"Selector must access a single field, got '{self.name}.{item}'"
        )

    def __bool__(self) -> bool:
        raise IndexDefinitionError(
            f"Selector must access a single field, got a condition on '{self.name}'"
        )


class _FieldRecorder:
    __slots__ = ("_document_type",)

    def __init__(self, document_type: type[BaseModel]):
        self._document_type = document_type

    def __getattr__(self, name: str) -> _FieldToken:
        if name not in self._document_type.model_fields:
            raise IndexDefinitionError(
                f"'{self._document_type.__name__}' has no field '{name}'"
            )
        return _FieldToken(name)


class IndexBuilder:
    """Builds MongoIndex definitions for one document type."""

    def __init__(self, document_type: type[BaseModel]):
        self.document_type = document_type

    def field_name(self, selector: FieldSelector) -> str:
        """Resolve a selector to the name the field is stored under."""
        if selector is None:
            raise IndexDefinitionError("Field selector must not be None")

        if isinstance(selector, str):
            return self._resolve_name(selector)

        if not callable(selector):
            raise IndexDefinitionError(f"Unsupported field selector: {selector!r}")

        try:
            token = selector(_FieldRecorder(self.document_type))
        except (AttributeError, TypeError) as e:
            raise IndexDefinitionError(
                f"Selector {selector!r} does not refer to a valid field: {e}"
            ) from e

        if not isinstance(token, _FieldToken):
            raise IndexDefinitionError(
                f"Selector {selector!r} does not refer to a valid field"
            )
        return field_alias(self.document_type, token.name)

    def _resolve_name(self, name: str) -> str:
        fields = self.document_type.model_fields
        if name in fields:
            return field_alias(self.document_type, name)

        # Stored names are accepted too, e.g. "_id"
        for info in fields.values():
            if info.alias == name:
                return name

        raise IndexDefinitionError(
            f"'{self.document_type.__name__}' has no field '{name}'"
        )

    def ascending(self, selector: FieldSelector, unique: bool = False) -> MongoIndex:
        return self._single(selector, IndexDirection.ASCENDING, unique)

    def descending(self, selector: FieldSelector, unique: bool = False) -> MongoIndex:
        return self._single(selector, IndexDirection.DESCENDING, unique)

    def _single(self, selector: FieldSelector, direction: IndexDirection, unique: bool) -> MongoIndex:
        name = self.field_name(selector)
        return MongoIndex(keys=[(name, direction)], name=name, unique=unique)

    def compound(self, *fields: CompoundIndexField, unique: bool = False) -> MongoIndex:
        """
        Combine several fields into one index.

        Field order is preserved in both the keys and the generated name.
        Repeated fields are passed through unchanged.

        Raises:
            IndexDefinitionError: No fields given or a selector is invalid.
        """
        if not fields:
            raise IndexDefinitionError("At least one field must be provided.")

        keys: list[tuple[str, IndexDirection]] = []
        for index_field in fields:
            try:
                direction = IndexDirection(index_field.direction)
            except ValueError as e:
                raise IndexDefinitionError(
                    f"Unsupported index direction: {index_field.direction!r}"
                ) from e
            keys.append((self.field_name(index_field.selector), direction))

        name = "_".join(key for key, _ in keys)
        return MongoIndex(keys=keys, name=name, unique=unique)


def field(direction: IndexDirection, selector: FieldSelector) -> CompoundIndexField:
    return CompoundIndexField(direction=direction, selector=selector)


def create_ascending_index(
    document_type: type[BaseModel], selector: FieldSelector, unique: bool = False
) -> MongoIndex:
    return IndexBuilder(document_type).ascending(selector, unique=unique)


def create_descending_index(
    document_type: type[BaseModel], selector: FieldSelector, unique: bool = False
) -> MongoIndex:
    return IndexBuilder(document_type).descending(selector, unique=unique)


def create_compound_index(
    document_type: type[BaseModel], *fields: CompoundIndexField, unique: bool = False
) -> MongoIndex:
    return IndexBuilder(document_type).compound(*fields, unique=unique)
