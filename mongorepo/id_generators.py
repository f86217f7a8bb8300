"""Key generation strategies applied to documents at insert time."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from bson import ObjectId

from .exceptions import RepositoryConfigurationError

logger = logging.getLogger(__name__)

EMPTY_UUID = UUID(int=0)
EMPTY_OBJECT_ID = ObjectId("0" * 24)


class IdGenerator(ABC):
    """Decides whether a key is unassigned and produces a new one."""

    @abstractmethod
    def generate_id(self, document: Any) -> Any:
        ...

    @abstractmethod
    def is_empty(self, key: Any) -> bool:
        ...


class UuidIdGenerator(IdGenerator):
    """Random 128-bit keys."""

    def generate_id(self, document: Any) -> UUID:
        return uuid4()

    def is_empty(self, key: Any) -> bool:
        return key is None or key == EMPTY_UUID


class ObjectIdGenerator(IdGenerator):
    """Driver-native ObjectId keys."""

    def generate_id(self, document: Any) -> ObjectId:
        return ObjectId()

    def is_empty(self, key: Any) -> bool:
        return key is None or key == EMPTY_OBJECT_ID


class StringObjectIdGenerator(IdGenerator):
    """ObjectId keys stored in their 24-character hex form."""

    def generate_id(self, document: Any) -> str:
        return str(ObjectId())

    def is_empty(self, key: Any) -> bool:
        return key is None or key == ""


class IdStrategy(str, Enum):
    """Built-in key generation strategies."""

    RANDOM = "random"
    NATIVE = "native"
    STRING = "string"


_STRATEGY_GENERATORS: dict[IdStrategy, type[IdGenerator]] = {
    IdStrategy.RANDOM: UuidIdGenerator,
    IdStrategy.NATIVE: ObjectIdGenerator,
    IdStrategy.STRING: StringObjectIdGenerator,
}

_DEFAULT_STRATEGIES: dict[type, IdStrategy] = {
    UUID: IdStrategy.RANDOM,
    ObjectId: IdStrategy.NATIVE,
    str: IdStrategy.STRING,
}


def resolve_id_generator(
    key_type: Any,
    strategy: IdStrategy | IdGenerator | None = None,
) -> IdGenerator:
    """
    Pick the key generator for a repository.

    An explicit IdGenerator instance always wins. An IdStrategy selects the
    matching built-in. Without either, the declared key type decides:
    UUID -> random, ObjectId -> native, str -> string.

    Raises:
        RepositoryConfigurationError: No strategy given and the key type has
            no default generator.
    """
    if isinstance(strategy, IdGenerator):
        return strategy

    if strategy is not None:
        return _STRATEGY_GENERATORS[IdStrategy(strategy)]()

    default = _DEFAULT_STRATEGIES.get(key_type)
    if default is None:
        type_name = getattr(key_type, "__name__", repr(key_type))
        raise RepositoryConfigurationError(
            f"No default ID generator for key type '{type_name}'. "
            "Pass an IdStrategy or IdGenerator explicitly."
        )

    logger.debug(f"Using {default.value} ID generator for key type {key_type.__name__}")
    return _STRATEGY_GENERATORS[default]()
