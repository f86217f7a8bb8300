"""Repository configuration and per-call operation options."""

from datetime import timedelta
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .indexes import MongoIndex

DEFAULT_OPERATION_TIMEOUT = timedelta(seconds=30)

SortSpec = list[tuple[str, int]]


class MongoRepositoryOptions(BaseModel):
    """Indexes to ensure and the timeout applied to every operation."""

    model_config = ConfigDict(validate_assignment=True)

    indexes: Optional[list[MongoIndex]]
    operation_timeout: Optional[timedelta] = DEFAULT_OPERATION_TIMEOUT

    @field_validator("operation_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[timedelta]) -> Optional[timedelta]:
        """Reject zero or negative timeouts."""
        if v is not None and v <= timedelta(0):
            raise ValueError("operation_timeout must be positive")
        return v


class FindOptions(BaseModel):
    """Per-call overrides for read operations."""

    max_time: Optional[timedelta] = None
    sort: Optional[SortSpec] = None
    skip: int = 0
    limit: int = 0
    batch_size: Optional[int] = None


class FindOneAndReplaceOptions(BaseModel):
    return_document: Literal["before", "after"] = "before"
    upsert: bool = False
    projection: Optional[dict[str, Any]] = None


class FindOneAndDeleteOptions(BaseModel):
    sort: Optional[SortSpec] = None
    projection: Optional[dict[str, Any]] = None
    max_time: Optional[timedelta] = None


class InsertManyOptions(BaseModel):
    ordered: bool = True
    bypass_document_validation: bool = False


def to_milliseconds(value: Optional[timedelta]) -> Optional[int]:
    if value is None:
        return None
    return int(value.total_seconds() * 1000)
