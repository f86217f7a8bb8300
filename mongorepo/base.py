"""
Base repository shared by the sync and asyncio repositories.

Everything that does not touch the driver lives here: collection name and
index validation at construction, key generation and coercion, timeout and
write concern policy, and model conversion. Subclasses own the client, the
one-time initialization and the I/O.
"""

import logging
from datetime import timedelta
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, Union
from uuid import UUID

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.write_concern import WriteConcern

from .config import sanitize_mongodb_url
from .documents import TDocument, field_alias, from_bson, get_collection_name, key_type_of, to_bson
from .exceptions import RepositoryConfigurationError, RepositoryConnectionError
from .id_generators import IdGenerator, IdStrategy, resolve_id_generator
from .indexes import MongoIndex
from .options import (
    DEFAULT_OPERATION_TIMEOUT,
    FindOneAndDeleteOptions,
    FindOneAndReplaceOptions,
    FindOptions,
    InsertManyOptions,
    MongoRepositoryOptions,
    to_milliseconds,
)

logger = logging.getLogger(__name__)

Filter = Mapping[str, Any]
Projection = Union[type[BaseModel], Mapping[str, Any], None]
ClientFactory = Callable[[str], Any]


class BaseMongoRepository(Generic[TDocument]):
    """Driver-independent repository state for one document type."""

    def __init__(
        self,
        document_type: type[TDocument],
        connection_string: str,
        database_name: str,
        options: Optional[MongoRepositoryOptions] = None,
        id_generator: Union[IdStrategy, IdGenerator, None] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        """
        Validate configuration without touching the database.

        Args:
            document_type: MongoDocument subclass decorated with @bson_collection
            connection_string: MongoDB connection string
            database_name: Target database name
            options: Indexes and operation timeout
            id_generator: Explicit key strategy, overriding the key-type default
            client_factory: Builds the driver client from the connection string

        Raises:
            RepositoryConfigurationError: Missing collection binding, key not
                stored as _id, unnamed index, or key type without an ID generator.
        """
        collection_name = get_collection_name(document_type)
        if collection_name is None:
            raise RepositoryConfigurationError(
                f"Collection name not specified for '{document_type.__name__}'. "
                "Decorate it with @bson_collection(name)."
            )

        if "id" not in document_type.model_fields or field_alias(document_type, "id") != "_id":
            raise RepositoryConfigurationError(
                f"Key field of '{document_type.__name__}' must be stored as '_id'. "
                "Declare it as Field(default=None, alias='_id').",
                collection_name,
            )

        self.document_type = document_type
        self.connection_string = connection_string
        self.database_name = database_name
        self.collection_name = collection_name
        self.options = options.model_copy(deep=True) if options is not None else None

        self._validate_indexes()

        self.key_type = key_type_of(document_type)
        try:
            self.id_generator = resolve_id_generator(self.key_type, id_generator)
        except RepositoryConfigurationError as e:
            raise RepositoryConfigurationError(
                f"{e.message} (document type '{document_type.__name__}')",
                collection_name,
            ) from e

        self._client_factory = client_factory or self._default_client_factory
        self._client: Any = None
        self._collection: Any = None

        logger.debug(
            f"Configured {type(self).__name__} for {document_type.__name__} "
            f"({self.database_name}.{self.collection_name})"
        )

    def _default_client_factory(self, connection_string: str) -> Any:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def indexes(self) -> list[MongoIndex]:
        if self.options is None or not self.options.indexes:
            return []
        return self.options.indexes

    @property
    def operation_timeout(self) -> Optional[timedelta]:
        if self.options is None:
            return DEFAULT_OPERATION_TIMEOUT
        return self.options.operation_timeout

    def _validate_indexes(self) -> None:
        for index in self.indexes:
            if not index.name:
                raise RepositoryConfigurationError(
                    f"Index name must be provided (keys: {index.field_names}).",
                    self.collection_name,
                )

    def missing_indexes(self, existing_names: Iterable[str]) -> list[MongoIndex]:
        """Declared indexes whose name the server does not report yet."""
        existing = set(existing_names)
        return [index for index in self.indexes if index.name not in existing]

    # ------------------------------------------------------------------
    # Client lifecycle
    # ------------------------------------------------------------------

    def _create_client(self) -> Any:
        try:
            client = self._client_factory(self.connection_string)
        except Exception as e:
            raise RepositoryConnectionError(
                "Failed to create MongoDB client.", self.collection_name
            ) from e

        logger.info(
            f"Created MongoDB client for {sanitize_mongodb_url(self.connection_string)} "
            f"({self.document_type.__name__})"
        )
        return client

    def _initialization_error(self, error: Exception) -> RepositoryConnectionError:
        logger.error(f"Failed to initialize collection '{self.collection_name}': {error}")
        return RepositoryConnectionError(
            f"Failed to initialize collection '{self.collection_name}'.",
            self.collection_name,
        )

    def close(self) -> None:
        """Close the driver client if one was created."""
        if self._client is not None:
            self._client.close()
            logger.info(f"Closed MongoDB client ({self.document_type.__name__})")
        self._client = None
        self._collection = None

    # ------------------------------------------------------------------
    # Keys and conversion
    # ------------------------------------------------------------------

    def coerce_key(self, key: Any) -> Any:
        """Accept ObjectId and UUID keys in their string form."""
        if not isinstance(key, str):
            return key
        try:
            if self.key_type is ObjectId:
                return ObjectId(key)
            if self.key_type is UUID:
                return UUID(key)
        except (InvalidId, ValueError) as e:
            raise ValueError(f"Invalid {self.key_type.__name__} key: {key!r}") from e
        return key

    def key_filter(self, key: Any) -> dict[str, Any]:
        return {"_id": self.coerce_key(key)}

    def prepare_for_insert(self, document: TDocument) -> dict[str, Any]:
        """Assign a key when the current one is empty, then serialize."""
        if self.id_generator.is_empty(document.id):
            document.id = self.id_generator.generate_id(document)
        return to_bson(document)

    def to_document(self, raw: Optional[Mapping[str, Any]]) -> Optional[TDocument]:
        return from_bson(self.document_type, raw)

    def projection_spec(self, projection: Projection) -> tuple[Optional[dict[str, Any]], Callable[[Any], Any]]:
        """Driver projection plus the converter applied to each result."""
        if projection is None:
            return None, self.to_document

        if isinstance(projection, type) and issubclass(projection, BaseModel):
            fields = {
                (info.alias or name): 1 for name, info in projection.model_fields.items()
            }
            if "_id" not in fields:
                fields["_id"] = 0
            return fields, projection.model_validate

        return dict(projection), dict

    # ------------------------------------------------------------------
    # Timeouts and driver keyword arguments
    # ------------------------------------------------------------------

    def _max_time_ms(self, override: Optional[timedelta] = None) -> Optional[int]:
        if override is not None:
            return to_milliseconds(override)
        return to_milliseconds(self.operation_timeout)

    @property
    def write_concern(self) -> WriteConcern:
        wtimeout = to_milliseconds(self.operation_timeout)
        if wtimeout is None:
            return WriteConcern()
        return WriteConcern(wtimeout=wtimeout)

    def find_kwargs(self, options: Optional[FindOptions]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        max_time_ms = self._max_time_ms(options.max_time if options else None)
        if max_time_ms is not None:
            kwargs["max_time_ms"] = max_time_ms

        if options is not None:
            if options.sort:
                kwargs["sort"] = options.sort
            if options.skip:
                kwargs["skip"] = options.skip
            if options.limit:
                kwargs["limit"] = options.limit
            if options.batch_size is not None:
                kwargs["batch_size"] = options.batch_size
        return kwargs

    def command_kwargs(self) -> dict[str, Any]:
        """Timeout for count and aggregate, which take maxTimeMS directly."""
        max_time_ms = self._max_time_ms()
        return {"maxTimeMS": max_time_ms} if max_time_ms is not None else {}

    @staticmethod
    def insert_many_kwargs(options: Optional[InsertManyOptions]) -> dict[str, Any]:
        options = options or InsertManyOptions()
        return {
            "ordered": options.ordered,
            "bypass_document_validation": options.bypass_document_validation,
        }

    @staticmethod
    def replace_kwargs(options: Optional[FindOneAndReplaceOptions]) -> dict[str, Any]:
        options = options or FindOneAndReplaceOptions()
        kwargs: dict[str, Any] = {
            "return_document": (
                ReturnDocument.AFTER if options.return_document == "after" else ReturnDocument.BEFORE
            ),
            "upsert": options.upsert,
        }
        if options.projection is not None:
            kwargs["projection"] = options.projection
        return kwargs

    def delete_kwargs(self, options: Optional[FindOneAndDeleteOptions]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        max_time_ms = self._max_time_ms(options.max_time if options else None)
        if max_time_ms is not None:
            kwargs["maxTimeMS"] = max_time_ms
        if options is not None:
            if options.sort:
                kwargs["sort"] = options.sort
            if options.projection is not None:
                kwargs["projection"] = options.projection
        return kwargs

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.document_type.__name__}, "
            f"{self.database_name}.{self.collection_name})"
        )
