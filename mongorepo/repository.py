"""
Synchronous MongoDB repository backed by pymongo.

Initialization is lazy and guarded by threading locks, so one repository can be
shared across worker threads.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from pymongo import MongoClient
from pymongo.client_session import ClientSession
from pymongo.collection import Collection

from .base import BaseMongoRepository, Filter, Projection
from .documents import TDocument, to_bson
from .exceptions import RepositoryError
from .options import (
    FindOneAndDeleteOptions,
    FindOneAndReplaceOptions,
    FindOptions,
    InsertManyOptions,
)

logger = logging.getLogger(__name__)

TResult = TypeVar("TResult")


class MongoRepository(BaseMongoRepository[TDocument]):
    """
    Synchronous repository for one document type, backed by pymongo.

    The client and collection are created once, on `connect()` or on the first
    operation, whichever comes first. Declared indexes missing on the server
    are created at that point.

    Example:
        repository = MongoRepository(
            WeatherForecast,
            "mongodb://localhost:27017",
            "weather",
            MongoRepositoryOptions(indexes=[create_ascending_index(WeatherForecast, "date", unique=True)]),
        )
        repository.insert_one(WeatherForecast(date=datetime.now(), temperature_c=25, summary="Sunny"))
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._client_lock = threading.Lock()
        self._collection_lock = threading.Lock()

    def _default_client_factory(self, connection_string: str) -> MongoClient:
        return MongoClient(connection_string, uuidRepresentation="standard")

    def __enter__(self) -> MongoRepository[TDocument]:
        self.connect()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        self.close()

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = self._create_client()
        return self._client

    @property
    def collection(self) -> Collection:
        return self.connect()

    def connect(self) -> Collection:
        """Create the client and collection once and ensure declared indexes."""
        if self._collection is None:
            with self._collection_lock:
                if self._collection is None:
                    self._collection = self._initialize_collection()
        return self._collection

    def _initialize_collection(self) -> Collection:
        client = self.client
        try:
            collection = client.get_database(self.database_name).get_collection(self.collection_name)
            self._ensure_indexes(collection)
        except RepositoryError:
            raise
        except Exception as e:
            raise self._initialization_error(e) from e

        logger.info(f"Initialized collection {self.database_name}.{self.collection_name}")
        return collection

    def _ensure_indexes(self, collection: Collection) -> None:
        if not self.indexes:
            return

        existing = [info["name"] for info in collection.list_indexes()]
        missing = self.missing_indexes(existing)
        if not missing:
            return

        collection.create_indexes([index.to_index_model() for index in missing])
        logger.info(
            f"Created indexes on {self.collection_name}: {[index.name for index in missing]}"
        )

    def _writable(self) -> Collection:
        return self.collection.with_options(write_concern=self.write_concern)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(
        self,
        filter: Optional[Filter] = None,
        options: Optional[FindOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> Iterator[TDocument]:
        cursor = self.collection.find(filter or {}, session=session, **self.find_kwargs(options))
        return (self.to_document(raw) for raw in cursor)

    def all(self, options: Optional[FindOptions] = None) -> Iterator[TDocument]:
        return self.find({}, options)

    def filter_by(
        self,
        filter: Filter,
        projection: Projection = None,
        options: Optional[FindOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> list[Any]:
        """
        Documents matching `filter`.

        With a pydantic model type as `projection`, only that model's fields
        are fetched and each result is validated into it. A plain mapping is
        passed to the driver as-is and results come back as dicts.
        """
        spec, convert = self.projection_spec(projection)
        cursor = self.collection.find(filter, spec, session=session, **self.find_kwargs(options))
        return [convert(raw) for raw in cursor]

    def find_one(
        self,
        filter: Filter,
        options: Optional[FindOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> Optional[TDocument]:
        raw = self.collection.find_one(filter, session=session, **self.find_kwargs(options))
        return self.to_document(raw)

    def find_by_id(
        self,
        key: Any,
        options: Optional[FindOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> Optional[TDocument]:
        return self.find_one(self.key_filter(key), options, session=session)

    def count(self, filter: Optional[Filter] = None, session: Optional[ClientSession] = None) -> int:
        return self.collection.count_documents(filter or {}, session=session, **self.command_kwargs())

    def aggregate(
        self, pipeline: list[dict[str, Any]], session: Optional[ClientSession] = None
    ) -> list[dict[str, Any]]:
        return list(self.collection.aggregate(pipeline, session=session, **self.command_kwargs()))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_one(self, document: TDocument, session: Optional[ClientSession] = None) -> TDocument:
        raw = self.prepare_for_insert(document)
        self._writable().insert_one(raw, session=session)
        logger.debug(f"Inserted {self.document_type.__name__} {document.id}")
        return document

    def insert_many(
        self,
        documents: list[TDocument],
        options: Optional[InsertManyOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> list[TDocument]:
        if not documents:
            return []

        raws = [self.prepare_for_insert(document) for document in documents]
        self._writable().insert_many(raws, session=session, **self.insert_many_kwargs(options))
        logger.debug(f"Inserted {len(raws)} {self.document_type.__name__} documents")
        return list(documents)

    def find_one_and_replace(
        self,
        document: TDocument,
        options: Optional[FindOneAndReplaceOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> Optional[TDocument]:
        """Replace the document with the same key; returns the pre- or post-image."""
        raw = self._writable().find_one_and_replace(
            self.key_filter(document.id),
            to_bson(document),
            session=session,
            **self.replace_kwargs(options),
        )
        return self.to_document(raw)

    def replace_one(self, document: TDocument, session: Optional[ClientSession] = None) -> Optional[TDocument]:
        return self.find_one_and_replace(document, session=session)

    def delete_one(
        self,
        filter: Filter,
        options: Optional[FindOneAndDeleteOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> Optional[TDocument]:
        """Delete the first match. Returns it, or None when nothing matched."""
        raw = self._writable().find_one_and_delete(filter, session=session, **self.delete_kwargs(options))
        return self.to_document(raw)

    def delete_by_id(
        self,
        key: Any,
        options: Optional[FindOneAndDeleteOptions] = None,
        session: Optional[ClientSession] = None,
    ) -> Optional[TDocument]:
        return self.delete_one(self.key_filter(key), options, session=session)

    def delete_many(self, filter: Filter, session: Optional[ClientSession] = None) -> int:
        result = self._writable().delete_many(filter, session=session)
        return result.deleted_count

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[ClientSession]:
        """
        Session with an open transaction.

        Commits when the block exits normally, aborts and re-raises when it
        raises. The session is always ended.

        Usage:
            with repository.transaction() as session:
                repository.insert_one(document, session=session)
                repository.delete_many({"name": "Stale"}, session=session)
        """
        self.connect()
        with self.client.start_session() as session:
            session.start_transaction(write_concern=self.write_concern)
            try:
                yield session
            except Exception as e:
                logger.warning(f"Aborting transaction on {self.collection_name}: {e}")
                session.abort_transaction()
                raise
            else:
                session.commit_transaction()

    def with_transaction(self, callback: Callable[[ClientSession], TResult]) -> TResult:
        with self.transaction() as session:
            return callback(session)
