"""Asyncio MongoDB repository backed by Motor."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorCollection,
)

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


class AsyncMongoRepository(BaseMongoRepository[TDocument]):
    """
    Asyncio repository for one document type, backed by Motor.

    Mirrors MongoRepository; every operation is a coroutine and `find`/`all`
    are async generators. Initialization runs once under an asyncio.Lock,
    either through `await connect()` or on the first operation.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._collection_lock = asyncio.Lock()

    def _default_client_factory(self, connection_string: str) -> AsyncIOMotorClient:
        return AsyncIOMotorClient(connection_string, uuidRepresentation="standard")

    async def __aenter__(self) -> AsyncMongoRepository[TDocument]:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    @property
    def client(self) -> AsyncIOMotorClient:
        # Client construction does no I/O, so no await point can interleave here
        if self._client is None:
            self._client = self._create_client()
        return self._client

    async def connect(self) -> AsyncIOMotorCollection:
        """Create the client and collection once and ensure declared indexes."""
        if self._collection is None:
            async with self._collection_lock:
                if self._collection is None:
                    self._collection = await self._initialize_collection()
        return self._collection

    async def _initialize_collection(self) -> AsyncIOMotorCollection:
        client = self.client
        try:
            collection = client.get_database(self.database_name).get_collection(self.collection_name)
            await self._ensure_indexes(collection)
        except RepositoryError:
            raise
        except Exception as e:
            raise self._initialization_error(e) from e

        logger.info(f"Initialized collection {self.database_name}.{self.collection_name}")
        return collection

    async def _ensure_indexes(self, collection: AsyncIOMotorCollection) -> None:
        if not self.indexes:
            return

        existing = [info["name"] async for info in collection.list_indexes()]
        missing = self.missing_indexes(existing)
        if not missing:
            return

        await collection.create_indexes([index.to_index_model() for index in missing])
        logger.info(
            f"Created indexes on {self.collection_name}: {[index.name for index in missing]}"
        )

    async def _writable(self) -> AsyncIOMotorCollection:
        collection = await self.connect()
        return collection.with_options(write_concern=self.write_concern)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find(
        self,
        filter: Optional[Filter] = None,
        options: Optional[FindOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> AsyncIterator[TDocument]:
        collection = await self.connect()
        async for raw in collection.find(filter or {}, session=session, **self.find_kwargs(options)):
            yield self.to_document(raw)

    async def all(self, options: Optional[FindOptions] = None) -> AsyncIterator[TDocument]:
        async for document in self.find({}, options):
            yield document

    async def filter_by(
        self,
        filter: Filter,
        projection: Projection = None,
        options: Optional[FindOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> list[Any]:
        """See MongoRepository.filter_by."""
        collection = await self.connect()
        spec, convert = self.projection_spec(projection)
        cursor = collection.find(filter, spec, session=session, **self.find_kwargs(options))
        return [convert(raw) async for raw in cursor]

    async def find_one(
        self,
        filter: Filter,
        options: Optional[FindOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[TDocument]:
        collection = await self.connect()
        raw = await collection.find_one(filter, session=session, **self.find_kwargs(options))
        return self.to_document(raw)

    async def find_by_id(
        self,
        key: Any,
        options: Optional[FindOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[TDocument]:
        return await self.find_one(self.key_filter(key), options, session=session)

    async def count(
        self, filter: Optional[Filter] = None, session: Optional[AsyncIOMotorClientSession] = None
    ) -> int:
        collection = await self.connect()
        return await collection.count_documents(filter or {}, session=session, **self.command_kwargs())

    async def aggregate(
        self, pipeline: list[dict[str, Any]], session: Optional[AsyncIOMotorClientSession] = None
    ) -> list[dict[str, Any]]:
        collection = await self.connect()
        cursor = collection.aggregate(pipeline, session=session, **self.command_kwargs())
        return [raw async for raw in cursor]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_one(
        self, document: TDocument, session: Optional[AsyncIOMotorClientSession] = None
    ) -> TDocument:
        raw = self.prepare_for_insert(document)
        collection = await self._writable()
        await collection.insert_one(raw, session=session)
        logger.debug(f"Inserted {self.document_type.__name__} {document.id}")
        return document

    async def insert_many(
        self,
        documents: list[TDocument],
        options: Optional[InsertManyOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> list[TDocument]:
        if not documents:
            return []

        raws = [self.prepare_for_insert(document) for document in documents]
        collection = await self._writable()
        await collection.insert_many(raws, session=session, **self.insert_many_kwargs(options))
        logger.debug(f"Inserted {len(raws)} {self.document_type.__name__} documents")
        return list(documents)

    async def find_one_and_replace(
        self,
        document: TDocument,
        options: Optional[FindOneAndReplaceOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[TDocument]:
        collection = await self._writable()
        raw = await collection.find_one_and_replace(
            self.key_filter(document.id),
            to_bson(document),
            session=session,
            **self.replace_kwargs(options),
        )
        return self.to_document(raw)

    async def replace_one(
        self, document: TDocument, session: Optional[AsyncIOMotorClientSession] = None
    ) -> Optional[TDocument]:
        return await self.find_one_and_replace(document, session=session)

    async def delete_one(
        self,
        filter: Filter,
        options: Optional[FindOneAndDeleteOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[TDocument]:
        collection = await self._writable()
        raw = await collection.find_one_and_delete(filter, session=session, **self.delete_kwargs(options))
        return self.to_document(raw)

    async def delete_by_id(
        self,
        key: Any,
        options: Optional[FindOneAndDeleteOptions] = None,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[TDocument]:
        return await self.delete_one(self.key_filter(key), options, session=session)

    async def delete_many(
        self, filter: Filter, session: Optional[AsyncIOMotorClientSession] = None
    ) -> int:
        collection = await self._writable()
        result = await collection.delete_many(filter, session=session)
        return result.deleted_count

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncIOMotorClientSession]:
        """
        Async context manager for a session with an open transaction.

        Usage:
            async with repository.transaction() as session:
                await repository.insert_one(document, session=session)
                await repository.delete_many({"name": "Stale"}, session=session)
        """
        await self.connect()
        async with await self.client.start_session() as session:
            session.start_transaction(write_concern=self.write_concern)
            try:
                yield session
            except Exception as e:
                logger.warning(f"Aborting transaction on {self.collection_name}: {e}")
                await session.abort_transaction()
                raise
            else:
                await session.commit_transaction()

    async def with_transaction(
        self, callback: Callable[[AsyncIOMotorClientSession], Awaitable[TResult]]
    ) -> TResult:
        async with self.transaction() as session:
            return await callback(session)
