"""
Repository registration and scoped resolution.

Factories are registered once per document type on a RepositoryProvider. A
RepositoryScope builds at most one repository per document type and closes
them all when it ends. `RepositoryProvider.dependency()` adapts a scope to a
FastAPI dependency, giving one repository per request.

Usage:
    provider = RepositoryProvider.from_settings(get_settings())
    provider.add_mongo_repository(
        WeatherForecast,
        indexes=[create_ascending_index(WeatherForecast, "date", unique=True)],
    )

    @app.get("/weatherforecast")
    def list_forecasts(repository: MongoRepository = Depends(provider.dependency(WeatherForecast))):
        return list(repository.all())
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Any, Callable, Generator, Optional, Union

from pydantic import ValidationError

from .async_repository import AsyncMongoRepository
from .base import BaseMongoRepository, ClientFactory
from .config import MongoSettings
from .exceptions import RepositoryConfigurationError
from .id_generators import IdGenerator, IdStrategy
from .indexes import MongoIndex
from .options import DEFAULT_OPERATION_TIMEOUT, MongoRepositoryOptions
from .repository import MongoRepository

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], BaseMongoRepository]
ConfigureOptions = Callable[[MongoRepositoryOptions], None]


class RepositoryScope:
    """Caches one repository per document type until closed."""

    def __init__(self, factories: dict[type, RepositoryFactory]):
        self._factories = factories
        self._instances: dict[type, BaseMongoRepository] = {}
        self._lock = threading.Lock()

    def get(self, document_type: type) -> BaseMongoRepository:
        instance = self._instances.get(document_type)
        if instance is not None:
            return instance

        factory = self._factories.get(document_type)
        if factory is None:
            raise RepositoryConfigurationError(
                f"No repository registered for '{document_type.__name__}'."
            )

        with self._lock:
            instance = self._instances.get(document_type)
            if instance is None:
                instance = factory()
                self._instances[document_type] = instance
        return instance

    def close(self) -> None:
        with self._lock:
            instances = list(self._instances.values())
            self._instances.clear()
        for instance in instances:
            instance.close()

    def __enter__(self) -> RepositoryScope:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        self.close()


class RepositoryProvider:
    """Registry of repository factories keyed by document type."""

    def __init__(
        self,
        connection_string: Optional[str] = None,
        database: Optional[str] = None,
        operation_timeout: Optional[timedelta] = DEFAULT_OPERATION_TIMEOUT,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.connection_string = connection_string
        self.database = database
        self.operation_timeout = operation_timeout
        self.client_factory = client_factory
        self._factories: dict[type, RepositoryFactory] = {}

    @classmethod
    def from_settings(
        cls, settings: MongoSettings, client_factory: Optional[ClientFactory] = None
    ) -> RepositoryProvider:
        logger.info(
            f"Repository provider for {settings.sanitized_url}/{settings.mongodb_database}"
        )
        return cls(
            connection_string=settings.mongodb_url,
            database=settings.mongodb_database,
            operation_timeout=settings.operation_timeout,
            client_factory=client_factory,
        )

    def add_mongo_repository(
        self,
        document_type: type,
        connection_string: Optional[str] = None,
        database: Optional[str] = None,
        indexes: Optional[list[MongoIndex]] = None,
        configure_options: Optional[ConfigureOptions] = None,
        id_generator: Union[IdStrategy, IdGenerator, None] = None,
        asynchronous: bool = False,
    ) -> RepositoryProvider:
        """
        Register how to build the repository for `document_type`.

        Connection string and database fall back to the provider's defaults.
        `configure_options` receives the options before each repository is
        built and may adjust them in place. Registering a type again replaces
        the previous factory.

        Raises:
            RepositoryConfigurationError: No connection string or database
                available.
        """
        connection_string = connection_string or self.connection_string
        database = database or self.database
        if not connection_string or not database:
            raise RepositoryConfigurationError(
                f"Connection string and database are required to register '{document_type.__name__}'."
            )

        repository_class = AsyncMongoRepository if asynchronous else MongoRepository

        def factory() -> BaseMongoRepository:
            options = MongoRepositoryOptions(
                indexes=list(indexes) if indexes is not None else None,
                operation_timeout=self.operation_timeout,
            )
            if configure_options is not None:
                try:
                    configure_options(options)
                except ValidationError as e:
                    raise RepositoryConfigurationError(
                        f"Invalid options for '{document_type.__name__}': {e}"
                    ) from e

            return repository_class(
                document_type,
                connection_string,
                database,
                options,
                id_generator=id_generator,
                client_factory=self.client_factory,
            )

        self._factories[document_type] = factory
        logger.debug(f"Registered {repository_class.__name__} for {document_type.__name__}")
        return self

    def is_registered(self, document_type: type) -> bool:
        return document_type in self._factories

    def create_scope(self) -> RepositoryScope:
        return RepositoryScope(dict(self._factories))

    def dependency(
        self, document_type: type, scope: Optional[RepositoryScope] = None
    ) -> Callable[[], Generator[BaseMongoRepository, None, None]]:
        """
        FastAPI dependency yielding the repository for `document_type`.

        Without `scope` every request gets its own scope, closed after the
        response. With an application-owned `scope` the same repository is
        shared across requests and the caller closes it on shutdown.
        """
        if not self.is_registered(document_type):
            raise RepositoryConfigurationError(
                f"No repository registered for '{document_type.__name__}'."
            )

        def get_repository() -> Generator[BaseMongoRepository, None, None]:
            if scope is not None:
                yield scope.get(document_type)
                return

            request_scope = self.create_scope()
            try:
                yield request_scope.get(document_type)
            finally:
                request_scope.close()

        return get_repository
