"""mongorepo: typed repositories over MongoDB for pydantic documents."""

__version__ = "0.1.0"

from .async_repository import AsyncMongoRepository
from .config import MongoSettings, get_settings
from .dependencies import RepositoryProvider, RepositoryScope
from .documents import MongoDocument, bson_collection, get_collection_name
from .exceptions import (
    IndexDefinitionError,
    RepositoryConfigurationError,
    RepositoryConnectionError,
    RepositoryError,
)
from .id_generators import (
    IdGenerator,
    IdStrategy,
    ObjectIdGenerator,
    StringObjectIdGenerator,
    UuidIdGenerator,
    resolve_id_generator,
)
from .indexes import (
    CompoundIndexField,
    IndexBuilder,
    IndexDirection,
    MongoIndex,
    create_ascending_index,
    create_compound_index,
    create_descending_index,
    field,
)
from .options import (
    FindOneAndDeleteOptions,
    FindOneAndReplaceOptions,
    FindOptions,
    InsertManyOptions,
    MongoRepositoryOptions,
)
from .repository import MongoRepository

__all__ = [
    "__version__",
    # Repositories
    "MongoRepository",
    "AsyncMongoRepository",
    "RepositoryProvider",
    "RepositoryScope",
    # Documents
    "MongoDocument",
    "bson_collection",
    "get_collection_name",
    # Indexes
    "IndexBuilder",
    "IndexDirection",
    "MongoIndex",
    "CompoundIndexField",
    "create_ascending_index",
    "create_descending_index",
    "create_compound_index",
    "field",
    # ID generation
    "IdGenerator",
    "IdStrategy",
    "UuidIdGenerator",
    "ObjectIdGenerator",
    "StringObjectIdGenerator",
    "resolve_id_generator",
    # Options and settings
    "MongoRepositoryOptions",
    "FindOptions",
    "FindOneAndReplaceOptions",
    "FindOneAndDeleteOptions",
    "InsertManyOptions",
    "MongoSettings",
    "get_settings",
    # Errors
    "RepositoryError",
    "RepositoryConfigurationError",
    "RepositoryConnectionError",
    "IndexDefinitionError",
]
