"""Custom exceptions for mongorepo repositories."""


class RepositoryError(Exception):
    """Base exception for repository errors."""

    def __init__(self, message: str, collection_name: str | None = None):
        super().__init__(message)
        self.message = message
        self.collection_name = collection_name


class RepositoryConfigurationError(RepositoryError):
    """Repository or document type is misconfigured."""

    pass


class IndexDefinitionError(RepositoryConfigurationError, ValueError):
    """Index builder received an invalid field selector or field list."""

    pass


class RepositoryConnectionError(RepositoryError):
    """Client or collection could not be initialized."""

    pass
