"""Logging setup and Logfire instrumentation for applications using mongorepo."""

import logging
from logging.config import dictConfig

import logfire

from mongorepo import __version__
from mongorepo.config import MongoSettings

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Console logging for applications. Library modules never add handlers."""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"level": level.upper(), "handlers": ["console"]},
            "loggers": {
                "pymongo": {"level": "WARNING"},
            },
        }
    )


def initialize_logfire(settings: MongoSettings) -> bool:
    """
    Initialize Logfire with MongoDB instrumentation.

    Must be called ONCE at application startup, before repositories connect.

    This function configures Logfire cloud tracking and instruments:
    - PyMongo commands (also covers Motor, which runs on PyMongo)
    - Python logging (bridges to Logfire)

    Args:
        settings: Settings containing the Logfire token

    Returns:
        True when Logfire was configured. Failures are logged, never raised.
    """
    if not settings.logfire_token:
        logger.warning("Logfire token not set - observability disabled")
        return False

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="mongorepo",
            service_version=__version__,
            environment=settings.environment,
        )

        logfire.instrument_pymongo()

        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("Logfire cloud tracking initialized")
        return True

    except Exception as e:
        # Observability is optional
        logger.warning(f"Failed to initialize Logfire: {e}")
        return False
