"""Reflib Common - shared configuration, logging and errors.

Every other reflib package imports its logger and settings from here.
"""

from reflib_common.config import Settings, get_settings
from reflib_common.errors import (
    RecordNotFoundError,
    ReflibError,
    RemoteMetadataError,
    StorageError,
)
from reflib_common.logging_config import configure_logging, get_logger

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    "get_logger",
    # Errors
    "ReflibError",
    "StorageError",
    "RecordNotFoundError",
    "RemoteMetadataError",
]
