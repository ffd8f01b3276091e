"""
Storage Core Library

A filesystem abstraction that routes every file and directory operation
through one async interface, so callers never touch the host filesystem
directly and other backends can be substituted later.

Main exports:
- StorageInterface: Storage abstraction
- LocalStorage: Local filesystem storage
- create_storage: Factory for the default backend
- FileByteStream: Lazy byte stream returned by read_stream
- FilesystemError / ErrorKind: Tagged filesystem failures
- StorageSettings / load_settings: Configuration
"""

from .config import StorageSettings, load_settings
from .errors import (
    ConfigurationError,
    ErrorKind,
    FilesystemError,
    StorageCoreError,
    ValidationError,
)
from .services import StorageInterface, LocalStorage, FileByteStream, create_storage

__version__ = "1.0.0"

__all__ = [
    "StorageInterface",
    "LocalStorage",
    "FileByteStream",
    "create_storage",
    "ErrorKind",
    "FilesystemError",
    "StorageCoreError",
    "ConfigurationError",
    "ValidationError",
    "StorageSettings",
    "load_settings"
]
