"""
Service layer for storage abstraction.

Contains abstractions for:
- Storage backends (local filesystem)
- Lazy byte streams over stored files
"""

from .storage_abstraction import StorageInterface, LocalStorage, create_storage
from .streams import FileByteStream

__all__ = [
    "StorageInterface",
    "LocalStorage",
    "FileByteStream",
    "create_storage"
]
