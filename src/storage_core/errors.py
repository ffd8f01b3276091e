"""
Error types for the storage core library.

Filesystem failures are reported through a single exception type,
FilesystemError, tagged with an ErrorKind. Handling code switches on
``error.kind`` instead of catching a tree of subclasses.
"""

import errno
from enum import Enum
from typing import Any, Dict, Optional, Union
import os


class ErrorKind(str, Enum):
    """Closed set of filesystem failure kinds."""

    NOT_FOUND = "not_found"
    TYPE_MISMATCH = "type_mismatch"
    PERMISSION_DENIED = "permission_denied"
    OBSTRUCTION = "obstruction"
    PATTERN_EXPANSION = "pattern_expansion"
    IO_FAILURE = "io_failure"


class StorageCoreError(Exception):
    """Base exception for storage core operations."""

    code = "STORAGE_CORE_ERROR"


class ConfigurationError(StorageCoreError):
    """Exception raised when settings cannot be loaded or are invalid."""

    code = "CONFIG_ERROR"


class ValidationError(StorageCoreError, ValueError):
    """Exception raised when an argument fails validation."""

    code = "VALIDATION_ERROR"


class FilesystemError(StorageCoreError):
    """
    Wrapped failure of a host filesystem operation.

    Attributes:
        kind: ErrorKind tag for the failure
        path: The offending path (the blocking ancestor for OBSTRUCTION)
        cause: The underlying exception, if any
        context: Secondary details such as ``target``, ``new_path`` or ``pattern``
    """

    code = "FILESYSTEM_ERROR"

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        path: Optional[Union[str, os.PathLike]] = None,
        cause: Optional[BaseException] = None,
        **context: Any
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.path = os.fspath(path) if path is not None else None
        self.cause = cause
        self.context: Dict[str, Any] = context
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        return f"FilesystemError(kind={self.kind.value!r}, path={self.path!r}, message={self.message!r})"


def kind_for_os_error(error: BaseException) -> ErrorKind:
    """Map a host exception onto an ErrorKind."""
    if isinstance(error, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(error, (IsADirectoryError, NotADirectoryError, FileExistsError)):
        return ErrorKind.TYPE_MISMATCH
    if isinstance(error, OSError) and error.errno == errno.ENOENT:
        return ErrorKind.NOT_FOUND
    return ErrorKind.IO_FAILURE


def wrap_os_error(
    error: BaseException,
    message: str,
    path: Union[str, os.PathLike],
    kind: Optional[ErrorKind] = None,
    **context: Any
) -> FilesystemError:
    """Build a FilesystemError for a failed host call, appending the host message."""
    detail = error.strerror if isinstance(error, OSError) and error.strerror else str(error)
    return FilesystemError(
        kind or kind_for_os_error(error),
        f"{message}: {detail}",
        path=path,
        cause=error,
        **context
    )
