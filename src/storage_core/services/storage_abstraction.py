"""
Storage abstraction layer for pluggable storage backends.
Provides the interface every backend implements and the local filesystem implementation.

Every operation re-queries the host; nothing is cached. Sequences that check a
path and then act on it (exists-then-create, exists-then-delete) are not
atomic, and a concurrent change in between surfaces as a FilesystemError.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence, Union
import asyncio
import errno
import glob
import hashlib
import inspect
import logging
import os
import re
import shutil
import stat
import sys

from ..config import StorageSettings
from ..errors import ErrorKind, FilesystemError, ValidationError, wrap_os_error
from ..validation import validate_integer, validate_string
from .streams import FileByteStream

PathLike = Union[str, os.PathLike]
GlobPattern = Union[str, Sequence[str]]
Visitor = Callable[[str], Optional[Awaitable[None]]]


def _ignore_missing(function, path, error) -> None:
    """rmtree error hook that skips entries removed concurrently."""
    # onexc passes the exception, onerror an exc_info tuple
    if isinstance(error, tuple):
        error = error[1]
    if not isinstance(error, FileNotFoundError):
        raise error



def _split_alternatives(body: str) -> List[str]:
    parts = []
    depth = 0
    start = 0
    for index, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(body[start:index])
            start = index + 1
    parts.append(body[start:])
    return parts


def expand_braces(pattern: str) -> List[str]:
    """
    Expand ``{a,b}`` alternation groups into separate glob patterns.

    Groups may nest. A group without a comma and an unbalanced brace are
    kept literally, as shell brace expansion does.
    """
    depth = 0
    start = None
    for index, char in enumerate(pattern):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth:
            depth -= 1
            if depth == 0:
                alternatives = _split_alternatives(pattern[start + 1:index])
                if len(alternatives) > 1:
                    prefix, suffix = pattern[:start], pattern[index + 1:]
                    expanded = []
                    for alternative in alternatives:
                        expanded.extend(expand_braces(prefix + alternative + suffix))
                    return expanded
    return [pattern]


class StorageInterface(ABC):
    """Abstract storage interface for pluggable storage backends"""

    @abstractmethod
    async def exists(self, path: PathLike) -> bool:
        """Return True if an entry exists at path; never raises"""
        pass

    @abstractmethod
    async def is_directory(self, path: PathLike) -> bool:
        """Return True if path is a directory; raises if path is absent"""
        pass

    @abstractmethod
    async def is_file(self, path: PathLike) -> bool:
        """Return True if path is a regular file; raises if path is absent"""
        pass

    @abstractmethod
    async def is_readable(self, path: PathLike) -> bool:
        """Return True if the current process may read path; never raises"""
        pass

    @abstractmethod
    async def is_writable(self, path: PathLike) -> bool:
        """Return True if the current process may write path; never raises"""
        pass

    @abstractmethod
    async def create_directory(self, path: PathLike) -> None:
        """Create path and any missing ancestors"""
        pass

    @abstractmethod
    async def ensure_directory(self, path: PathLike) -> None:
        """Make sure path is a directory, naming any file that blocks it"""
        pass

    @abstractmethod
    async def remove_directory(self, path: PathLike) -> None:
        """Recursively remove path; absence is success"""
        pass

    @abstractmethod
    async def read_file(self, path: PathLike, encoding: Optional[str] = None, errors: str = "strict") -> str:
        """Read and decode the full file"""
        pass

    @abstractmethod
    async def read_stream(self, path: PathLike, chunk_size: Optional[int] = None) -> FileByteStream:
        """Open a lazy byte stream over the file"""
        pass

    @abstractmethod
    async def write_file(self, path: PathLike, data: Union[str, bytes], encoding: Optional[str] = None) -> None:
        """Create or truncate path and write data"""
        pass

    @abstractmethod
    async def rename(self, old_path: PathLike, new_path: PathLike) -> None:
        """Move old_path to new_path"""
        pass

    @abstractmethod
    async def delete_file(self, path: PathLike) -> None:
        """Delete path; absence is success"""
        pass

    @abstractmethod
    async def list_files(self, directory: PathLike) -> List[str]:
        """Return the entry names directly inside directory"""
        pass

    @abstractmethod
    async def for_each_file_in(
        self,
        directory: PathLike,
        visitor: Visitor,
        pattern: Optional[GlobPattern] = None
    ) -> None:
        """Call visitor once per file matching pattern, one at a time"""
        pass

    async def is_file_readable(self, path: PathLike) -> bool:
        return await self.exists(path) and await self.is_file(path) and await self.is_readable(path)

    async def is_directory_writable(self, path: PathLike) -> bool:
        return await self.exists(path) and await self.is_directory(path) and await self.is_writable(path)

    async def is_directory_readable(self, path: PathLike) -> bool:
        return await self.exists(path) and await self.is_directory(path) and await self.is_readable(path)

    async def hash_file(self, path: PathLike, length: int) -> str:
        """
        Hash a file's contents and return the first ``length`` hex characters.

        The digest is SHA-256 over the content decoded as UTF-8 text, not
        over the raw bytes. Invalid UTF-8 sequences decode to U+FFFD, so a
        binary file hashes differently from its raw bytes and two binary files
        differing only in invalid sequences can collide. A ``length`` above 64
        returns the full digest.

        Args:
            path: File to hash
            length: Number of hex characters to keep (non-negative)

        Returns:
            Lowercase hexadecimal digest prefix
        """
        validate_integer(length, "length", minimum=0)
        content = await self.read_file(path, "utf-8", errors="replace")
        return hashlib.sha256(content.encode("utf-8")).hexdigest()[:length]


class LocalStorage(StorageInterface):
    """Local filesystem storage implementation"""

    def __init__(self, settings: Optional[StorageSettings] = None, logger: Optional[logging.Logger] = None):
        """
        Initialize local storage.

        Args:
            settings: Defaults for encoding, glob pattern and stream chunk size
            logger: Logger used for debug narration, defaults to the module logger
        """
        self.settings = settings or StorageSettings()
        self.logger = logger or logging.getLogger(__name__)

    async def exists(self, path: PathLike) -> bool:
        try:
            await asyncio.to_thread(os.stat, path)
            return True
        except (OSError, ValueError):
            return False

    async def _stat(self, path: PathLike) -> os.stat_result:
        try:
            return await asyncio.to_thread(os.stat, path)
        except NotADirectoryError as e:
            # An ancestor is a file, so the path cannot exist
            raise wrap_os_error(e, f"Failed to query {path}", path, kind=ErrorKind.NOT_FOUND) from e
        except (OSError, ValueError) as e:
            raise wrap_os_error(e, f"Failed to query {path}", path) from e

    async def is_directory(self, path: PathLike) -> bool:
        return stat.S_ISDIR((await self._stat(path)).st_mode)

    async def is_file(self, path: PathLike) -> bool:
        return stat.S_ISREG((await self._stat(path)).st_mode)

    async def _check_access(self, path: PathLike, mode: int, description: str) -> bool:
        try:
            allowed = await asyncio.to_thread(os.access, path, mode)
        except (OSError, ValueError) as e:
            self.logger.debug(f"{path} is not {description}: {e}")
            return False
        if not allowed:
            self.logger.debug(f"{path} is not {description}")
        return allowed

    async def is_readable(self, path: PathLike) -> bool:
        return await self._check_access(path, os.R_OK, "readable")

    async def is_writable(self, path: PathLike) -> bool:
        return await self._check_access(path, os.W_OK, "writable")

    async def create_directory(self, path: PathLike) -> None:
        try:
            await asyncio.to_thread(os.makedirs, path, exist_ok=True)
        except (OSError, ValueError) as e:
            raise wrap_os_error(e, f"Failed to create directory {path}", path) from e

    async def ensure_directory(self, path: PathLike) -> None:
        """
        Make sure ``path`` is a directory.

        A missing path is created with all its ancestors. When creation fails
        because an ancestor is a file, each prefix of the path is checked from
        the root down and the error names the first one that is not a
        directory. An existing non-directory at ``path`` is an error; an
        existing directory is left alone.

        The existence check and the create are separate host calls.

        Raises:
            FilesystemError: OBSTRUCTION naming the blocking ancestor,
                TYPE_MISMATCH when a file occupies ``path``, or the wrapped
                cause of any other creation failure
        """
        path = os.fspath(path)
        if not await self.exists(path):
            try:
                await asyncio.to_thread(os.makedirs, path, exist_ok=True)
            except (OSError, ValueError) as e:
                if getattr(e, "errno", None) == errno.ENOTDIR:
                    blocking_path = await self._find_blocking_ancestor(path)
                    if blocking_path is not None:
                        self.logger.debug(f"Directory {path} is blocked by file {blocking_path}")
                        raise FilesystemError(
                            ErrorKind.OBSTRUCTION,
                            f"Cannot create directory at {path}: a file exists at {blocking_path} blocking the path",
                            path=blocking_path,
                            cause=e,
                            target=path
                        ) from e
                raise wrap_os_error(e, f"Failed to create directory {path}", path) from e
            self.logger.debug(f"Created directory {path}")
        elif not await self.is_directory(path):
            raise FilesystemError(
                ErrorKind.TYPE_MISMATCH,
                f"Cannot create directory at {path}: a file already exists at this location",
                path=path
            )

    async def _find_blocking_ancestor(self, path: str) -> Optional[str]:
        current: Optional[Path] = None
        for part in Path(path).parts:
            current = Path(part) if current is None else current / part
            if await self.exists(current) and not await self.is_directory(current):
                return os.fspath(current)
        return None

    async def remove_directory(self, path: PathLike) -> None:
        if not await self.exists(path):
            return
        try:
            await asyncio.to_thread(self._remove_tree, path)
        except FileNotFoundError:
            self.logger.debug(f"{path} disappeared before it could be removed")
            return
        except OSError as e:
            raise wrap_os_error(e, f"Failed to remove directory {path}", path) from e
        self.logger.debug(f"Removed {path}")

    @staticmethod
    def _remove_tree(path: PathLike) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            if sys.version_info >= (3, 12):
                shutil.rmtree(path, onexc=_ignore_missing)
            else:
                shutil.rmtree(path, onerror=_ignore_missing)
        else:
            os.unlink(path)

    async def read_file(self, path: PathLike, encoding: Optional[str] = None, errors: str = "strict") -> str:
        encoding = encoding or self.settings.default_encoding
        try:
            return await asyncio.to_thread(self._read_text, path, encoding, errors)
        except OSError as e:
            raise wrap_os_error(e, f"Failed to read file {path}", path) from e
        except UnicodeDecodeError as e:
            raise FilesystemError(
                ErrorKind.IO_FAILURE,
                f"Failed to decode {path} as {encoding}: {e.reason}",
                path=path,
                cause=e
            ) from e
        except LookupError as e:
            raise ValidationError(f"Unknown encoding: {encoding}") from e

    @staticmethod
    def _read_text(path: PathLike, encoding: str, errors: str) -> str:
        with open(path, "r", encoding=encoding, errors=errors, newline="") as f:
            return f.read()

    async def read_stream(self, path: PathLike, chunk_size: Optional[int] = None) -> FileByteStream:
        path = os.fspath(path)
        if chunk_size is None:
            chunk_size = self.settings.stream_chunk_size
        chunk_size = validate_integer(chunk_size, "chunk_size", minimum=1)
        try:
            handle = await asyncio.to_thread(open, path, "rb")
        except OSError as e:
            self.logger.debug(f"Could not open stream for {path}: {e}")
            open_error = wrap_os_error(e, f"Failed to open stream for {path}", path)
            return FileByteStream(path, open_error=open_error, chunk_size=chunk_size)
        return FileByteStream(path, handle=handle, chunk_size=chunk_size)

    async def write_file(self, path: PathLike, data: Union[str, bytes], encoding: Optional[str] = None) -> None:
        encoding = encoding or self.settings.default_encoding
        if not isinstance(data, (bytes, bytearray, memoryview)):
            validate_string(data, "data")
        try:
            await asyncio.to_thread(self._write, path, data, encoding)
        except OSError as e:
            raise wrap_os_error(e, f"Failed to write file {path}", path) from e
        except UnicodeEncodeError as e:
            raise FilesystemError(
                ErrorKind.IO_FAILURE,
                f"Failed to encode data for {path} as {encoding}: {e.reason}",
                path=path,
                cause=e
            ) from e
        except LookupError as e:
            raise ValidationError(f"Unknown encoding: {encoding}") from e

    @staticmethod
    def _write(path: PathLike, data: Union[str, bytes], encoding: str) -> None:
        if isinstance(data, str):
            with open(path, "w", encoding=encoding, newline="") as f:
                f.write(data)
        else:
            with open(path, "wb") as f:
                f.write(data)

    async def rename(self, old_path: PathLike, new_path: PathLike) -> None:
        # os.replace overwrites an existing destination like rename(2); EXDEV is not emulated
        try:
            await asyncio.to_thread(os.replace, old_path, new_path)
        except OSError as e:
            raise wrap_os_error(
                e,
                f"Failed to rename {old_path} to {new_path}",
                old_path,
                new_path=os.fspath(new_path)
            ) from e

    async def delete_file(self, path: PathLike) -> None:
        if not await self.exists(path):
            return
        try:
            await asyncio.to_thread(os.unlink, path)
        except FileNotFoundError:
            self.logger.debug(f"{path} disappeared before it could be deleted")
        except OSError as e:
            raise wrap_os_error(e, f"Failed to delete file {path}", path) from e

    async def list_files(self, directory: PathLike) -> List[str]:
        try:
            return await asyncio.to_thread(os.listdir, directory)
        except OSError as e:
            raise wrap_os_error(e, f"Failed to list directory {directory}", directory) from e

    async def for_each_file_in(
        self,
        directory: PathLike,
        visitor: Visitor,
        pattern: Optional[GlobPattern] = None
    ) -> None:
        """
        Call ``visitor`` with the path of each file in ``directory`` matching ``pattern``.

        Matches are relative to ``directory`` and exclude directories. The
        visitor may be a plain function or a coroutine function; each call
        completes before the next starts. A visitor exception propagates
        unchanged and stops the iteration.

        Args:
            directory: Root the pattern is expanded against
            visitor: Called with ``os.path.join(directory, match)``
            pattern: Glob pattern or list of patterns, defaults to ``settings.default_pattern``

        Raises:
            FilesystemError: PATTERN_EXPANSION if the directory is unusable or the pattern is invalid
        """
        directory = os.fspath(directory)
        pattern = self.settings.default_pattern if pattern is None else pattern
        try:
            matches = await asyncio.to_thread(self._expand_pattern, directory, pattern)
        except (OSError, ValueError, TypeError, re.error) as e:
            raise FilesystemError(
                ErrorKind.PATTERN_EXPANSION,
                f"Failed to glob pattern {pattern} in {directory}: {e}",
                path=directory,
                cause=e,
                pattern=pattern
            ) from e

        self.logger.debug(f"Pattern {pattern} matched {len(matches)} file(s) in {directory}")
        for match in matches:
            result = visitor(os.path.join(directory, match))
            if inspect.isawaitable(result):
                await result

    @staticmethod
    def _expand_pattern(directory: str, pattern: GlobPattern) -> List[str]:
        if not os.path.exists(directory):
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), directory)
        if not os.path.isdir(directory):
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), directory)

        patterns = [pattern] if isinstance(pattern, str) else list(pattern)
        matches: List[str] = []
        seen = set()
        for item in patterns:
            if not isinstance(item, str) or not item:
                raise ValueError(f"invalid glob pattern {item!r}")
            for expanded in expand_braces(item):
                for match in glob.glob(expanded, root_dir=directory, recursive=True):
                    if match in seen or not os.path.isfile(os.path.join(directory, match)):
                        continue
                    seen.add(match)
                    matches.append(match)
        return matches


def create_storage(settings: Optional[StorageSettings] = None, logger: Optional[logging.Logger] = None) -> StorageInterface:
    """Create the default storage backend."""
    return LocalStorage(settings=settings, logger=logger)
