"""
Lazy byte stream over a local file.
"""

import asyncio
import logging
from typing import BinaryIO, Optional

from ..errors import FilesystemError, wrap_os_error

logger = logging.getLogger(__name__)


class FileByteStream:
    """
    Forward-only async iterator of ``bytes`` chunks read from a file.

    The handle is opened by LocalStorage.read_stream. An open failure is held
    and raised from the first read. The handle is closed on EOF, on a read
    error, on ``aclose()`` and when leaving ``async with``.

    Example:
        async with await storage.read_stream(path) as stream:
            async for chunk in stream:
                sink.write(chunk)
    """

    def __init__(
        self,
        path: str,
        handle: Optional[BinaryIO] = None,
        open_error: Optional[FilesystemError] = None,
        chunk_size: int = 64 * 1024
    ):
        self.path = path
        self.chunk_size = chunk_size
        self._handle = handle
        self._open_error = open_error
        self._exhausted = False

    @property
    def closed(self) -> bool:
        return self._handle is None

    def __aiter__(self) -> "FileByteStream":
        return self

    async def __anext__(self) -> bytes:
        chunk = await self.read()
        if not chunk:
            raise StopAsyncIteration
        return chunk

    async def read(self, size: Optional[int] = None) -> bytes:
        """Read up to ``size`` bytes (default chunk size); ``b""`` at EOF."""
        if self._open_error is not None:
            error, self._open_error = self._open_error, None
            self._exhausted = True
            raise error
        if self._exhausted or self._handle is None:
            return b""

        try:
            chunk = await asyncio.to_thread(self._handle.read, size or self.chunk_size)
        except OSError as e:
            await self.aclose()
            raise wrap_os_error(e, f"Failed to read stream from {self.path}", self.path) from e

        if not chunk:
            await self.aclose()
        return chunk

    async def aclose(self) -> None:
        """Release the underlying handle. Safe to call more than once."""
        self._exhausted = True
        handle, self._handle = self._handle, None
        if handle is not None:
            await asyncio.to_thread(handle.close)
            logger.debug(f"Closed stream for {self.path}")

    async def __aenter__(self) -> "FileByteStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
