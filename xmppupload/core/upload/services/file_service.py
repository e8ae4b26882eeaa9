"""
Source validation and reading services.

Single Responsibility: Each class handles one specific task.
"""
import inspect
import os
import stat
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Union

from ..protocols import ByteSource
from ...config import DEFAULT_CHUNK_SIZE
from ...exceptions import InvalidUploadError


class FileValidator:
    """
    Validates upload sources before a slot is requested.

    Responsibilities:
    - Reduce names and paths to a non-empty base name
    - Reject empty in-memory content
    - Size an opened file, rejecting anything that is not a regular file
    """

    def basename(self, name: Union[str, Path]) -> str:
        """
        Get the base name used as the slot filename.

        Args:
            name: File name or path

        Returns:
            Base name without directories

        Raises:
            InvalidUploadError: If no base name remains
        """
        filename = Path(name).name if name else ''
        if not filename:
            raise InvalidUploadError(f"Cannot derive a file name from {str(name)!r}")
        return filename

    def validate_content(self, filename: str, content: Optional[bytes]) -> None:
        """
        Validate an in-memory upload.

        Raises:
            InvalidUploadError: If filename or content is empty
        """
        if not filename or not content:
            raise InvalidUploadError("filename and content cannot be empty")

    def file_size(self, handle) -> int:
        """
        Get the size of an opened file.

        Args:
            handle: Open file object exposing fileno()

        Returns:
            File size in bytes

        Raises:
            InvalidUploadError: If the file is not a regular file
        """
        info = os.fstat(handle.fileno())
        if not stat.S_ISREG(info.st_mode):
            raise InvalidUploadError("Path is not a regular file")
        return info.st_size


class CountingReader:
    """
    Byte source wrapper that counts what is read through it.

    After every read the cumulative count is passed to the callback.
    End-of-stream and errors of the wrapped source are passed through
    untouched. Meant for a single consumer.
    """

    def __init__(
        self,
        source: ByteSource,
        callback: Optional[Callable[[int], None]] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        """
        Initialize reader.

        Args:
            source: Object with a sync or async read(size) method
            callback: Called with the running byte count after each read
            chunk_size: Bytes requested per read when iterating
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive: {chunk_size}")
        self._source = source
        self._callback = callback
        self._chunk_size = chunk_size
        self._bytes_read = 0

    @property
    def bytes_read(self) -> int:
        """Bytes read so far."""
        return self._bytes_read

    async def read(self, size: int = -1) -> bytes:
        """Read from the source and record the count."""
        data = self._source.read(size)
        if inspect.isawaitable(data):
            data = await data
        self._bytes_read += len(data)
        if self._callback is not None:
            self._callback(self._bytes_read)
        return data

    async def chunks(self) -> AsyncIterator[bytes]:
        """Yield chunks until the source is exhausted."""
        while True:
            chunk = await self.read(self._chunk_size)
            if not chunk:
                return
            yield chunk

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.chunks()
