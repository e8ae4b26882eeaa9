"""
Upload coordinator.

Orchestrates the upload process using injected dependencies: slot
negotiation, then the streaming transfer, reporting progress throughout.
"""
import asyncio
import io
import mimetypes
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple, Union

import aiofiles

from .models import UploadProgress, UploadRequest
from .progress import ProgressReporter, ProgressTarget, as_sink
from .protocols import ByteSource, LoggerProtocol
from .services import CountingReader, FileValidator, SlotNegotiator, TransferExecutor
from ..config import DEFAULT_CHUNK_SIZE
from ..context import UploadContext
from ..exceptions import (
    InvalidUploadError,
    MalformedSlotError,
    UploadCancelledError,
    UploadError,
)
from ..logging import get_logger


class _Attempt:
    """What is known about an upload when it stops."""

    def __init__(self):
        self.total_bytes = 0
        self.reader: Optional[CountingReader] = None

    @property
    def bytes_sent(self) -> int:
        return self.reader.bytes_read if self.reader is not None else 0


class UploadCoordinator:
    """
    Coordinates the upload of one buffer or file.

    Errors never escape the entry points: every invocation ends with
    exactly one terminal snapshot, which carries either the GET URL or
    the error, and the progress sink is closed exactly once as the very
    last action. The coordinator does no fan-out of its own; run each
    upload as its own task to upload concurrently.
    """

    def __init__(
        self,
        negotiator: SlotNegotiator,
        executor: TransferExecutor,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: Optional[LoggerProtocol] = None
    ):
        """
        Initialize upload coordinator.

        Args:
            negotiator: Slot negotiator
            executor: Transfer executor
            chunk_size: Bytes read from the source per body chunk
            logger: Logger instance
        """
        self._negotiator = negotiator
        self._executor = executor
        self._chunk_size = chunk_size
        self._validator = FileValidator()
        self._logger = logger or get_logger('xmppupload.upload.coordinator')

    async def upload_bytes(
        self,
        filename: str,
        content: bytes,
        progress: ProgressTarget = None,
        context: Optional[UploadContext] = None,
        content_type: Optional[str] = None
    ) -> UploadProgress:
        """
        Upload an in-memory buffer.

        Args:
            filename: File name announced to the service (directories are stripped)
            content: Bytes to upload
            progress: ProgressSink, callable, or None
            context: Caller context for cancellation
            content_type: MIME type; guessed from filename if omitted

        Returns:
            The terminal snapshot (also delivered to the sink)
        """
        reporter = ProgressReporter(as_sink(progress))

        @asynccontextmanager
        async def open_source() -> AsyncIterator[Tuple[str, ByteSource, int]]:
            self._validator.validate_content(filename, content)
            yield self._validator.basename(filename), io.BytesIO(content), len(content)

        await self._upload(reporter, open_source, context, content_type)
        return reporter.final

    async def upload_file(
        self,
        path: Union[str, Path],
        progress: ProgressTarget = None,
        context: Optional[UploadContext] = None,
        content_type: Optional[str] = None
    ) -> UploadProgress:
        """
        Upload a file from disk.

        The file stays open for the whole invocation and is closed
        before the terminal snapshot is emitted.

        Args:
            path: Path to the file
            progress: ProgressSink, callable, or None
            context: Caller context for cancellation
            content_type: MIME type; guessed from the file name if omitted

        Returns:
            The terminal snapshot (also delivered to the sink)
        """
        reporter = ProgressReporter(as_sink(progress))

        @asynccontextmanager
        async def open_source() -> AsyncIterator[Tuple[str, ByteSource, int]]:
            if not path:
                raise InvalidUploadError("path cannot be empty")
            filename = self._validator.basename(path)
            try:
                handle = await aiofiles.open(path, 'rb')
            except OSError as e:
                raise InvalidUploadError(f"failed to open file: {e}") from e
            try:
                try:
                    size = self._validator.file_size(handle)
                except OSError as e:
                    raise InvalidUploadError(f"failed to get file info: {e}") from e
                yield filename, handle, size
            finally:
                await handle.close()

        await self._upload(reporter, open_source, context, content_type)
        return reporter.final

    async def _upload(
        self,
        reporter: ProgressReporter,
        open_source,
        context: Optional[UploadContext],
        content_type: Optional[str]
    ) -> None:
        """Run the pipeline and emit the terminal snapshot."""
        attempt = _Attempt()
        try:
            async with open_source() as (filename, source, size):
                attempt.total_bytes = size
                get_url = await self._transfer(
                    filename, source, size, reporter, attempt, context, content_type
                )
        except UploadError as e:
            self._logger.error(f"Upload failed: {e}")
            reporter.finish(attempt.bytes_sent, attempt.total_bytes, error=e)
        except asyncio.CancelledError:
            self._logger.warning("Upload task cancelled")
            reporter.finish(
                attempt.bytes_sent,
                attempt.total_bytes,
                error=UploadCancelledError("upload task cancelled")
            )
            raise
        except Exception as e:
            self._logger.exception(f"Unexpected upload failure: {e}")
            error = UploadError(f"unexpected upload failure: {e}")
            error.__cause__ = e
            reporter.finish(attempt.bytes_sent, attempt.total_bytes, error=error)
        else:
            reporter.finish(size, size, get_url=get_url)

    async def _transfer(
        self,
        filename: str,
        source: ByteSource,
        size: int,
        reporter: ProgressReporter,
        attempt: _Attempt,
        context: Optional[UploadContext],
        content_type: Optional[str]
    ) -> str:
        """Negotiate a slot and stream the source to it; returns the GET URL."""
        request = UploadRequest(
            filename=filename,
            size=size,
            content_type=content_type or mimetypes.guess_type(filename)[0]
        )
        size_mb = size / (1024 * 1024)
        self._logger.info(f"Starting upload: {filename} ({size_mb:.2f} MB)")

        slot = await self._negotiator.negotiate(request, context)
        if slot.is_malformed:
            raise MalformedSlotError("upload slot is malformed")

        attempt.reader = CountingReader(
            source,
            callback=lambda count: reporter.report(count, size),
            chunk_size=self._chunk_size
        )
        await self._executor.execute(
            slot, attempt.reader, size, context, request.content_type
        )

        self._logger.info(f"Upload complete: {filename} -> {slot.get_url}")
        return slot.get_url
