"""
Transfer service.

Streams the content to the PUT URL of an upload slot.
"""
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import time

import aiohttp

from .file_service import CountingReader
from ..models import UploadSlot
from ...context import ContextDone, UploadContext
from ...exceptions import (
    TransferCancelledError,
    TransferError,
    TransferTimeoutError,
    UnexpectedStatusError,
)
from ...logging import get_logger

SUCCESS_STATUSES = (200, 201)


class TransferExecutor:
    """
    Performs the HTTP PUT of an upload slot.

    Reuses the given HTTP session, which may be shared by concurrent
    uploads.

    Responsibilities:
    - Send slot headers verbatim and in order
    - Declare the exact content length
    - Abort promptly when the caller context is cancelled
    - Classify the outcome
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        request_kwargs: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize executor.

        Args:
            session: HTTP session used for the PUT
            request_kwargs: Extra aiohttp request options (e.g. proxy)
        """
        self._session = session
        self._request_kwargs = request_kwargs or {}
        self._logger = get_logger('xmppupload.upload.transfer')

    def build_headers(
        self,
        slot: UploadSlot,
        size: int,
        content_type: Optional[str] = None
    ) -> List[Tuple[str, str]]:
        """
        Build the PUT headers.

        Slot headers come first, unchanged. Content-Length is always the
        declared size.
        """
        headers = [
            (name, value) for name, value in slot.header_items()
            if name.lower() != 'content-length'
        ]
        headers.append(('Content-Length', str(size)))
        if content_type and not any(name.lower() == 'content-type' for name, _ in headers):
            headers.append(('Content-Type', content_type))
        return headers

    async def execute(
        self,
        slot: UploadSlot,
        reader: CountingReader,
        size: int,
        context: Optional[UploadContext] = None,
        content_type: Optional[str] = None
    ) -> None:
        """
        Upload the content.

        Args:
            slot: Negotiated slot
            reader: Counting wrapper around the content
            size: Declared content length
            context: Caller context; cancelling it aborts the transfer
            content_type: MIME type sent unless the slot sets one

        Raises:
            TransferCancelledError: If the context was cancelled
            TransferTimeoutError: If the context deadline elapsed
            UnexpectedStatusError: If the server answered other than 200/201
            TransferError: For transport failures
        """
        headers = self.build_headers(slot, size, content_type)
        size_kb = size / 1024
        upload_start = time.time()
        self._logger.debug(f"PUT {slot.put_url} ({size_kb:.1f} KB)")

        request = self._put(slot.put_url, reader, headers)
        try:
            if context is not None:
                status = await context.run(request)
            else:
                status = await request
        except ContextDone as e:
            upload_time = time.time() - upload_start
            self._logger.error(
                f"Upload aborted after {upload_time:.2f}s "
                f"({reader.bytes_read} of {size} bytes): {e.cause}"
            )
            if e.timed_out:
                raise TransferTimeoutError(f"failed to upload file: {e.cause}") from e.cause
            raise TransferCancelledError(f"failed to upload file: {e.cause}") from e.cause
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            upload_time = time.time() - upload_start
            self._logger.error(f"Upload failed after {upload_time:.2f}s: {e}")
            raise TransferError(f"failed to upload file: {e}") from e

        upload_time = time.time() - upload_start
        if status not in SUCCESS_STATUSES:
            self._logger.error(f"Upload rejected with HTTP {status} after {upload_time:.2f}s")
            raise UnexpectedStatusError(status)

        speed_kbps = (size_kb / upload_time) if upload_time > 0 else 0
        self._logger.debug(f"Upload completed in {upload_time:.2f}s ({speed_kbps:.1f} KB/s)")

    async def _put(
        self,
        url: str,
        reader: CountingReader,
        headers: List[Tuple[str, str]]
    ) -> int:
        """Send the PUT and return the status; the body is discarded."""
        async with self._session.put(
            url,
            data=reader.chunks(),
            headers=headers,
            **self._request_kwargs
        ) as response:
            return response.status
