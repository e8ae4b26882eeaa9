"""
High-level upload client.

Example:
    >>> session = await connect("alice@example.org", "secret")
    >>> async with UploadClient(session) as client:
    ...     await client.discover()
    ...     task, channel = client.start_upload_file("photo.jpg")
    ...     async for progress in channel:
    ...         print(f"{progress.percentage:.1f}%")
    ...     print(channel.result.get_url)
"""
import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import aiohttp

from .core.config import UploadConfig
from .core.context import UploadContext
from .core.logging import get_logger
from .core.upload import (
    MessagingSession,
    ProgressChannel,
    SlotNegotiator,
    TransferExecutor,
    UploadCoordinator,
    UploadProgress,
    UploadServiceDescriptor,
)
from .core.upload.progress import ProgressTarget
from .core.xmpp import ServiceDiscovery


class UploadClient:
    """
    Uploads files through the HTTP upload service of an XMPP server.

    One HTTP connection pool is shared by all uploads of a client, so
    any number of uploads may run concurrently as separate tasks.
    """

    def __init__(
        self,
        session: MessagingSession,
        descriptor: Optional[UploadServiceDescriptor] = None,
        config: Optional[UploadConfig] = None,
        http_session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize upload client.

        Args:
            session: Connected XMPP session
            descriptor: Upload service, if already discovered
            config: Client configuration (uses defaults if not provided)
            http_session: Shared HTTP session; created on demand if omitted
        """
        self._session = session
        self._descriptor = descriptor
        self._config = config or UploadConfig.default()
        self._http_session = http_session
        self._owns_http_session = False
        self._connector: Optional[aiohttp.TCPConnector] = None

        self._logger = get_logger('xmppupload.client')
        root_logger = logging.getLogger()
        if not root_logger.handlers:
            self._logger.setLevel(self._config.log_level)

    @property
    def config(self) -> UploadConfig:
        return self._config

    @property
    def descriptor(self) -> Optional[UploadServiceDescriptor]:
        """The upload service used for new uploads."""
        return self._descriptor

    @descriptor.setter
    def descriptor(self, value: Optional[UploadServiceDescriptor]):
        self._descriptor = value

    async def __aenter__(self) -> 'UploadClient':
        await self._ensure_http_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_http_session(self) -> aiohttp.ClientSession:
        """Ensure the HTTP session is created and open."""
        if self._http_session is None or self._http_session.closed:
            self._connector = aiohttp.TCPConnector(
                **self._config.get_connector_kwargs()
            )
            self._http_session = aiohttp.ClientSession(
                connector=self._connector,
                **self._config.get_session_kwargs()
            )
            self._owns_http_session = True
        return self._http_session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self._owns_http_session and self._http_session and not self._http_session.closed:
            await self._http_session.close()
        self._http_session = None
        self._connector = None
        self._owns_http_session = False

    async def discover(self, domain: Optional[str] = None) -> UploadServiceDescriptor:
        """
        Discover the upload service and use it for later uploads.

        Args:
            domain: Server domain; defaults to the session's domain

        Raises:
            DiscoveryError: If the server offers no upload service
        """
        domain = domain or getattr(self._session, 'domain', None)
        if not domain:
            raise ValueError("domain is required when the session does not expose one")
        self._descriptor = await ServiceDiscovery(self._session).discover(domain)
        return self._descriptor

    async def _coordinator(self) -> UploadCoordinator:
        http_session = await self._ensure_http_session()
        return UploadCoordinator(
            negotiator=SlotNegotiator(
                self._session,
                self._descriptor,
                timeout=self._config.slot_timeout
            ),
            executor=TransferExecutor(
                http_session,
                request_kwargs=self._config.get_request_kwargs()
            ),
            chunk_size=self._config.chunk_size
        )

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

        Errors are reported through the terminal snapshot, never raised.

        Returns:
            Terminal snapshot; get_url is set on success
        """
        coordinator = await self._coordinator()
        return await coordinator.upload_bytes(
            filename, content, progress, context, content_type
        )

    async def upload_file(
        self,
        path: Union[str, Path],
        progress: ProgressTarget = None,
        context: Optional[UploadContext] = None,
        content_type: Optional[str] = None
    ) -> UploadProgress:
        """
        Upload a file from disk.

        Errors are reported through the terminal snapshot, never raised.

        Returns:
            Terminal snapshot; get_url is set on success
        """
        coordinator = await self._coordinator()
        return await coordinator.upload_file(path, progress, context, content_type)

    def start_upload_bytes(
        self,
        filename: str,
        content: bytes,
        context: Optional[UploadContext] = None,
        content_type: Optional[str] = None
    ) -> Tuple['asyncio.Task[UploadProgress]', ProgressChannel]:
        """
        Launch upload_bytes() as a task.

        Returns:
            The task and the channel its progress is delivered to
        """
        channel = ProgressChannel(self._config.progress_buffer)
        task = asyncio.create_task(
            self.upload_bytes(filename, content, channel, context, content_type)
        )
        return task, channel

    def start_upload_file(
        self,
        path: Union[str, Path],
        context: Optional[UploadContext] = None,
        content_type: Optional[str] = None
    ) -> Tuple['asyncio.Task[UploadProgress]', ProgressChannel]:
        """
        Launch upload_file() as a task.

        Returns:
            The task and the channel its progress is delivered to
        """
        channel = ProgressChannel(self._config.progress_buffer)
        task = asyncio.create_task(
            self.upload_file(path, channel, context, content_type)
        )
        return task, channel
