"""
Protocol definitions for upload module.

Defines the interfaces the upload pipeline depends on, so that the XMPP
session, the progress consumer and the byte source can be swapped or
mocked independently.
"""
from dataclasses import dataclass
from typing import Protocol, Optional, Union, Awaitable, runtime_checkable
import xml.etree.ElementTree as ET

from .models import UploadProgress


@dataclass(frozen=True)
class IQHeader:
    """
    Addressing of an IQ request.

    Attributes:
        id: Unique request identifier used to correlate the response
        to: JID the request is addressed to
        type: IQ type ('get' or 'set')
    """
    id: str
    to: str
    type: str = 'get'


@runtime_checkable
class MessagingSession(Protocol):
    """
    Protocol for a connected, authenticated XMPP session.

    Only correlated request/response is needed for uploads.
    """

    async def send_request(self, payload: ET.Element, header: IQHeader) -> ET.Element:
        """
        Send an IQ carrying payload and wait for its response.

        Args:
            payload: Child element of the IQ
            header: IQ addressing

        Returns:
            The response IQ element (type 'result' or 'error')

        Raises:
            Exception: Any transport failure
        """
        ...


@runtime_checkable
class ProgressSink(Protocol):
    """
    Protocol for progress consumers.

    Offers must never block; a sink that cannot take a snapshot right
    now drops it.
    """

    def offer(self, progress: UploadProgress) -> bool:
        """
        Deliver an intermediate snapshot if possible.

        Returns:
            True if delivered, False if dropped
        """
        ...

    def close(self, final: Optional[UploadProgress] = None) -> None:
        """
        Close the sink, delivering the terminal snapshot.

        Args:
            final: Terminal snapshot; never dropped
        """
        ...


class ByteSource(Protocol):
    """Protocol for readable byte sources (sync or async read)."""

    def read(self, size: int = -1) -> Union[bytes, Awaitable[bytes]]:
        ...


class LoggerProtocol(Protocol):
    """Protocol for logger objects."""

    def debug(self, msg: str) -> None: ...
    def info(self, msg: str) -> None: ...
    def warning(self, msg: str) -> None: ...
    def error(self, msg: str) -> None: ...
