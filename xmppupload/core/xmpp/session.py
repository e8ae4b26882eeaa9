"""
slixmpp session adapter.

Implements the MessagingSession protocol on top of a slixmpp client.
"""
from typing import Optional
import asyncio
import xml.etree.ElementTree as ET

import slixmpp
from slixmpp.exceptions import IqError, IqTimeout

from ..exceptions import UploadError
from ..logging import get_logger
from ..upload.protocols import IQHeader

logger = get_logger('xmppupload.xmpp')


class SlixmppSession:
    """
    MessagingSession backed by a connected slixmpp.ClientXMPP.

    Error responses are returned, not raised, so callers can inspect
    the error condition; timeouts surface as asyncio.TimeoutError.
    """

    def __init__(self, client: slixmpp.ClientXMPP, timeout: Optional[float] = None):
        """
        Initialize adapter.

        Args:
            client: Connected and authenticated client
            timeout: Per-request timeout handed to slixmpp
        """
        self._client = client
        self._timeout = timeout

    @property
    def client(self) -> slixmpp.ClientXMPP:
        return self._client

    @property
    def domain(self) -> str:
        """Domain of the logged-in account."""
        return self._client.boundjid.domain

    async def send_request(self, payload: ET.Element, header: IQHeader) -> ET.Element:
        iq = self._client.make_iq(id=header.id, ito=header.to, itype=header.type)
        iq.xml.append(payload)
        try:
            response = await iq.send(timeout=self._timeout)
        except IqError as e:
            return e.iq.xml
        except IqTimeout as e:
            raise asyncio.TimeoutError(f"no response to iq {header.id}") from e
        return response.xml

    async def close(self) -> None:
        """Disconnect the underlying client."""
        result = self._client.disconnect()
        if asyncio.isfuture(result):
            await result


async def connect(jid: str, password: str, timeout: float = 30.0) -> SlixmppSession:
    """
    Connect and authenticate a slixmpp client.

    Args:
        jid: Account JID
        password: Account password
        timeout: Seconds to wait for the session to start

    Returns:
        Session adapter for the connected client

    Raises:
        UploadError: If login fails or times out
    """
    client = slixmpp.ClientXMPP(jid, password)
    loop = asyncio.get_running_loop()
    started = loop.create_future()

    def on_session_start(_event):
        client.send_presence()
        if not started.done():
            started.set_result(True)

    def on_failed_auth(_event):
        if not started.done():
            started.set_exception(UploadError(f"authentication failed for {jid}"))

    client.add_event_handler('session_start', on_session_start)
    client.add_event_handler('failed_auth', on_failed_auth)

    logger.info(f"Connecting as {jid}")
    client.connect()
    try:
        await asyncio.wait_for(started, timeout=timeout)
    except asyncio.TimeoutError as e:
        client.disconnect()
        raise UploadError(f"timed out connecting as {jid}") from e
    except UploadError:
        client.disconnect()
        raise

    logger.info(f"Session started for {client.boundjid}")
    return SlixmppSession(client)
