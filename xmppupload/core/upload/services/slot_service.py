"""
Slot negotiation service.

Requests a XEP-0363 upload slot from the HTTP upload component.
"""
from typing import Optional
import asyncio
import time
import uuid
import xml.etree.ElementTree as ET

from ..models import UploadRequest, UploadServiceDescriptor, UploadSlot
from ..protocols import IQHeader, MessagingSession
from ...config import SLOT_REQUEST_TIMEOUT
from ...context import ContextDone, UploadContext
from ...exceptions import (
    MalformedResponseError,
    NegotiationError,
    NegotiationTimeoutError,
    ServiceUnavailableError,
    SizeExceededError,
)
from ...logging import get_logger

NS_STANZAS = 'urn:ietf:params:xml:ns:xmpp-stanzas'


def _error_condition(response: ET.Element) -> str:
    """Defined condition of an IQ error response, e.g. 'not-acceptable'."""
    error = response.find('{jabber:client}error')
    if error is None:
        error = response.find('error')
    if error is None:
        return 'unknown error'
    for child in error:
        if child.tag.startswith(f"{{{NS_STANZAS}}}") and not child.tag.endswith('}text'):
            return child.tag.split('}', 1)[1]
    return 'unknown error'


class SlotNegotiator:
    """
    Requests upload slots from the HTTP upload component.

    Responsibilities:
    - Refuse requests when no upload service is known
    - Enforce the size limit the service advertised
    - Send the slot request and decode the answer

    A single attempt is made per call.
    """

    def __init__(
        self,
        session: MessagingSession,
        descriptor: Optional[UploadServiceDescriptor] = None,
        timeout: float = SLOT_REQUEST_TIMEOUT
    ):
        """
        Initialize negotiator.

        Args:
            session: Connected XMPP session
            descriptor: Discovered upload service, if any
            timeout: Hard limit on the request round-trip in seconds
        """
        self._session = session
        self._descriptor = descriptor
        self._timeout = timeout
        self._logger = get_logger('xmppupload.upload.slot')

    @property
    def descriptor(self) -> Optional[UploadServiceDescriptor]:
        return self._descriptor

    async def negotiate(
        self,
        request: UploadRequest,
        context: Optional[UploadContext] = None
    ) -> UploadSlot:
        """
        Request an upload slot.

        Args:
            request: File name, size and content type
            context: Caller context; cancelling it aborts the request

        Returns:
            Decoded slot (URLs are not checked here)

        Raises:
            ServiceUnavailableError: If no upload service is known
            SizeExceededError: If the file is larger than the service accepts
            NegotiationTimeoutError: If the service does not answer in time
            MalformedResponseError: If the answer has no decodable slot
            NegotiationError: For transport and stanza errors
        """
        descriptor = self._descriptor
        if descriptor is None or not descriptor.is_discovered:
            raise ServiceUnavailableError(
                "no upload component found yet, try discovering services"
            )

        # The advertised limit is taken on trust.
        if descriptor.max_file_size and request.size > descriptor.max_file_size:
            raise SizeExceededError(request.size, descriptor.max_file_size)

        header = IQHeader(id=str(uuid.uuid4()), to=descriptor.address, type='get')
        payload = request.to_element()

        self._logger.debug(
            f"Requesting slot {header.id} from {descriptor.address} "
            f"for {request.filename} ({request.size} bytes)"
        )
        started = time.time()
        response = await self._send(payload, header, context)
        elapsed = time.time() - started

        if response.get('type') == 'error':
            condition = _error_condition(response)
            self._logger.error(f"Upload service refused slot {header.id}: {condition}")
            raise NegotiationError(f"upload service returned error: {condition}")

        try:
            slot = UploadSlot.from_element(response)
        except ValueError as e:
            raise MalformedResponseError(
                f"failed to decode upload slot response, {e}"
            ) from e

        self._logger.debug(f"Slot {header.id} received in {elapsed:.2f}s: {slot.put_url}")
        return slot

    async def _send(
        self,
        payload: ET.Element,
        header: IQHeader,
        context: Optional[UploadContext]
    ) -> ET.Element:
        """Send the request within the timeout and the caller context."""
        request = self._session.send_request(payload, header)
        if context is not None:
            request = context.run(request)

        try:
            response = await asyncio.wait_for(request, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            self._logger.error(f"Slot request {header.id} timed out after {self._timeout}s")
            raise NegotiationTimeoutError(
                f"upload slot request timed out after {self._timeout:g}s"
            ) from e
        except ContextDone as e:
            if e.timed_out:
                raise NegotiationTimeoutError(
                    f"upload slot request aborted: {e.cause}"
                ) from e.cause
            raise NegotiationError(f"upload slot request cancelled: {e.cause}") from e.cause
        except Exception as e:
            self._logger.error(f"Slot request {header.id} failed: {e}")
            raise NegotiationError(
                f"failed to send iq requesting upload slot, {e}"
            ) from e

        if not isinstance(response, ET.Element):
            raise MalformedResponseError(
                f"failed to decode upload slot response, got {type(response).__name__}"
            )
        return response
