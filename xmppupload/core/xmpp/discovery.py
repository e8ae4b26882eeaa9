"""
HTTP upload service discovery.

Finds the upload component of an XMPP server with service discovery
(XEP-0030) and reads its size limit from the extended info form
(XEP-0128), as described in XEP-0363 section 3.
"""
from typing import List, Optional
import asyncio
import uuid
import xml.etree.ElementTree as ET

from ..config import SLOT_REQUEST_TIMEOUT
from ..exceptions import DiscoveryError
from ..logging import get_logger
from ..upload.models import NS_HTTP_UPLOAD, UploadServiceDescriptor
from ..upload.protocols import IQHeader, MessagingSession

NS_DISCO_INFO = 'http://jabber.org/protocol/disco#info'
NS_DISCO_ITEMS = 'http://jabber.org/protocol/disco#items'
NS_DATA_FORMS = 'jabber:x:data'


def _find_query(element: ET.Element, namespace: str) -> Optional[ET.Element]:
    tag = f"{{{namespace}}}query"
    if element.tag == tag:
        return element
    return element.find(tag)


def parse_max_file_size(query: ET.Element) -> int:
    """
    Read max-file-size from the upload service's info form.

    Returns:
        Limit in bytes, 0 if not advertised
    """
    for form in query.findall(f"{{{NS_DATA_FORMS}}}x"):
        values = {}
        for form_field in form.findall(f"{{{NS_DATA_FORMS}}}field"):
            value = form_field.find(f"{{{NS_DATA_FORMS}}}value")
            values[form_field.get('var')] = (value.text or '').strip() if value is not None else ''
        if values.get('FORM_TYPE') != NS_HTTP_UPLOAD:
            continue
        try:
            return int(values.get('max-file-size') or 0)
        except ValueError:
            return 0
    return 0


def parse_disco_info(address: str, element: ET.Element) -> Optional[UploadServiceDescriptor]:
    """
    Build a descriptor from a disco#info result.

    Args:
        address: JID the info was requested from
        element: disco#info result IQ or its query element

    Returns:
        Descriptor if the entity offers HTTP upload, otherwise None
    """
    query = _find_query(element, NS_DISCO_INFO)
    if query is None:
        return None

    features = {
        feature.get('var')
        for feature in query.findall(f"{{{NS_DISCO_INFO}}}feature")
    }
    if NS_HTTP_UPLOAD not in features:
        return None

    return UploadServiceDescriptor(
        address=address,
        max_file_size=parse_max_file_size(query)
    )


def parse_disco_items(element: ET.Element) -> List[str]:
    """JIDs listed in a disco#items result."""
    query = _find_query(element, NS_DISCO_ITEMS)
    if query is None:
        return []
    return [
        item.get('jid') for item in query.findall(f"{{{NS_DISCO_ITEMS}}}item")
        if item.get('jid')
    ]


class ServiceDiscovery:
    """
    Discovers the HTTP upload service of a server.

    Example:
        >>> discovery = ServiceDiscovery(session)
        >>> descriptor = await discovery.discover("example.org")
        >>> print(descriptor.address, descriptor.max_file_size)
    """

    def __init__(self, session: MessagingSession, timeout: float = SLOT_REQUEST_TIMEOUT):
        """
        Initialize discovery.

        Args:
            session: Connected XMPP session
            timeout: Limit for each disco request in seconds
        """
        self._session = session
        self._timeout = timeout
        self._logger = get_logger('xmppupload.xmpp.discovery')

    async def _query(self, address: str, namespace: str) -> ET.Element:
        header = IQHeader(id=str(uuid.uuid4()), to=address, type='get')
        payload = ET.Element(f"{{{namespace}}}query")
        try:
            response = await asyncio.wait_for(
                self._session.send_request(payload, header),
                timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            raise DiscoveryError(f"disco query to {address} timed out") from e
        except Exception as e:
            raise DiscoveryError(f"disco query to {address} failed: {e}") from e
        if response.get('type') == 'error':
            raise DiscoveryError(f"disco query to {address} returned an error")
        return response

    async def info(self, address: str) -> Optional[UploadServiceDescriptor]:
        """Query one entity; returns its descriptor if it offers HTTP upload."""
        response = await self._query(address, NS_DISCO_INFO)
        return parse_disco_info(address, response)

    async def items(self, address: str) -> List[str]:
        """List the items (usually components) of an entity."""
        response = await self._query(address, NS_DISCO_ITEMS)
        return parse_disco_items(response)

    async def discover(self, domain: str) -> UploadServiceDescriptor:
        """
        Find the upload service of a server.

        The server itself is checked first, then each of its items.

        Raises:
            DiscoveryError: If no entity offers HTTP upload
        """
        descriptor = await self.info(domain)
        if descriptor is not None:
            self._logger.info(f"Upload service found on {domain}")
            return descriptor

        for address in await self.items(domain):
            try:
                descriptor = await self.info(address)
            except DiscoveryError as e:
                self._logger.debug(f"Skipping {address}: {e}")
                continue
            if descriptor is not None:
                self._logger.info(
                    f"Upload service found: {address} "
                    f"(max {descriptor.max_file_size} bytes)"
                )
                return descriptor

        raise DiscoveryError(f"no HTTP upload service found on {domain}")
