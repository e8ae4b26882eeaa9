"""
Data models for upload module.

Uses dataclasses for immutable, type-safe data structures. The request
and slot models also know their XEP-0363 XML form.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import xml.etree.ElementTree as ET

NS_HTTP_UPLOAD = 'urn:xmpp:http:upload:0'


def _qname(local: str) -> str:
    return f"{{{NS_HTTP_UPLOAD}}}{local}"


@dataclass(frozen=True)
class UploadServiceDescriptor:
    """
    HTTP upload service discovered on the XMPP server.

    Attributes:
        address: JID of the upload component
        max_file_size: Largest accepted upload in bytes (0 = not advertised)
    """
    address: str
    max_file_size: int = 0

    @property
    def is_discovered(self) -> bool:
        """Returns True if the descriptor names a service."""
        return bool(self.address)


@dataclass
class UploadRequest:
    """
    Slot request for a single file.

    Attributes:
        filename: Base name of the file (no path separators)
        size: File size in bytes
        content_type: Optional MIME type

    Example:
        >>> ET.tostring(UploadRequest("a.txt", 3).to_element())
        b'<ns0:request xmlns:ns0="urn:xmpp:http:upload:0" filename="a.txt" size="3" />'
    """
    filename: str
    size: int
    content_type: Optional[str] = None

    def __post_init__(self):
        if not self.filename:
            raise ValueError("filename cannot be empty")
        if '/' in self.filename or '\\' in self.filename:
            raise ValueError(f"filename must be a base name: {self.filename!r}")
        if self.size < 0:
            raise ValueError(f"size cannot be negative: {self.size}")

    def to_element(self) -> ET.Element:
        """Build the <request/> payload element."""
        element = ET.Element(_qname('request'))
        element.set('filename', self.filename)
        element.set('size', str(self.size))
        if self.content_type:
            element.set('content-type', self.content_type)
        return element


@dataclass(frozen=True)
class SlotHeader:
    """Header the upload server requires on the PUT request."""
    name: str
    value: str


@dataclass
class UploadSlot:
    """
    Upload slot issued by the HTTP upload service.

    Attributes:
        put_url: URL to PUT the content to
        put_headers: Headers for the PUT request, in server order
        get_url: URL the content will be retrievable from
    """
    put_url: str = ''
    put_headers: List[SlotHeader] = field(default_factory=list)
    get_url: str = ''

    @property
    def is_malformed(self) -> bool:
        """Returns True if either URL is missing."""
        return not self.put_url or not self.get_url

    def header_items(self) -> List[Tuple[str, str]]:
        """Headers as (name, value) pairs, order preserved."""
        return [(header.name, header.value) for header in self.put_headers]

    @classmethod
    def from_element(cls, element: ET.Element) -> 'UploadSlot':
        """
        Decode a <slot/> element.

        Args:
            element: The slot element, or a stanza containing one

        Returns:
            Decoded slot; URLs are empty strings where absent

        Raises:
            ValueError: If no slot element is present
        """
        slot = element if element.tag == _qname('slot') else element.find(_qname('slot'))
        if slot is None:
            raise ValueError(f"no slot element in <{element.tag}>")

        put_url = ''
        headers: List[SlotHeader] = []
        put = slot.find(_qname('put'))
        if put is not None:
            put_url = put.get('url', '')
            for header in put.findall(_qname('header')):
                name = header.get('name')
                if not name:
                    raise ValueError("slot header without a name")
                headers.append(SlotHeader(name=name, value=header.text or ''))

        get = slot.find(_qname('get'))
        get_url = get.get('url', '') if get is not None else ''

        return cls(put_url=put_url, put_headers=headers, get_url=get_url)


@dataclass(frozen=True)
class UploadProgress:
    """
    Upload progress snapshot.

    Attributes:
        bytes_sent: Bytes read from the source so far
        total_bytes: Declared upload size
        get_url: Retrieval URL, set only on success
        error: Failure, set only on a failed terminal snapshot
        is_terminal: True for the last snapshot of an upload
    """
    bytes_sent: int = 0
    total_bytes: int = 0
    get_url: str = ''
    error: Optional[Exception] = None
    is_terminal: bool = False

    @property
    def percentage(self) -> float:
        """Returns upload progress as percentage."""
        if self.total_bytes == 0:
            return 0.0
        return (self.bytes_sent / self.total_bytes) * 100

    @property
    def succeeded(self) -> bool:
        """Returns True for a successful terminal snapshot."""
        return self.is_terminal and self.error is None

    @property
    def failed(self) -> bool:
        return self.error is not None
