"""Pytest fixtures for xmppupload tests."""
import asyncio
from contextlib import asynccontextmanager
from typing import List, Optional, Tuple
from unittest.mock import AsyncMock, Mock
import xml.etree.ElementTree as ET

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from xmppupload.core.upload.models import NS_HTTP_UPLOAD, UploadServiceDescriptor


def build_slot_response(
    put_url: str = "https://upload.example.org/put/1",
    get_url: str = "https://upload.example.org/get/1",
    headers: Optional[List[Tuple[str, str]]] = None,
    wrap_in_iq: bool = True
) -> ET.Element:
    """Build a XEP-0363 slot result the way a server sends it."""
    slot = ET.Element(f"{{{NS_HTTP_UPLOAD}}}slot")
    put = ET.SubElement(slot, f"{{{NS_HTTP_UPLOAD}}}put")
    if put_url is not None:
        put.set('url', put_url)
    for name, value in headers or []:
        header = ET.SubElement(put, f"{{{NS_HTTP_UPLOAD}}}header")
        header.set('name', name)
        header.text = value
    get = ET.SubElement(slot, f"{{{NS_HTTP_UPLOAD}}}get")
    if get_url is not None:
        get.set('url', get_url)

    if not wrap_in_iq:
        return slot
    iq = ET.Element('{jabber:client}iq', {'type': 'result', 'id': 'abc'})
    iq.append(slot)
    return iq


@pytest.fixture
def slot_response():
    """Factory for slot result stanzas."""
    return build_slot_response


@pytest.fixture
def descriptor():
    """Upload service accepting up to 50 MB."""
    return UploadServiceDescriptor(
        address="upload.example.org",
        max_file_size=50 * 1024 * 1024
    )


@pytest.fixture
def messaging_session():
    """Mock XMPP session answering with a valid slot."""
    session = Mock()
    session.send_request = AsyncMock(return_value=build_slot_response())
    return session


class RecordingUploadServer:
    """Local HTTP server recording PUT requests."""

    def __init__(self, status: int = 201, read_delay: float = 0.0):
        self.status = status
        self.read_delay = read_delay
        self.requests = []
        self._server: Optional[TestServer] = None

    async def _handle_put(self, request: web.Request) -> web.Response:
        received = bytearray()
        async for chunk in request.content.iter_chunked(64 * 1024):
            received.extend(chunk)
            if self.read_delay:
                await asyncio.sleep(self.read_delay)
        self.requests.append({
            'method': request.method,
            'path': request.path,
            'headers': list(request.headers.items()),
            'body': bytes(received),
        })
        return web.Response(status=self.status)

    def url(self, path: str = "/put/1") -> str:
        return str(self._server.make_url(path))

    async def start(self):
        app = web.Application(client_max_size=64 * 1024 * 1024)
        app.router.add_put('/{tail:.*}', self._handle_put)
        self._server = TestServer(app)
        await self._server.start_server()

    async def close(self):
        if self._server is not None:
            await self._server.close()


@pytest.fixture
def upload_server():
    """Factory: `async with upload_server(status=201) as server: ...`."""

    @asynccontextmanager
    async def factory(status: int = 201, read_delay: float = 0.0):
        server = RecordingUploadServer(status=status, read_delay=read_delay)
        await server.start()
        try:
            yield server
        finally:
            await server.close()

    return factory


@pytest.fixture
def temp_file(tmp_path):
    """Factory writing content to a file in tmp_path."""

    def factory(content: bytes, name: str = "sample.bin"):
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return factory
