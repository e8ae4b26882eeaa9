"""Tests for HTTP upload service discovery."""
import asyncio
import pytest
from unittest.mock import AsyncMock, Mock
import xml.etree.ElementTree as ET

from xmppupload.core.exceptions import DiscoveryError
from xmppupload.core.upload.models import NS_HTTP_UPLOAD
from xmppupload.core.xmpp import ServiceDiscovery, parse_disco_info, parse_disco_items
from xmppupload.core.xmpp.discovery import (
    NS_DATA_FORMS,
    NS_DISCO_INFO,
    NS_DISCO_ITEMS,
    parse_max_file_size,
)


def info_result(features, max_file_size=None):
    """Build a disco#info result."""
    iq = ET.Element('{jabber:client}iq', {'type': 'result'})
    query = ET.SubElement(iq, f"{{{NS_DISCO_INFO}}}query")
    for feature in features:
        ET.SubElement(query, f"{{{NS_DISCO_INFO}}}feature", {'var': feature})
    if max_file_size is not None:
        form = ET.SubElement(query, f"{{{NS_DATA_FORMS}}}x", {'type': 'result'})
        for var, value in (('FORM_TYPE', NS_HTTP_UPLOAD), ('max-file-size', str(max_file_size))):
            field = ET.SubElement(form, f"{{{NS_DATA_FORMS}}}field", {'var': var})
            ET.SubElement(field, f"{{{NS_DATA_FORMS}}}value").text = value
    return iq


def items_result(jids):
    """Build a disco#items result."""
    iq = ET.Element('{jabber:client}iq', {'type': 'result'})
    query = ET.SubElement(iq, f"{{{NS_DISCO_ITEMS}}}query")
    for jid in jids:
        ET.SubElement(query, f"{{{NS_DISCO_ITEMS}}}item", {'jid': jid})
    return iq


def routed_session(responses):
    """Mock session answering by (address, namespace)."""
    async def send_request(payload, header):
        namespace = payload.tag[1:].split('}')[0]
        response = responses[(header.to, namespace)]
        if isinstance(response, Exception):
            raise response
        return response

    session = Mock()
    session.send_request = AsyncMock(side_effect=send_request)
    return session


class TestParsers:
    """Test suite for disco result parsers."""

    def test_info_with_limit(self):
        """Test descriptor carries the advertised limit."""
        descriptor = parse_disco_info(
            "upload.example.org",
            info_result([NS_HTTP_UPLOAD], max_file_size=5242880)
        )

        assert descriptor.address == "upload.example.org"
        assert descriptor.max_file_size == 5242880

    def test_info_without_limit(self):
        """Test missing limit means 0."""
        descriptor = parse_disco_info("upload.example.org", info_result([NS_HTTP_UPLOAD]))

        assert descriptor.max_file_size == 0

    def test_info_without_feature(self):
        """Test entities without the feature are ignored."""
        assert parse_disco_info("example.org", info_result(["jabber:iq:version"])) is None

    def test_invalid_limit(self):
        """Test a non-numeric limit is treated as unadvertised."""
        iq = info_result([NS_HTTP_UPLOAD], max_file_size="lots")

        assert parse_max_file_size(iq.find(f"{{{NS_DISCO_INFO}}}query")) == 0

    def test_items(self):
        assert parse_disco_items(items_result(["a.example.org", "b.example.org"])) == [
            "a.example.org", "b.example.org"
        ]

    def test_items_empty(self):
        assert parse_disco_items(ET.Element('{jabber:client}iq')) == []


class TestServiceDiscovery:
    """Test suite for ServiceDiscovery."""

    @pytest.mark.asyncio
    async def test_domain_offers_upload(self):
        """Test the server itself is checked first."""
        session = routed_session({
            ("example.org", NS_DISCO_INFO): info_result([NS_HTTP_UPLOAD], 1000),
        })

        descriptor = await ServiceDiscovery(session).discover("example.org")

        assert descriptor.address == "example.org"
        assert session.send_request.await_count == 1

    @pytest.mark.asyncio
    async def test_component_offers_upload(self):
        """Test items are searched for the upload component."""
        session = routed_session({
            ("example.org", NS_DISCO_INFO): info_result([]),
            ("example.org", NS_DISCO_ITEMS): items_result(["muc.example.org", "upload.example.org"]),
            ("muc.example.org", NS_DISCO_INFO): info_result(["http://jabber.org/protocol/muc"]),
            ("upload.example.org", NS_DISCO_INFO): info_result([NS_HTTP_UPLOAD], 104857600),
        })

        descriptor = await ServiceDiscovery(session).discover("example.org")

        assert descriptor.address == "upload.example.org"
        assert descriptor.max_file_size == 104857600

    @pytest.mark.asyncio
    async def test_failing_item_skipped(self):
        """Test an unreachable item does not stop the search."""
        session = routed_session({
            ("example.org", NS_DISCO_INFO): info_result([]),
            ("example.org", NS_DISCO_ITEMS): items_result(["gone.example.org", "upload.example.org"]),
            ("gone.example.org", NS_DISCO_INFO): ConnectionError("unreachable"),
            ("upload.example.org", NS_DISCO_INFO): info_result([NS_HTTP_UPLOAD]),
        })

        descriptor = await ServiceDiscovery(session).discover("example.org")

        assert descriptor.address == "upload.example.org"

    @pytest.mark.asyncio
    async def test_no_upload_service(self):
        """Test discovery fails when nothing offers upload."""
        session = routed_session({
            ("example.org", NS_DISCO_INFO): info_result([]),
            ("example.org", NS_DISCO_ITEMS): items_result([]),
        })

        with pytest.raises(DiscoveryError, match="no HTTP upload service"):
            await ServiceDiscovery(session).discover("example.org")

    @pytest.mark.asyncio
    async def test_error_response(self):
        """Test an IQ error is reported."""
        session = routed_session({
            ("example.org", NS_DISCO_INFO): ET.Element('{jabber:client}iq', {'type': 'error'}),
        })

        with pytest.raises(DiscoveryError):
            await ServiceDiscovery(session).discover("example.org")

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test an unanswered query times out."""
        async def never_answer(payload, header):
            await asyncio.sleep(10)

        session = Mock()
        session.send_request = AsyncMock(side_effect=never_answer)

        with pytest.raises(DiscoveryError, match="timed out"):
            await ServiceDiscovery(session, timeout=0.05).discover("example.org")
