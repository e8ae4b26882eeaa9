"""XMPP collaborators: service discovery and the slixmpp session adapter."""
from .discovery import ServiceDiscovery, parse_disco_info, parse_disco_items

__all__ = [
    'ServiceDiscovery',
    'parse_disco_info',
    'parse_disco_items',
]
