"""
xmppupload - Async Python library for XMPP HTTP file uploads (XEP-0363).

Usage:
    >>> from xmppupload import UploadClient, ProgressChannel
    >>> from xmppupload.core.xmpp.session import connect
    >>>
    >>> session = await connect("alice@example.org", "secret")
    >>> async with UploadClient(session) as client:
    ...     await client.discover()
    ...     result = await client.upload_file("photo.jpg")
    ...     print(result.get_url or result.error)
"""
import logging
from .client import UploadClient

# Configuration
from .core.config import (
    UploadConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig
)
from .core.context import UploadContext

# Upload pipeline
from .core.upload import (
    UploadCoordinator,
    UploadProgress,
    UploadServiceDescriptor,
    UploadSlot,
    ProgressChannel,
    CallbackProgressSink
)

# Errors
from .core.exceptions import (
    UploadError,
    InvalidUploadError,
    ServiceUnavailableError,
    SizeExceededError,
    NegotiationError,
    NegotiationTimeoutError,
    MalformedResponseError,
    MalformedSlotError,
    TransferError,
    TransferCancelledError,
    TransferTimeoutError,
    UnexpectedStatusError,
    UploadCancelledError,
    DiscoveryError
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for xmppupload modules.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'xmppupload',
        'xmppupload.client',
        'xmppupload.upload',
        'xmppupload.upload.slot',
        'xmppupload.upload.transfer',
        'xmppupload.upload.progress',
        'xmppupload.upload.coordinator',
        'xmppupload.xmpp',
        'xmppupload.xmpp.discovery',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'UploadClient',
    'UploadConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'UploadContext',
    'UploadCoordinator',
    'UploadProgress',
    'UploadServiceDescriptor',
    'UploadSlot',
    'ProgressChannel',
    'CallbackProgressSink',
    'UploadError',
    'InvalidUploadError',
    'ServiceUnavailableError',
    'SizeExceededError',
    'NegotiationError',
    'NegotiationTimeoutError',
    'MalformedResponseError',
    'MalformedSlotError',
    'TransferError',
    'TransferCancelledError',
    'TransferTimeoutError',
    'UnexpectedStatusError',
    'UploadCancelledError',
    'DiscoveryError',
    'setup_logging',
]
