"""
Upload module for XEP-0363 HTTP file uploads.

Negotiates an upload slot over XMPP, streams the content to its PUT URL
and reports progress without ever blocking the transfer.
"""
from .coordinator import UploadCoordinator
from .models import (
    UploadServiceDescriptor,
    UploadRequest,
    SlotHeader,
    UploadSlot,
    UploadProgress
)
from .progress import (
    ProgressChannel,
    CallbackProgressSink,
    ProgressReporter
)
from .protocols import (
    IQHeader,
    MessagingSession,
    ProgressSink
)
from .services import (
    FileValidator,
    CountingReader,
    SlotNegotiator,
    TransferExecutor
)

__all__ = [
    # Main classes
    'UploadCoordinator',
    'SlotNegotiator',
    'TransferExecutor',
    'CountingReader',
    'FileValidator',

    # Progress
    'ProgressChannel',
    'CallbackProgressSink',
    'ProgressReporter',

    # Models
    'UploadServiceDescriptor',
    'UploadRequest',
    'SlotHeader',
    'UploadSlot',
    'UploadProgress',

    # Protocols
    'IQHeader',
    'MessagingSession',
    'ProgressSink',
]
