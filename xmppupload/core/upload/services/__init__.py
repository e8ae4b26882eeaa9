"""Upload services module."""
from .file_service import FileValidator, CountingReader
from .slot_service import SlotNegotiator
from .transfer_service import TransferExecutor

__all__ = [
    'FileValidator',
    'CountingReader',
    'SlotNegotiator',
    'TransferExecutor',
]
