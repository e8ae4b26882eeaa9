"""Upload data models."""
from .upload_models import (
    NS_HTTP_UPLOAD,
    UploadServiceDescriptor,
    UploadRequest,
    SlotHeader,
    UploadSlot,
    UploadProgress
)

__all__ = [
    'NS_HTTP_UPLOAD',
    'UploadServiceDescriptor',
    'UploadRequest',
    'SlotHeader',
    'UploadSlot',
    'UploadProgress',
]
