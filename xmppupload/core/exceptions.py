"""
Custom exceptions for HTTP upload operations.

Every failure of an upload invocation is one of these. They are never
raised out of the upload entry points; the coordinator attaches them to
the terminal progress snapshot instead.
"""
from typing import Optional


class UploadError(Exception):
    """Base exception for all upload-related errors."""

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Numeric error code (if available)
        """
        self.error_code = error_code
        super().__init__(message)


class InvalidUploadError(UploadError):
    """Raised for empty filenames, empty content or unreadable paths."""
    pass


class ServiceUnavailableError(UploadError):
    """Raised when no HTTP upload service has been discovered yet."""
    pass


class SizeExceededError(UploadError):
    """Raised when the upload is larger than the service accepts."""

    def __init__(self, size: int, max_size: int) -> None:
        """
        Initialize the exception.

        Args:
            size: Requested upload size in bytes
            max_size: Maximum size advertised by the service
        """
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"upload size too large, want {size}, have {max_size}"
        )


class NegotiationError(UploadError):
    """Raised when the upload slot request fails."""
    pass


class NegotiationTimeoutError(NegotiationError):
    """Raised when the upload service does not answer in time."""
    pass


class MalformedResponseError(NegotiationError):
    """Raised when the slot response cannot be decoded."""
    pass


class MalformedSlotError(UploadError):
    """Raised when a decoded slot lacks its PUT or GET URL."""
    pass


class TransferError(UploadError):
    """Raised when the HTTP PUT fails."""
    pass


class TransferCancelledError(TransferError):
    """Raised when the caller cancels the transfer."""
    pass


class TransferTimeoutError(TransferError):
    """Raised when the caller's deadline elapses during the transfer."""
    pass


class UnexpectedStatusError(TransferError):
    """Raised when the upload server answers with a non-success status."""

    def __init__(self, status: int) -> None:
        """
        Initialize the exception.

        Args:
            status: HTTP status code returned by the server
        """
        self.status = status
        super().__init__(
            f"upload failed with status code: {status}", error_code=status
        )


class UploadCancelledError(UploadError):
    """Raised when the task running the upload is cancelled."""
    pass


class DiscoveryError(UploadError):
    """Raised when the HTTP upload service cannot be discovered."""
    pass
