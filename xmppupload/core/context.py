"""
Cancellation context for uploads.

An UploadContext is handed to an upload by its caller. Cancelling it, or
letting its deadline pass, aborts whatever network operation the upload
is waiting on.
"""
import asyncio
import time
from typing import Optional, Awaitable, TypeVar

T = TypeVar('T')


class ContextCancelled(Exception):
    """Default cause recorded when a context is cancelled without one."""
    pass


class DeadlineExceeded(Exception):
    """Cause recorded when a context's deadline elapses."""
    pass


class ContextDone(Exception):
    """Raised by UploadContext.run() when the context finishes first."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause))

    @property
    def timed_out(self) -> bool:
        return isinstance(self.cause, DeadlineExceeded)


class UploadContext:
    """
    Cancellable, optionally deadline-bearing context.

    Example:
        >>> context = UploadContext(timeout=60)
        >>> task = asyncio.create_task(client.upload_file("a.bin", context=context))
        >>> context.cancel()
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize context.

        Args:
            timeout: Seconds from now until the context expires
        """
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._event: Optional[asyncio.Event] = None
        self._cause: Optional[BaseException] = None

    @classmethod
    def background(cls) -> 'UploadContext':
        """Context that is never cancelled and has no deadline."""
        return cls()

    @property
    def deadline(self) -> Optional[float]:
        """Deadline on the time.monotonic() clock, or None."""
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        return self._cause is not None

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cause(self) -> Optional[BaseException]:
        """Why the context is done, or None while it is still live."""
        if self._cause is not None:
            return self._cause
        if self.expired:
            return DeadlineExceeded("context deadline exceeded")
        return None

    def cancel(self, cause: Optional[BaseException] = None) -> None:
        """Cancel the context; only the first cause is kept."""
        if self._cause is not None:
            return
        self._cause = cause or ContextCancelled("context cancelled")
        if self._event is not None:
            self._event.set()

    async def wait(self) -> BaseException:
        """
        Wait until the context is cancelled or expires.

        Returns:
            The cause
        """
        if self.cause is not None:
            return self.cause

        if self._event is None:
            self._event = asyncio.Event()

        try:
            await asyncio.wait_for(self._event.wait(), timeout=self.remaining())
        except asyncio.TimeoutError:
            # Loop timers may fire a clock tick before the deadline.
            return self._cause or DeadlineExceeded("context deadline exceeded")
        return self._cause

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await an operation unless the context finishes first.

        The operation is cancelled, and awaited, when the context wins.

        Raises:
            ContextDone: If the context was cancelled or expired
        """
        cause = self.cause
        if cause is not None:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise ContextDone(cause)

        operation = asyncio.ensure_future(awaitable)
        watcher = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait(
                {operation, watcher},
                return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            operation.cancel()
            watcher.cancel()
            raise

        if operation.done():
            watcher.cancel()
            return operation.result()

        operation.cancel()
        try:
            await operation
        except asyncio.CancelledError:
            pass
        raise ContextDone(watcher.result())
