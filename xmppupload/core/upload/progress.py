"""
Progress reporting.

Intermediate snapshots are best-effort: a sink without a ready receiver
drops them so the transfer never waits on its observer. The terminal
snapshot travels with close() and is always delivered.
"""
import asyncio
from collections import deque
from typing import Callable, Deque, Optional, Union

from .models import UploadProgress
from .protocols import ProgressSink
from ..logging import get_logger

logger = get_logger('xmppupload.upload.progress')

ProgressTarget = Union[ProgressSink, Callable[[UploadProgress], None], None]


class ProgressChannel:
    """
    Async-iterable progress channel.

    With maxsize=0 a snapshot is delivered only to a receiver that is
    already waiting; otherwise up to maxsize snapshots are buffered and
    further ones are dropped.

    Example:
        >>> channel = ProgressChannel()
        >>> asyncio.create_task(client.upload_file("photo.jpg", channel))
        >>> async for progress in channel:
        ...     print(f"{progress.percentage:.1f}%")
        >>> print(channel.result.get_url)
    """

    def __init__(self, maxsize: int = 0):
        if maxsize < 0:
            raise ValueError(f"maxsize cannot be negative: {maxsize}")
        self._maxsize = maxsize
        self._buffer: Deque[UploadProgress] = deque()
        self._waiters: Deque[asyncio.Future] = deque()
        self._closed = False
        self._closed_event: Optional[asyncio.Event] = None
        self._result: Optional[UploadProgress] = None
        self._dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def result(self) -> Optional[UploadProgress]:
        """Terminal snapshot, once the channel is closed."""
        return self._result

    @property
    def dropped(self) -> int:
        """Number of intermediate snapshots dropped so far."""
        return self._dropped

    def _hand_off(self, progress: Optional[UploadProgress]) -> bool:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(progress)
                return True
        return False

    def offer(self, progress: UploadProgress) -> bool:
        """Deliver a snapshot without waiting; drop it if nobody can take it."""
        if self._closed:
            raise RuntimeError("offer on closed progress channel")
        if self._hand_off(progress):
            return True
        if len(self._buffer) < self._maxsize:
            self._buffer.append(progress)
            return True
        self._dropped += 1
        return False

    def close(self, final: Optional[UploadProgress] = None) -> None:
        """Close the channel; final is queued regardless of capacity."""
        if self._closed:
            raise RuntimeError("close of closed progress channel")
        self._closed = True
        self._result = final

        if final is not None and not self._hand_off(final):
            self._buffer.append(final)

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

        if self._closed_event is not None:
            self._closed_event.set()

    async def receive(self) -> Optional[UploadProgress]:
        """
        Wait for the next snapshot.

        Returns:
            Next snapshot, or None once closed and drained
        """
        if self._buffer:
            return self._buffer.popleft()
        if self._closed:
            return None

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter

    async def wait_closed(self) -> Optional[UploadProgress]:
        """Wait until the channel is closed and return the terminal snapshot."""
        if not self._closed:
            if self._closed_event is None:
                self._closed_event = asyncio.Event()
            await self._closed_event.wait()
        return self._result

    def __aiter__(self) -> 'ProgressChannel':
        return self

    async def __anext__(self) -> UploadProgress:
        progress = await self.receive()
        if progress is None:
            raise StopAsyncIteration
        return progress


class CallbackProgressSink:
    """
    Sink that hands every snapshot to a plain callable.

    Exceptions raised by the callback are logged and never reach the
    transfer.
    """

    def __init__(self, callback: Callable[[UploadProgress], None]):
        self._callback = callback
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _invoke(self, progress: UploadProgress) -> bool:
        try:
            self._callback(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
            return False
        return True

    def offer(self, progress: UploadProgress) -> bool:
        if self._closed:
            raise RuntimeError("offer on closed progress sink")
        return self._invoke(progress)

    def close(self, final: Optional[UploadProgress] = None) -> None:
        if self._closed:
            raise RuntimeError("close of closed progress sink")
        self._closed = True
        if final is not None:
            self._invoke(final)


def as_sink(target) -> Optional[ProgressSink]:
    """
    Normalize a progress target.

    Args:
        target: None, a ProgressSink, or a callable taking UploadProgress

    Returns:
        A sink, or None if target is None
    """
    if target is None:
        return None
    if isinstance(target, ProgressSink):
        return target
    if callable(target):
        return CallbackProgressSink(target)
    raise TypeError(f"Unsupported progress target: {type(target).__name__}")


class ProgressReporter:
    """
    Converts byte counts into snapshots and feeds them to a sink.

    Responsibilities:
    - Compute snapshots (percentage is 0 for empty uploads)
    - Offer intermediate snapshots without blocking
    - Close the sink exactly once with the terminal snapshot
    """

    def __init__(self, sink: Optional[ProgressSink] = None):
        """
        Initialize reporter.

        Args:
            sink: Progress consumer; None makes reporting a no-op
        """
        self._sink = sink
        self._final: Optional[UploadProgress] = None

    @property
    def finished(self) -> bool:
        return self._final is not None

    @property
    def final(self) -> Optional[UploadProgress]:
        """Terminal snapshot, once finish() was called."""
        return self._final

    def report(
        self,
        bytes_sent: int,
        total_bytes: int,
        error: Optional[Exception] = None,
        get_url: str = ''
    ) -> bool:
        """
        Offer an intermediate snapshot.

        Returns:
            True if the sink took it
        """
        if self._sink is None or self._final is not None:
            return False
        progress = UploadProgress(
            bytes_sent=bytes_sent,
            total_bytes=total_bytes,
            get_url=get_url,
            error=error
        )
        try:
            return self._sink.offer(progress)
        except Exception as e:
            logger.warning(f"Progress sink rejected snapshot: {e}")
            return False

    def finish(
        self,
        bytes_sent: int,
        total_bytes: int,
        error: Optional[Exception] = None,
        get_url: str = ''
    ) -> UploadProgress:
        """
        Emit the terminal snapshot and close the sink.

        Only the first call has any effect; later calls return the
        snapshot already emitted.
        """
        if self._final is not None:
            logger.debug("Terminal progress already emitted, ignoring")
            return self._final

        self._final = UploadProgress(
            bytes_sent=bytes_sent,
            total_bytes=total_bytes,
            get_url=get_url,
            error=error,
            is_terminal=True
        )
        if self._sink is not None:
            try:
                self._sink.close(self._final)
            except Exception as e:
                logger.error(f"Failed to close progress sink: {e}")
        return self._final
