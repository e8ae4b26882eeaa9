"""Tests for progress reporting."""
import asyncio
import pytest
from unittest.mock import Mock

from xmppupload.core.upload.models import UploadProgress
from xmppupload.core.upload.progress import (
    ProgressChannel,
    CallbackProgressSink,
    ProgressReporter,
    as_sink
)


class TestProgressChannel:
    """Test suite for ProgressChannel."""

    def test_offer_without_receiver_drops(self):
        """Test rendezvous channel drops when nobody waits."""
        channel = ProgressChannel()

        assert channel.offer(UploadProgress(1, 10)) is False
        assert channel.dropped == 1

    def test_buffered_offer(self):
        """Test buffered channel keeps up to maxsize snapshots."""
        channel = ProgressChannel(maxsize=2)

        assert channel.offer(UploadProgress(1, 10)) is True
        assert channel.offer(UploadProgress(2, 10)) is True
        assert channel.offer(UploadProgress(3, 10)) is False
        assert channel.dropped == 1

    def test_negative_maxsize(self):
        """Test negative maxsize is rejected."""
        with pytest.raises(ValueError):
            ProgressChannel(maxsize=-1)

    @pytest.mark.asyncio
    async def test_offer_to_waiting_receiver(self):
        """Test rendezvous channel delivers to a waiting receiver."""
        channel = ProgressChannel()
        receiver = asyncio.create_task(channel.receive())
        await asyncio.sleep(0)

        assert channel.offer(UploadProgress(4, 10)) is True
        assert (await receiver).bytes_sent == 4

    @pytest.mark.asyncio
    async def test_close_delivers_final_even_when_full(self):
        """Test terminal snapshot is never dropped."""
        channel = ProgressChannel(maxsize=1)
        channel.offer(UploadProgress(1, 10))
        final = UploadProgress(10, 10, get_url="https://g/1", is_terminal=True)

        channel.close(final)

        received = [p async for p in channel]
        assert [p.bytes_sent for p in received] == [1, 10]
        assert received[-1] is final
        assert channel.result is final

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_receiver(self):
        """Test waiting receiver gets the final snapshot on close."""
        channel = ProgressChannel()
        receiver = asyncio.create_task(channel.receive())
        await asyncio.sleep(0)
        final = UploadProgress(0, 0, error=RuntimeError("x"), is_terminal=True)

        channel.close(final)

        assert await receiver is final
        assert await channel.receive() is None

    @pytest.mark.asyncio
    async def test_close_without_final(self):
        """Test iteration ends on close."""
        channel = ProgressChannel()
        channel.close()

        assert [p async for p in channel] == []
        assert channel.result is None

    def test_double_close_raises(self):
        """Test channel can only be closed once."""
        channel = ProgressChannel()
        channel.close()

        with pytest.raises(RuntimeError, match="closed"):
            channel.close()

    def test_offer_after_close_raises(self):
        """Test offering to a closed channel raises."""
        channel = ProgressChannel()
        channel.close()

        with pytest.raises(RuntimeError, match="closed"):
            channel.offer(UploadProgress(1, 1))

    @pytest.mark.asyncio
    async def test_wait_closed(self):
        """Test wait_closed returns the terminal snapshot."""
        channel = ProgressChannel()
        final = UploadProgress(3, 3, get_url="u", is_terminal=True)
        waiter = asyncio.create_task(channel.wait_closed())
        await asyncio.sleep(0)

        channel.close(final)

        assert await waiter is final


class TestCallbackProgressSink:
    """Test suite for CallbackProgressSink."""

    def test_offer_and_close(self):
        """Test callback receives offers and the final snapshot."""
        callback = Mock()
        sink = CallbackProgressSink(callback)
        final = UploadProgress(2, 2, is_terminal=True)

        sink.offer(UploadProgress(1, 2))
        sink.close(final)

        assert callback.call_count == 2
        assert callback.call_args[0][0] is final
        assert sink.closed

    def test_callback_error_is_contained(self):
        """Test callback exceptions do not propagate."""
        sink = CallbackProgressSink(Mock(side_effect=RuntimeError("boom")))

        assert sink.offer(UploadProgress(1, 2)) is False
        sink.close(UploadProgress(2, 2, is_terminal=True))

    def test_double_close_raises(self):
        """Test sink can only be closed once."""
        sink = CallbackProgressSink(Mock())
        sink.close()

        with pytest.raises(RuntimeError):
            sink.close()


class TestAsSink:
    """Test suite for as_sink."""

    def test_none(self):
        assert as_sink(None) is None

    def test_channel_passthrough(self):
        channel = ProgressChannel()

        assert as_sink(channel) is channel

    def test_callable_wrapped(self):
        assert isinstance(as_sink(lambda p: None), CallbackProgressSink)

    def test_unsupported(self):
        with pytest.raises(TypeError):
            as_sink(42)


class TestProgressReporter:
    """Test suite for ProgressReporter."""

    def test_report_builds_snapshot(self):
        """Test intermediate snapshot contents."""
        sink = Mock()
        sink.offer.return_value = True
        reporter = ProgressReporter(sink)

        assert reporter.report(50, 200) is True

        progress = sink.offer.call_args[0][0]
        assert progress.bytes_sent == 50
        assert progress.total_bytes == 200
        assert progress.percentage == 25.0
        assert progress.error is None
        assert progress.get_url == ''
        assert not progress.is_terminal

    def test_report_without_sink(self):
        """Test reporting without a sink is a no-op."""
        reporter = ProgressReporter(None)

        assert reporter.report(1, 2) is False
        assert reporter.finish(2, 2, get_url="u").succeeded

    def test_report_zero_total(self):
        """Test zero total does not divide by zero."""
        sink = Mock()
        ProgressReporter(sink).report(0, 0)

        assert sink.offer.call_args[0][0].percentage == 0.0

    def test_finish_closes_once(self):
        """Test sink is closed exactly once."""
        sink = Mock()
        reporter = ProgressReporter(sink)

        first = reporter.finish(10, 10, get_url="https://g/1")
        second = reporter.finish(0, 10, error=RuntimeError("late"))

        sink.close.assert_called_once_with(first)
        assert second is first
        assert first.is_terminal
        assert reporter.finished

    def test_no_reports_after_finish(self):
        """Test intermediate reports are ignored once finished."""
        sink = Mock()
        reporter = ProgressReporter(sink)
        reporter.finish(1, 1)

        assert reporter.report(1, 1) is False
        sink.offer.assert_not_called()

    def test_sink_errors_contained(self):
        """Test a broken sink does not break reporting."""
        sink = Mock()
        sink.offer.side_effect = RuntimeError("closed")
        sink.close.side_effect = RuntimeError("closed")
        reporter = ProgressReporter(sink)

        assert reporter.report(1, 2) is False
        assert reporter.finish(2, 2).is_terminal
