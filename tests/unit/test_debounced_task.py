"""Unit tests for the cancel-and-reschedule task abstraction."""

import asyncio

import pytest
from accountform.core.scheduling import DebouncedTask


class TestDebouncedTask:
    """Tests for trailing-edge scheduling."""

    @pytest.mark.asyncio
    async def test_only_last_call_runs(self):
        """Test rapid schedules collapse into one call with the latest args."""
        calls = []
        task = DebouncedTask(0.02, calls.append)

        task.schedule("a")
        task.schedule("b")
        task.schedule("c")
        assert task.pending is True

        await asyncio.sleep(0.06)

        assert calls == ["c"]
        assert task.pending is False

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_call(self):
        """Test cancel prevents the scheduled call from firing."""
        calls = []
        task = DebouncedTask(0.02, calls.append)

        task.schedule("a")
        task.cancel()
        await asyncio.sleep(0.05)

        assert calls == []
        assert task.pending is False

    @pytest.mark.asyncio
    async def test_flush_runs_pending_call_immediately(self):
        """Test flush executes the pending call without waiting for the delay."""
        calls = []
        task = DebouncedTask(10.0, calls.append)

        task.schedule("now")
        await task.flush()

        assert calls == ["now"]
        assert task.pending is False

    @pytest.mark.asyncio
    async def test_flush_without_pending_call_is_noop(self):
        """Test flush on an idle task does nothing."""
        calls = []
        task = DebouncedTask(0.01, calls.append)

        await task.flush()

        assert calls == []

    @pytest.mark.asyncio
    async def test_coroutine_callback_is_awaited_by_flush(self):
        """Test coroutine callbacks are tracked until they finish."""
        done = []

        async def work(value):
            await asyncio.sleep(0.01)
            done.append(value)

        task = DebouncedTask(10.0, work)
        task.schedule(42)
        await task.flush()

        assert done == [42]
        assert task.running is False

    @pytest.mark.asyncio
    async def test_failing_coroutine_is_logged_not_raised(self, caplog):
        """Test an exception in a coroutine callback is logged."""

        async def boom():
            raise RuntimeError("boom")

        task = DebouncedTask(0.0, boom, name="exploding")
        task.schedule()
        await asyncio.sleep(0.02)
        await task.drain()

        assert "exploding" in caplog.text
        assert task.running is False
