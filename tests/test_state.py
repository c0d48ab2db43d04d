"""
Tests for the session state machine.
"""

import asyncio
import gc
import logging

import pytest

from phantom_pages.core import SessionState, SessionStateMachine
from phantom_pages.exceptions import InvalidStateError


class TestSessionStateMachine:
    """Tests for SessionStateMachine."""

    def test_starts_open(self):
        """Test initial state."""
        state = SessionStateMachine("page")
        assert state.state is SessionState.OPEN
        assert state.is_closed() is False
        state.ensure_open("render")

    @pytest.mark.asyncio
    async def test_close_runs_teardown_once(self):
        """Test close is idempotent."""
        calls = []

        async def teardown():
            calls.append(1)

        state = SessionStateMachine("page")
        await state.close(teardown)
        await state.close(teardown)

        assert calls == [1]
        assert state.state is SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_ensure_open_fails_right_after_close_call(self):
        """Test guarded operations fail before the teardown finishes."""
        release = asyncio.Event()

        async def teardown():
            await release.wait()

        state = SessionStateMachine("page")
        closing = state.close(teardown)

        assert state.state is SessionState.CLOSING
        assert state.is_closed() is True
        with pytest.raises(InvalidStateError, match="render"):
            state.ensure_open("render")

        release.set()
        await closing
        assert state.state is SessionState.CLOSED

    @pytest.mark.asyncio
    async def test_second_close_waits_for_teardown(self):
        """Test a concurrent close resolves only after the first finishes."""
        release = asyncio.Event()
        finished = []

        async def teardown():
            await release.wait()
            finished.append(1)

        state = SessionStateMachine("page")
        first = state.close(teardown)
        second = asyncio.ensure_future(state.close(teardown))

        await asyncio.sleep(0)
        assert not second.done()

        release.set()
        await first
        await second
        assert finished == [1]

    @pytest.mark.asyncio
    async def test_teardown_failure_still_closes(self):
        """Test a failing teardown leaves the session CLOSED."""
        async def teardown():
            raise RuntimeError("engine gone")

        state = SessionStateMachine("engine")
        with pytest.raises(RuntimeError, match="engine gone"):
            await state.close(teardown)

        assert state.state is SessionState.CLOSED
        # Later calls never raise.
        await state.close(teardown)

    @pytest.mark.asyncio
    async def test_unawaited_failing_close_is_logged(self, caplog):
        """Test a fire-and-forget close reports its teardown error once, through logging."""
        loop = asyncio.get_running_loop()
        unhandled = []
        previous = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: unhandled.append(context))

        async def teardown():
            raise RuntimeError("engine gone")

        state = SessionStateMachine("page")
        try:
            with caplog.at_level(logging.WARNING, logger="phantom_pages.core.state"):
                state.close(teardown)
                await state.close(teardown)

            assert state.state is SessionState.CLOSED
            assert "engine gone" in caplog.text

            state._teardown_task = None
            gc.collect()
            await asyncio.sleep(0)
        finally:
            loop.set_exception_handler(previous)

        assert unhandled == []

    def test_invalid_state_error_is_runtime_error(self):
        """Test InvalidStateError can be caught as RuntimeError."""
        assert issubclass(InvalidStateError, RuntimeError)
