import asyncio
import itertools
import time

import pytest

from stresstarget.load import MEGABYTE, HeldResponse, HeldStreamingResponse, MemoryHold, burn_cpu


class TestBurnCpu:
    def test_exits_on_elapsed_time(self) -> None:
        ticks = itertools.count()
        _, iterations = burn_cpu(10, clock=lambda: next(ticks) / 1000)
        assert iterations == 9

    def test_zero_is_noop(self) -> None:
        assert burn_cpu(0) == (0.0, 0)

    def test_real_clock_runs_at_least_requested(self) -> None:
        t0 = time.perf_counter()
        result, iterations = burn_cpu(30)
        assert time.perf_counter() - t0 >= 0.03
        assert iterations > 0
        assert result == result


class TestMemoryHold:
    def test_acquire_and_release(self) -> None:
        hold = MemoryHold(2).acquire()
        assert hold.held_bytes == 2 * MEGABYTE
        hold.release()
        assert hold.released
        assert hold.held_bytes == 0

    def test_context_manager_releases(self) -> None:
        with MemoryHold(1).acquire() as hold:
            assert hold.held_bytes == MEGABYTE
        assert hold.released

    def test_release_on_error(self) -> None:
        hold = MemoryHold(1)
        with pytest.raises(RuntimeError):
            with hold.acquire():
                raise RuntimeError("boom")
        assert hold.released


SCOPE = {"type": "http", "method": "GET", "path": "/", "headers": []}


async def _receive():
    await asyncio.Event().wait()


async def _failing_send(message):
    if message["type"] == "http.response.body":
        raise OSError("connection reset")


async def _chunks(closed):
    try:
        for i in range(3):
            yield bytes([i])
    finally:
        closed.append(True)


class TestHeldResponses:
    @pytest.mark.asyncio
    async def test_released_after_send(self) -> None:
        sent = []

        async def send(message):
            sent.append(message)

        hold = MemoryHold(1).acquire()
        await HeldResponse(b"ok", hold=hold)(SCOPE, _receive, send)
        assert sent[-1]["body"] == b"ok"
        assert hold.released

    @pytest.mark.asyncio
    async def test_released_when_write_fails(self) -> None:
        hold = MemoryHold(1).acquire()
        with pytest.raises(OSError):
            await HeldResponse(b"ok", hold=hold)(SCOPE, _receive, _failing_send)
        assert hold.released

    @pytest.mark.asyncio
    async def test_stream_closed_and_released_when_write_fails(self) -> None:
        hold = MemoryHold(1).acquire()
        closed = []
        response = HeldStreamingResponse(_chunks(closed), hold=hold)
        with pytest.raises(Exception):
            await response(SCOPE, _receive, _failing_send)
        assert hold.released
        assert closed == [True]
