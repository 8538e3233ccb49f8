"""CPU and memory pressure for the lifetime of one request."""

import math
import time
from typing import Callable, List, Tuple

from starlette.responses import Response, StreamingResponse
from starlette.types import Receive, Scope, Send

MEGABYTE = 1024 * 1024


def burn_cpu(ms: int, clock: Callable[[], float] = time.perf_counter) -> Tuple[float, int]:
    """Spin on floating point math for roughly ``ms`` wall-clock milliseconds.

    Exits on elapsed time rather than an iteration count. Returns the
    accumulator and the iteration count so the caller can use the result.
    """
    x = 0.0
    iterations = 0
    if ms <= 0:
        return x, iterations
    end = clock() + ms / 1000.0
    while clock() < end:
        x += math.sqrt(12345.6789) * math.cos(x + 0.123) / 1.000001
        iterations += 1
    return x, iterations


class MemoryHold:
    """Keeps ``megabytes`` of filled 1 MB buffers reachable until released.

    Use as a context manager, or attach it to a HeldResponse or
    HeldStreamingResponse so it lives exactly as long as the response is sent.
    """

    def __init__(self, megabytes: int = 0):
        self.megabytes = megabytes
        self._blocks: List[bytearray] = []

    def acquire(self) -> "MemoryHold":
        for _ in range(self.megabytes):
            # bytearray(n) may be backed by lazily mapped zero pages, so fill it
            block = bytearray(b"M") * MEGABYTE
            self._blocks.append(block)
        return self

    def release(self) -> None:
        self._blocks.clear()

    @property
    def held_bytes(self) -> int:
        return sum(len(b) for b in self._blocks)

    @property
    def released(self) -> bool:
        return not self._blocks

    def __enter__(self) -> "MemoryHold":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class HeldResponse(Response):
    """Response that keeps a MemoryHold alive until it has been sent.

    The hold is released once sending ends, whether it completed, the write
    failed or the task was cancelled.
    """

    def __init__(self, *args, hold: MemoryHold, **kwargs):
        super().__init__(*args, **kwargs)
        self.hold = hold

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.hold.release()


class HeldStreamingResponse(StreamingResponse):
    """Streamed variant; also closes the body generator when sending stops."""

    def __init__(self, *args, hold: MemoryHold, **kwargs):
        super().__init__(*args, **kwargs)
        self.hold = hold

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.hold.release()
            await self.body_iterator.aclose()
