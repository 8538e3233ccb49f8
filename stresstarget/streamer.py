"""Chunked, paced delivery of a resolved byte range.

The pieces are kept apart so each can be tested alone:

- plan_chunks() yields the ``(offset, size)`` windows to send.
- PacingPolicy says how long to wait after a chunk.
- ThrottledStreamer pulls bytes from a ContentSynthesizer for each window,
  optionally gzip-frames them, yields them to the transport and sleeps.

Every yielded chunk is handed to the ASGI server as its own body message, so
it is flushed on its own and inter-chunk timing on the wire follows pacing.
"""

import asyncio
import random
import zlib
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterator, Optional, Tuple

from .content import ContentSynthesizer
from .logs import logger
from .ranges import ResolvedRange

Sleep = Callable[[float], Awaitable[None]]


def plan_chunks(start: int, end: int, chunk_size: int) -> Iterator[Tuple[int, int]]:
    """Windows of at most ``chunk_size`` covering ``[start, end]`` inclusive."""
    offset = start
    while offset <= end:
        size = min(chunk_size, end - offset + 1)
        yield offset, size
        offset += size


@dataclass
class StreamState:
    bytes_sent: int = 0
    bytes_remaining: int = 0

    @property
    def done(self) -> bool:
        return self.bytes_remaining <= 0


class PacingPolicy:
    """Delay after each non-final chunk: ``chunk_size / bps`` plus jitter."""

    def __init__(
        self,
        chunk_size: int,
        bytes_per_second: int = 0,
        jitter_max_millis: int = 0,
        rng: Optional[random.Random] = None,
    ):
        self.chunk_size = chunk_size
        self.bytes_per_second = bytes_per_second
        self.jitter_max_millis = jitter_max_millis
        self._rng = rng if rng is not None else random.Random()

    @property
    def pacing_delay(self) -> float:
        if self.bytes_per_second <= 0:
            return 0.0
        return self.chunk_size / self.bytes_per_second

    def jitter_delay(self) -> float:
        if self.jitter_max_millis <= 0:
            return 0.0
        return self._rng.randint(0, self.jitter_max_millis) / 1000.0

    def delays(self) -> Tuple[float, float]:
        return self.pacing_delay, self.jitter_delay()


class GzipFramer:
    """Gzip stream that sync-flushes each chunk so it can go out immediately."""

    def __init__(self, level: int = 6):
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, 31)

    def frame(self, data: bytes) -> bytes:
        return self._compressor.compress(data) + self._compressor.flush(zlib.Z_SYNC_FLUSH)

    def finish(self) -> bytes:
        return self._compressor.flush(zlib.Z_FINISH)


class ThrottledStreamer:
    def __init__(
        self,
        synthesizer: ContentSynthesizer,
        byte_range: ResolvedRange,
        pacing: PacingPolicy,
        chunk_size: int,
        gzip: Optional[GzipFramer] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.synthesizer = synthesizer
        self.byte_range = byte_range
        self.pacing = pacing
        self.chunk_size = chunk_size
        self.gzip = gzip
        self._sleep = sleep
        self.state = StreamState(bytes_remaining=byte_range.length)

    async def stream(self) -> AsyncIterator[bytes]:
        total = self.byte_range.length
        try:
            for offset, size in plan_chunks(self.byte_range.start, self.byte_range.end, self.chunk_size):
                data = self.synthesizer.read(offset, size)
                self.state.bytes_sent += size
                self.state.bytes_remaining -= size
                yield self.gzip.frame(data) if self.gzip else data
                if self.state.done:
                    break
                pacing, jitter = self.pacing.delays()
                if pacing > 0:
                    await self._sleep(pacing)
                if jitter > 0:
                    await self._sleep(jitter)
            if self.gzip:
                yield self.gzip.finish()
        except (asyncio.CancelledError, GeneratorExit, OSError):
            logger.event("stream_aborted", bytes_sent=self.state.bytes_sent, bytes_total=total)
            raise
        logger.event("stream_complete", bytes_sent=self.state.bytes_sent, bytes_total=total)
