import re
from dataclasses import dataclass
from typing import Optional

_RANGE = re.compile(r"bytes=(\d+)-(\d+)?")


class RangeNotSatisfiable(Exception):
    """Client range falls outside the body; answered with 416."""

    def __init__(self, total_bytes: int):
        super().__init__(f"range not satisfiable for {total_bytes} bytes")
        self.total_bytes = total_bytes

    @property
    def content_range(self) -> str:
        return f"bytes */{self.total_bytes}"


@dataclass(frozen=True)
class ResolvedRange:
    """Inclusive byte offsets into the virtual body.

    A full body of zero bytes is represented as start=0, end=-1.
    """

    start: int
    end: int
    total: int
    is_partial: bool = False

    @classmethod
    def full(cls, total: int) -> "ResolvedRange":
        return cls(0, total - 1, total, False)

    @property
    def length(self) -> int:
        return max(0, self.end - self.start + 1)

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"


def ranges_enabled(range_support: bool, gzip_enabled: bool) -> bool:
    # compressed output has no stable byte addressing
    return range_support and not gzip_enabled


def resolve_range(
    total_bytes: int,
    range_header: Optional[str],
    range_support: bool = True,
    gzip_enabled: bool = False,
) -> ResolvedRange:
    """Pick the slice of the body to send.

    Raises RangeNotSatisfiable when the client asks for a range starting past
    the end of the body or with start > end. Headers that do not look like
    ``bytes=<start>-<end?>`` are ignored and the full body is served.
    """
    if not range_header or not ranges_enabled(range_support, gzip_enabled):
        return ResolvedRange.full(total_bytes)
    match = _RANGE.search(range_header)
    if not match:
        return ResolvedRange.full(total_bytes)

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) is not None else max(0, total_bytes - 1)
    if start > end or start >= total_bytes:
        raise RangeNotSatisfiable(total_bytes)
    end = min(end, total_bytes - 1)
    return ResolvedRange(start, end, total_bytes, True)
