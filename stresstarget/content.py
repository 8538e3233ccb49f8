"""Body synthesis for a virtual body of ``total_bytes`` bytes.

Each flavor can produce any window ``[offset, offset + n)`` of the body
without building the rest of it. The json and html flavors are a fixed
template followed by space padding; lorem repeats a phrase; zero is NUL
bytes; random draws from the request's RNG and is consistent as long as
windows are read sequentially, which is how the streamer reads them.
"""

import json
import random
import time
from typing import Optional

from .config import ContentFlavor

LOREM = b"Lorem ipsum dolor sit amet, consectetur adipiscing elit. "

CONTENT_TYPES = {
    ContentFlavor.JSON: "application/json",
    ContentFlavor.HTML: "text/html; charset=utf-8",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(flavor: ContentFlavor) -> str:
    return CONTENT_TYPES.get(flavor, DEFAULT_CONTENT_TYPE)


def json_template(total_bytes: int, ts: int) -> bytes:
    doc = {"ok": True, "note": "stress target", "bytes": total_bytes, "ts": ts}
    return json.dumps(doc, separators=(",", ":")).encode()


def html_template(total_bytes: int, ts: int) -> bytes:
    return (
        "<!doctype html><meta charset=utf-8><title>Stress Target</title>"
        f"<pre>bytes={total_bytes} ts={ts}</pre>"
    ).encode()


def padded_window(template: bytes, offset: int, n: int) -> bytes:
    """Window of ``template`` right-padded with spaces to infinity."""
    head = template[offset:offset + n]
    return head + b" " * (n - len(head))


def repeated_window(phrase: bytes, offset: int, n: int) -> bytes:
    if n <= 0:
        return b""
    start = offset % len(phrase)
    reps = (start + n) // len(phrase) + 1
    return (phrase * reps)[start:start + n]


class ContentSynthesizer:
    def __init__(
        self,
        flavor: ContentFlavor,
        total_bytes: int,
        rng: Optional[random.Random] = None,
        ts: Optional[int] = None,
    ):
        self.flavor = flavor
        self.total_bytes = total_bytes
        self._rng = rng if rng is not None else random.Random()
        self.ts = int(time.time()) if ts is None else ts
        self._template = b""
        if flavor is ContentFlavor.JSON:
            self._template = json_template(total_bytes, self.ts)
        elif flavor is ContentFlavor.HTML:
            self._template = html_template(total_bytes, self.ts)

    def read(self, offset: int, n: int) -> bytes:
        """Return exactly ``n`` bytes of the body starting at ``offset``."""
        if n <= 0:
            return b""
        if self.flavor in (ContentFlavor.JSON, ContentFlavor.HTML):
            return padded_window(self._template, offset, n)
        if self.flavor is ContentFlavor.LOREM:
            return repeated_window(LOREM, offset, n)
        if self.flavor is ContentFlavor.RANDOM:
            return self._rng.randbytes(n)
        return bytes(n)
