import os
import re
from enum import Enum
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

# --- Caps ---
MAX_BYTES = 50 * 1024 * 1024
DEFAULT_BYTES = 512 * 1024
MAX_TTFB_MS = 10000
MAX_JITTER_MS = 2000
MIN_BPS = 1024
DEFAULT_CHUNK = 8192
MAX_CHUNK = 65536
MAX_HEADER_KB = 256
MAX_COOKIES = 20
MAX_COOKIE_BYTES = 2048
DEFAULT_COOKIE_TTL = 3600
MAX_CPU_MS = 10000
MAX_MEM_MB = 256

ALLOWED_STATUSES = frozenset({200, 204, 301, 302, 304, 400, 401, 403, 404, 408, 429, 500, 502, 503})
REDIRECT_STATUSES = frozenset({301, 302})

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class ContentFlavor(str, Enum):
    ZERO = "zero"
    RANDOM = "random"
    LOREM = "lorem"
    JSON = "json"
    HTML = "html"


# --- Startup settings ---
class Settings(BaseModel):
    """Process-wide configuration, built once and handed to create_app()."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "info"
    startup_delay_ms: int = 0
    secret_token: str = ""
    seed: Optional[int] = None
    path: str = "/"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        seed = env.get("STRESS_SEED", "")
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "5000")),
            log_level=env.get("LOG_LEVEL", "info"),
            startup_delay_ms=int(env.get("STARTUP_DELAY_MS", "0")),
            secret_token=env.get("STRESS_TOKEN", ""),
            seed=int(seed) if seed else None,
            path=env.get("STRESS_PATH", "/"),
        )


# --- Parameter parsing ---
def _clamp(value, low, high=None):
    value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def parse_int(raw: Optional[str], default: int) -> int:
    """Leading-integer parse: "12abc" -> 12, "abc" or missing -> default."""
    if raw is None:
        return default
    match = _INT_PREFIX.match(raw)
    if not match:
        return default
    return int(match.group(1))


def parse_float(raw: Optional[str], default: float) -> float:
    if raw is None:
        return default
    match = _FLOAT_PREFIX.match(raw)
    if not match:
        return default
    return float(match.group(1))


def resolve_status(status: int, location: str) -> int:
    if status not in ALLOWED_STATUSES:
        return 200
    if status in REDIRECT_STATUSES and not location:
        return 200
    return status


def resolve_method(transport_method: str, shim: str) -> str:
    """The ``method`` query parameter can force GET or HEAD.

    A HEAD on the wire stays HEAD: the transport will not carry a body for it.
    """
    method = transport_method.upper()
    shim = shim.upper()
    if shim in ("GET", "HEAD") and method != "HEAD":
        return shim
    if method in ("GET", "HEAD", "OPTIONS"):
        return method
    return "GET"


# --- Per-request configuration ---
class RequestConfig(BaseModel):
    """Fully resolved, clamped view of one request's query parameters.

    Every numeric field lies within its cap once constructed through
    from_query(); downstream components rely on that and never re-check.
    """

    model_config = ConfigDict(frozen=True)

    total_bytes: int = DEFAULT_BYTES
    ttfb_millis: int = 0
    jitter_max_millis: int = 0
    bytes_per_second: int = 0
    chunk_size: int = DEFAULT_CHUNK
    content_flavor: ContentFlavor = ContentFlavor.ZERO
    gzip_enabled: bool = False
    status_code: int = 200
    redirect_location: str = ""
    fail_rate: float = 0.0
    burst_period: int = 0
    cpu_millis: int = 0
    memory_megabytes: int = 0
    range_support_enabled: bool = True
    http_method: str = "GET"

    # pass-through collaborators
    token: str = ""
    nocache: bool = True
    cors: str = "*"
    connection: str = "keep-alive"
    header_fill_kb: int = 0
    cookie_count: int = 0
    cookie_value_bytes: int = 0
    cookie_ttl_seconds: int = DEFAULT_COOKIE_TTL

    @property
    def is_redirect(self) -> bool:
        return self.status_code in REDIRECT_STATUSES

    @classmethod
    def from_query(cls, params: Mapping[str, str], transport_method: str = "GET") -> "RequestConfig":
        """Resolve raw query parameters; never raises on bad input."""
        get = params.get

        bps = max(0, parse_int(get("bps"), 0))
        if 0 < bps < MIN_BPS:
            bps = MIN_BPS

        flavor = (get("content") or ContentFlavor.ZERO.value).lower()
        try:
            content_flavor = ContentFlavor(flavor)
        except ValueError:
            content_flavor = ContentFlavor.ZERO

        location = get("location") or ""
        status = resolve_status(parse_int(get("status"), 200), location)

        return cls(
            total_bytes=_clamp(parse_int(get("bytes"), DEFAULT_BYTES), 0, MAX_BYTES),
            ttfb_millis=_clamp(parse_int(get("ttfb_ms"), 0), 0, MAX_TTFB_MS),
            jitter_max_millis=_clamp(parse_int(get("jitter_ms"), 0), 0, MAX_JITTER_MS),
            bytes_per_second=bps,
            chunk_size=_clamp(parse_int(get("chunk"), DEFAULT_CHUNK), 1, MAX_CHUNK),
            content_flavor=content_flavor,
            gzip_enabled=parse_int(get("gzip"), 0) != 0,
            status_code=status,
            redirect_location=location if status in REDIRECT_STATUSES else "",
            fail_rate=_clamp(parse_float(get("failrate"), 0.0), 0.0, 1.0),
            burst_period=max(0, parse_int(get("burst_n"), 0)),
            cpu_millis=_clamp(parse_int(get("cpu_ms"), 0), 0, MAX_CPU_MS),
            memory_megabytes=_clamp(parse_int(get("mem_mb"), 0), 0, MAX_MEM_MB),
            range_support_enabled=parse_int(get("accept_ranges"), 1) != 0,
            http_method=resolve_method(transport_method, get("method") or ""),
            token=get("token") or "",
            nocache=parse_int(get("nocache"), 1) != 0,
            cors=get("cors") if get("cors") is not None else "*",
            connection=get("connection") if get("connection") is not None else "keep-alive",
            header_fill_kb=_clamp(parse_int(get("header_kb"), 0), 0, MAX_HEADER_KB),
            cookie_count=_clamp(parse_int(get("cookie_n"), 0), 0, MAX_COOKIES),
            cookie_value_bytes=_clamp(parse_int(get("cookie_bytes"), 0), 0, MAX_COOKIE_BYTES),
            cookie_ttl_seconds=max(1, parse_int(get("cookie_ttl"), DEFAULT_COOKIE_TTL)),
        )
