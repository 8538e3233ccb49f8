"""Transport-level decisions: status line, length/range headers, body or not."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import RequestConfig
from .ranges import RangeNotSatisfiable, ResolvedRange

NO_BODY_STATUSES = frozenset({204, 304})


@dataclass(frozen=True)
class ResponsePlan:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    byte_range: Optional[ResolvedRange] = None
    compress: bool = False

    @property
    def has_body(self) -> bool:
        return self.byte_range is not None and self.byte_range.length > 0


def accepts_gzip(accept_encoding: str) -> bool:
    for part in accept_encoding.split(","):
        coding, _, params = part.strip().partition(";")
        if coding.strip().lower() not in ("gzip", "*"):
            continue
        q = params.strip().replace(" ", "")
        if q in ("q=0", "q=0.0", "q=0.00", "q=0.000"):
            continue
        return True
    return False


def redirect_plan(cfg: RequestConfig) -> Optional[ResponsePlan]:
    """301/302 end the request here with an empty body."""
    if not cfg.is_redirect:
        return None
    headers = {"Location": cfg.redirect_location, "Content-Length": "0"}
    return ResponsePlan(cfg.status_code, headers)


def unsatisfiable_plan(exc: RangeNotSatisfiable, content_type: str) -> ResponsePlan:
    headers = {
        "Content-Type": content_type,
        "Content-Range": exc.content_range,
        "Content-Length": "0",
    }
    return ResponsePlan(416, headers)


def body_plan(
    cfg: RequestConfig,
    byte_range: ResolvedRange,
    content_type: str,
    compress: bool = False,
) -> ResponsePlan:
    """Plan a content response for ``byte_range``.

    Content-Length is only known up front when gzip mode is off. HEAD, 204 and
    304 never get a body, and 204/304 never advertise a length either.
    """
    status = 206 if byte_range.is_partial else cfg.status_code
    no_body_status = status in NO_BODY_STATUSES
    headers = {"Content-Type": content_type}
    if byte_range.is_partial:
        headers["Content-Range"] = byte_range.content_range
    if not cfg.gzip_enabled and not no_body_status:
        headers["Content-Length"] = str(byte_range.length)
    compress = compress and not no_body_status and byte_range.length > 0
    if compress:
        headers["Content-Encoding"] = "gzip"
    send_body = cfg.http_method != "HEAD" and not no_body_status
    return ResponsePlan(
        status,
        headers,
        byte_range if send_body else None,
        compress and send_body,
    )
