from stresstarget.config import RequestConfig
from stresstarget.finalizer import (
    accepts_gzip,
    body_plan,
    redirect_plan,
    unsatisfiable_plan,
)
from stresstarget.ranges import RangeNotSatisfiable, ResolvedRange

OCTET = "application/octet-stream"


def cfg(**params):
    method = params.pop("_method", "GET")
    return RequestConfig.from_query({k: str(v) for k, v in params.items()}, method)


def test_full_body_plan() -> None:
    plan = body_plan(cfg(bytes=1000), ResolvedRange.full(1000), OCTET)
    assert plan.status_code == 200
    assert plan.headers["Content-Length"] == "1000"
    assert "Content-Range" not in plan.headers
    assert plan.has_body


def test_partial_plan() -> None:
    plan = body_plan(cfg(bytes=1000), ResolvedRange(0, 999, 1000, True), OCTET)
    assert plan.status_code == 206
    assert plan.headers["Content-Range"] == "bytes 0-999/1000"
    assert plan.headers["Content-Length"] == "1000"


def test_gzip_drops_length() -> None:
    plan = body_plan(cfg(bytes=1000, gzip=1), ResolvedRange.full(1000), OCTET, compress=True)
    assert "Content-Length" not in plan.headers
    assert plan.headers["Content-Encoding"] == "gzip"
    assert plan.compress


def test_gzip_mode_without_negotiation() -> None:
    plan = body_plan(cfg(bytes=1000, gzip=1), ResolvedRange.full(1000), OCTET, compress=False)
    assert "Content-Length" not in plan.headers
    assert "Content-Encoding" not in plan.headers
    assert plan.has_body


def test_head_keeps_headers_without_body() -> None:
    plan = body_plan(cfg(bytes=1000, _method="HEAD"), ResolvedRange.full(1000), OCTET)
    assert plan.headers["Content-Length"] == "1000"
    assert not plan.has_body


def test_no_content_statuses() -> None:
    for status in (204, 304):
        plan = body_plan(cfg(bytes=100, status=status), ResolvedRange.full(100), OCTET)
        assert plan.status_code == status
        assert "Content-Length" not in plan.headers
        assert not plan.has_body


def test_zero_bytes_has_no_body() -> None:
    plan = body_plan(cfg(bytes=0), ResolvedRange.full(0), OCTET)
    assert plan.headers["Content-Length"] == "0"
    assert not plan.has_body


def test_redirect_plan() -> None:
    plan = redirect_plan(cfg(status=301, location="https://example.com/"))
    assert plan.status_code == 301
    assert plan.headers == {"Location": "https://example.com/", "Content-Length": "0"}
    assert not plan.has_body
    assert redirect_plan(cfg(status=301)) is None


def test_unsatisfiable_plan() -> None:
    plan = unsatisfiable_plan(RangeNotSatisfiable(1000), OCTET)
    assert plan.status_code == 416
    assert plan.headers["Content-Range"] == "bytes */1000"
    assert not plan.has_body


def test_accepts_gzip() -> None:
    assert accepts_gzip("gzip, deflate")
    assert accepts_gzip("br;q=1.0, gzip;q=0.8")
    assert accepts_gzip("*")
    assert not accepts_gzip("identity")
    assert not accepts_gzip("gzip;q=0")
    assert not accepts_gzip("")
