"""
Container Notes:
- Listens on ${HOST}:${PORT} (default 0.0.0.0:5000) and serves a single
  configurable endpoint at ${STRESS_PATH} (default /).
- No files are written to disk; logs go to stdout as structured JSON lines.
- Every behavior is driven by query parameters, see README.md.

Run: python -m stresstarget.app
Example: curl -i 'http://localhost:5000/?bytes=10000&chunk=4096&bps=8192'
"""

import asyncio
import logging
import random
import time
from dataclasses import replace
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from .config import RequestConfig, Settings
from .content import ContentSynthesizer, content_type_for
from .faults import INJECTED_FAILURE_BODY, FaultInjector
from .finalizer import ResponsePlan, accepts_gzip, body_plan, redirect_plan, unsatisfiable_plan
from .headers import FORBIDDEN_BODY, base_headers, set_stress_cookies, token_allowed
from .load import HeldResponse, HeldStreamingResponse, MemoryHold, burn_cpu
from .logs import LoggingMiddleware, configure_logging, logger
from .ranges import RangeNotSatisfiable, resolve_range
from .streamer import GzipFramer, PacingPolicy, Sleep, ThrottledStreamer


def content_rng(settings: Settings) -> random.Random:
    """RNG for synthesized bytes; seeded only when STRESS_SEED is configured.

    Fault draws and jitter always use fresh entropy so they stay random per
    request whatever the seed.
    """
    return random.Random(settings.seed) if settings.seed is not None else random.Random()


def plain_response(plan: ResponsePlan, base: dict, hold: Optional[MemoryHold] = None) -> Response:
    response = HeldResponse(
        status_code=plan.status_code,
        headers={**base, **plan.headers},
        hold=hold if hold is not None else MemoryHold(),
    )
    # Response fills in content-length: 0 for an empty body; keep it only when planned
    if "Content-Length" not in plan.headers and "content-length" in response.headers:
        del response.headers["content-length"]
    return response


# --- Pipeline ---
async def handle_stress_request(request: Request, settings: Settings, sleep: Sleep = asyncio.sleep) -> Response:
    cfg = RequestConfig.from_query(request.query_params, request.method)

    if not token_allowed(settings.secret_token, cfg.token):
        return PlainTextResponse(FORBIDDEN_BODY, status_code=403)

    headers = base_headers(cfg, request.headers.get("origin"))

    if cfg.http_method == "OPTIONS":
        return plain_response(ResponsePlan(204), headers)

    decision = FaultInjector().decide(cfg.fail_rate, cfg.burst_period)
    if decision.inject:
        logger.event("fault_injected", logging.INFO, reason=decision.reason)
        return PlainTextResponse(INJECTED_FAILURE_BODY, status_code=500, headers=headers)

    if cfg.cpu_millis > 0:
        t0 = time.perf_counter()
        result, iterations = await run_in_threadpool(burn_cpu, cfg.cpu_millis)
        logger.event(
            "cpu_burn",
            cpu_ms=cfg.cpu_millis,
            elapsed_ms=int((time.perf_counter() - t0) * 1000),
            iterations=iterations,
            result=result,
        )

    hold = MemoryHold(cfg.memory_megabytes)
    if cfg.memory_megabytes > 0:
        await run_in_threadpool(hold.acquire)
        logger.event("memory_hold", mem_mb=cfg.memory_megabytes, held_bytes=hold.held_bytes)

    try:
        response = await _respond(request, cfg, headers, hold, content_rng(settings), sleep)
    except BaseException:
        hold.release()
        raise
    return response


async def _respond(request, cfg, headers, hold, rng, sleep):
    if cfg.ttfb_millis > 0:
        await sleep(cfg.ttfb_millis / 1000.0)

    plan = redirect_plan(cfg)
    if plan is not None:
        logger.event("redirect", status=cfg.status_code, location=cfg.redirect_location)
        return plain_response(plan, headers, hold)

    content_type = content_type_for(cfg.content_flavor)
    compress = cfg.gzip_enabled and accepts_gzip(request.headers.get("accept-encoding", ""))
    try:
        byte_range = resolve_range(
            cfg.total_bytes,
            request.headers.get("range"),
            cfg.range_support_enabled,
            cfg.gzip_enabled,
        )
    except RangeNotSatisfiable as exc:
        logger.event("range_not_satisfiable", range=request.headers.get("range"), total=exc.total_bytes)
        plan = unsatisfiable_plan(exc, content_type)
    else:
        plan = body_plan(cfg, byte_range, content_type, compress)
        if cfg.http_method == "HEAD" and request.method != "HEAD":
            # HEAD forced over GET: the wire still expects Content-Length bytes
            headers_only = {k: v for k, v in plan.headers.items() if k != "Content-Length"}
            plan = replace(plan, headers=headers_only)

    if not plan.has_body:
        response = plain_response(plan, headers, hold)
    else:
        streamer = ThrottledStreamer(
            ContentSynthesizer(cfg.content_flavor, cfg.total_bytes, rng),
            plan.byte_range,
            PacingPolicy(cfg.chunk_size, cfg.bytes_per_second, cfg.jitter_max_millis),
            cfg.chunk_size,
            gzip=GzipFramer() if plan.compress else None,
            sleep=sleep,
        )
        response = HeldStreamingResponse(
            streamer.stream(),
            status_code=plan.status_code,
            headers={**headers, **plan.headers},
            hold=hold,
        )
    set_stress_cookies(response, cfg, secure=request.url.scheme == "https")
    return response


# --- App ---
def create_app(settings: Optional[Settings] = None, sleep: Sleep = asyncio.sleep) -> FastAPI:
    settings = settings if settings is not None else Settings.from_env()
    app = FastAPI(title="Stress Target", docs_url=None, redoc_url=None, openapi_url=None)
    app.add_middleware(LoggingMiddleware)

    @app.api_route(settings.path, methods=["GET", "HEAD", "OPTIONS"], include_in_schema=False)
    async def stress_target(request: Request):
        """Simulate one configurable response, see the module docstring."""
        return await handle_stress_request(request, settings, sleep)

    return app


# --- Main ---
def main() -> None:
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    if settings.startup_delay_ms > 0:
        print(f"[Startup] Sleeping {settings.startup_delay_ms}ms before accepting requests...", flush=True)
        time.sleep(settings.startup_delay_ms / 1000)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        access_log=False,
    )


if __name__ == "__main__":
    main()
