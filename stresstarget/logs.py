import json
import logging
import time
import uuid
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

LOGGER_NAME = "stresstarget"


# --- Logging ---
class StructuredLogger:
    """Writes one JSON object per line: ``ts``, ``event`` and the given fields."""

    def __init__(self, name: str = LOGGER_NAME):
        self.logger = logging.getLogger(name)

    def event(self, name: str, level: int = logging.DEBUG, **fields):
        if not self.logger.isEnabledFor(level):
            return
        log_obj = {"ts": datetime.now(timezone.utc).isoformat(), "event": name}
        log_obj.update(fields)
        self.logger.log(level, json.dumps(log_obj, default=str))


logger = StructuredLogger()


def configure_logging(level: str = "info") -> None:
    """Route the structured logger to stdout as bare JSON lines."""
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level.upper())
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        log.addHandler(handler)
    log.propagate = False


class LoggingMiddleware(BaseHTTPMiddleware):
    """One ``access`` line per request; echoes or assigns ``X-Req-Id``."""

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        req_id = request.headers.get("X-Req-Id") or str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Req-Id"] = req_id
        logger.event(
            "access",
            logging.INFO,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            latency_ms=int((time.time() - start) * 1000),
            user_agent=request.headers.get("user-agent", ""),
            req_id=req_id,
        )
        return response
