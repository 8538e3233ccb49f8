"""Pass-through header concerns: access gate, CORS, caching, fill, cookies."""

import hmac
from typing import Dict, Optional

from starlette.responses import Response

from .config import RequestConfig

FORBIDDEN_BODY = "Forbidden: invalid token"
NO_CACHE = "no-store, no-cache, must-revalidate, max-age=0"


def token_allowed(secret_token: str, supplied: str) -> bool:
    if not secret_token:
        return True
    return hmac.compare_digest(secret_token.encode(), supplied.encode())


def cors_headers(cors: str, origin: Optional[str]) -> Dict[str, str]:
    headers = {}
    if cors == "reflect":
        if origin:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
    elif cors == "*":
        headers["Access-Control-Allow-Origin"] = "*"
    else:
        headers["Access-Control-Allow-Origin"] = cors
        headers["Vary"] = "Origin"
    headers["Access-Control-Allow-Methods"] = "GET, HEAD, OPTIONS"
    headers["Access-Control-Allow-Headers"] = "*"
    headers["Access-Control-Max-Age"] = "600"
    return headers


def base_headers(cfg: RequestConfig, origin: Optional[str] = None) -> Dict[str, str]:
    """Headers every response carries, set before any pipeline decision."""
    headers = cors_headers(cfg.cors, origin)
    if cfg.connection:
        headers["Connection"] = "close" if cfg.connection == "close" else "keep-alive"
    if cfg.nocache:
        headers["Cache-Control"] = NO_CACHE
        headers["Pragma"] = "no-cache"
        headers["Expires"] = "0"
    if cfg.range_support_enabled:
        headers["Accept-Ranges"] = "bytes"
    vary = headers.get("Vary")
    headers["Vary"] = f"{vary}, Accept-Encoding" if vary else "Accept-Encoding"
    if cfg.header_fill_kb > 0:
        headers["X-Fill"] = "X" * (cfg.header_fill_kb * 1024)
    return headers


def set_stress_cookies(response: Response, cfg: RequestConfig, secure: bool = False) -> None:
    if cfg.cookie_count <= 0:
        return
    value = "C" * cfg.cookie_value_bytes if cfg.cookie_value_bytes > 0 else "1"
    for i in range(1, cfg.cookie_count + 1):
        response.set_cookie(
            key=f"stress_cookie_{i}",
            value=value,
            max_age=cfg.cookie_ttl_seconds,
            expires=cfg.cookie_ttl_seconds,
            path="/",
            secure=secure,
            httponly=False,
            samesite="lax",
        )
