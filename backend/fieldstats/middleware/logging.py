"""
backend/fieldstats/middleware/logging.py

Purpose:
    One JSON access-log line per request and process-wide logging setup.

Notes:
    - An incoming X-Request-ID is reused (trimmed to 32 chars) so traces can
      be joined with an upstream proxy; otherwise a short random ID is issued.
    - 5xx responses log at ERROR, 4xx at WARNING, everything else at INFO.
"""

import hashlib
import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("fieldstats.access")

_QUIET_LOGGERS = ("pymongo", "motor", "uvicorn.access")


def _request_id(request: Request) -> str:
    incoming = (request.headers.get("x-request-id") or "").strip()
    return incoming[:32] if incoming else uuid.uuid4().hex[:8]


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        client_host = request.client.host if request.client else None
        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "query": request.url.query or None,
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "cache_control": response.headers.get("cache-control"),
            "client_ip_hash": hashlib.sha256(client_host.encode()).hexdigest()[:12] if client_host else None,
        }
        logger.log(_level_for(response.status_code), json.dumps(entry))

        response.headers["X-Request-ID"] = request_id
        return response


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    # Driver chatter and uvicorn's own access log duplicate the JSON line above.
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
