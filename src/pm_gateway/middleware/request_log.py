"""Per-request access log and request id.

The id comes from the caller's X-Request-ID (truncated to 64 chars) or is
minted as req_<12 hex>. It is stored on request.state for the response
envelope and echoed back in the X-Request-ID header.

    INFO [POST] /api/v1/trades → 200 (23ms) req_a1b2c3d4e5f6

5xx responses and requests slower than SLOW_REQUEST_MS log at WARNING, so a
lock queue building up behind a hot market shows up without DEBUG.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from config.settings import settings

logger = logging.getLogger("pm.request")

_MAX_REQUEST_ID_LEN = 64


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        supplied = request.headers.get("X-Request-ID", "")[:_MAX_REQUEST_ID_LEN]
        request_id = supplied or f"req_{uuid.uuid4().hex[:12]}"
        request.state.request_id = request_id

        started = time.perf_counter()
        response: Response = await call_next(request)
        took_ms = (time.perf_counter() - started) * 1000

        slow = took_ms >= settings.SLOW_REQUEST_MS
        logger.log(
            logging.WARNING if response.status_code >= 500 or slow else logging.INFO,
            "[%s] %s → %d (%.0fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            took_ms,
            request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response
