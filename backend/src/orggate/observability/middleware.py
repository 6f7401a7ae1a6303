"""Request correlation middleware.

Every request gets a correlation id, one completion log line carrying the
tenant resolved for it (request.state.org_id, set by get_org_context) and a
sample in orggate_http_requests_total.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .correlation import REQUEST_ID_HEADER, accept_request_id, set_request_id
from .logging_config import get_logger
from .metrics import http_requests_total

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        set_request_id(request_id)
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception:
            http_requests_total.labels(method=request.method, status_class="5xx").inc()
            logger.error(
                f"{request.method} {request.url.path} failed",
                extra={"method": request.method, "path": request.url.path},
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        http_requests_total.labels(
            method=request.method,
            status_class=f"{response.status_code // 100}xx",
        ).inc()
        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "org_id": getattr(request.state, "org_id", None),
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
