from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import logging
import time
import uuid
from typing import Callable

logger = logging.getLogger(__name__)


def classify_action(method: str, path: str) -> str:
    if path.startswith("/health"):
        return "HEALTH_CHECK"
    if path.startswith("/session"):
        return "SESSION"
    if path.startswith("/cache"):
        return "CACHE_STATUS"
    if method in ("POST", "PATCH", "PUT", "DELETE") and not path.endswith("/query"):
        return "WRITE"
    return "READ"


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        # 1. Capture Request Details
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        endpoint = request.url.path
        method = request.method
        action_type = classify_action(method, endpoint)
        started = time.perf_counter()

        # 2. Process Request
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            # 3. Log Event
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                f"{method} {endpoint} action={action_type} status={status_code} "
                f"duration_ms={elapsed_ms:.1f} request_id={request_id}"
            )

        response.headers["X-Request-ID"] = request_id
        return response
