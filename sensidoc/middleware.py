import time
import uuid
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .exceptions import create_error_response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "-"


class SecurityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        # Appointment and diagnosis payloads are personal health data
        response.headers.setdefault("Cache-Control", "no-store")
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs method, path, status and latency."""

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        started = time.perf_counter()

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.info(
            f"[{request.state.request_id}] {request.method} {request.url.path} -> {response.status_code} ({elapsed * 1000:.1f}ms)"
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last line: anything unhandled becomes a 500 envelope."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            request_id = _request_id(request)
            logger.exception(f"[{request_id}] Unhandled error on {request.method} {request.url.path}")
            message = f"Internal server error: {e}" if settings.DEBUG else "Internal server error"
            return JSONResponse(
                status_code=500,
                content=create_error_response(message, 500, "InternalError", {"request_id": request_id}),
            )
