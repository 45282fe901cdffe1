from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class APIException(HTTPException):
    """Base for every error the booking and quota services raise.

    Subclasses pin an HTTP status, a stable machine-readable ``code`` and a
    ``category`` from the error taxonomy. ``data`` is echoed back to the client
    in the error envelope.
    """

    status_code: int = 400
    code: str = "Error"
    category: str = "Validation"
    default_detail: str = "Request failed"

    def __init__(self, detail: Optional[str] = None, data: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=status_code or type(self).status_code, detail=detail or self.default_detail, headers=headers)
        self.data = data


class InvalidRequest(APIException):
    code = "InvalidRequest"
    default_detail = "Invalid request"


class InvalidDate(InvalidRequest):
    code = "InvalidDate"
    default_detail = "Appointment date cannot be in the past"


class InvalidTime(InvalidRequest):
    code = "InvalidTime"
    default_detail = "Invalid appointment time format. Use HH:MM"


class DoctorUnavailable(APIException):
    code = "DoctorUnavailable"
    default_detail = "Doctor not found or not available"


class SlotTaken(APIException):
    status_code = 409
    code = "SlotTaken"
    category = "Conflict"
    default_detail = "This time slot is already booked"


class NotAuthenticated(APIException):
    status_code = 401
    code = "NotAuthenticated"
    category = "Authorization"
    default_detail = "Authentication required"


class NotAuthorized(APIException):
    status_code = 403
    code = "NotAuthorized"
    category = "Authorization"
    default_detail = "Not authorized to access this appointment"


class NotFound(APIException):
    status_code = 404
    code = "NotFound"
    category = "NotFound"
    default_detail = "Appointment not found"


class InvalidTransition(APIException):
    status_code = 409
    code = "InvalidTransition"
    category = "StateMachine"
    default_detail = "Invalid appointment status transition"


class QuotaExceeded(APIException):
    status_code = 429
    code = "QuotaExceeded"
    category = "RateLimited"
    default_detail = "Free usage limit exceeded. Please upgrade to premium for unlimited access."

    def __init__(self, service_kind: str, used: int, limit: int):
        super().__init__(data={
            "service": service_kind,
            "usage_count": used,
            "limit": limit,
            "remaining": 0,
        })
        self.service_kind = service_kind
        self.used = used
        self.limit = limit
        self.remaining = 0


class RateLimited(APIException):
    """Too many requests from one client in a short window; unrelated to the monthly quota."""

    status_code = 429
    code = "RateLimited"
    category = "RateLimited"
    default_detail = "Too many requests. Please slow down and try again later."

    def __init__(self, retry_after: int):
        super().__init__(data={"retry_after": retry_after}, headers={"Retry-After": str(retry_after)})
        self.retry_after = retry_after


class UpstreamUnavailable(APIException):
    status_code = 503
    code = "UpstreamUnavailable"
    category = "Upstream"
    default_detail = "AI service is unavailable. Please try again later."


class UpstreamTimeout(UpstreamUnavailable):
    status_code = 504
    code = "UpstreamTimeout"
    default_detail = "AI service timed out. Please try again later."


def create_error_response(error_message: str, status_code: int = 400, code: Optional[str] = None, data: Any = None) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": data,
        "error": error_message,
        "code": code,
    }

def create_success_response(data: Any, message: Optional[str] = None, pagination: Optional[Dict[str, int]] = None) -> dict:
    """Create a standardized success response; list endpoints add a ``pagination`` block"""
    body = {
        "success": True,
        "message": message,
        "data": data,
        "error": None
    }
    if pagination is not None:
        body["pagination"] = pagination
    return body

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTPException (and every APIException) into the error envelope"""
    code = getattr(exc, "code", None)
    category = getattr(exc, "category", "HTTP")
    level = logging.WARNING if exc.status_code >= 500 else logging.INFO
    logger.log(level, f"{category} error {code or exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    data = getattr(exc, "data", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code, code, data),
        headers=getattr(exc, "headers", None),
    )
