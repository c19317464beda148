"""Project-level middleware for the BookIt backend."""

import logging
import time

from django.http import HttpRequest, HttpResponse
from django.utils.deprecation import MiddlewareMixin

from .logging_utils import get_request_id, setup_logging_context

logger = logging.getLogger(__name__)


def _user_id(request: HttpRequest):
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return str(user.id)
    return None


def _business_id(request: HttpRequest):
    business = getattr(request, "business", None)
    if business is not None:
        return business.slug
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated and getattr(user, "business", None):
        return user.business.slug
    return None


class RequestLoggingMiddleware(MiddlewareMixin):
    """
    Structured request logging.

    - Assigns an X-Request-ID to every request (or reuses the caller's)
    - Stores the logging context for the rest of the request
    - Logs start, end and duration
    """

    def process_request(self, request: HttpRequest) -> None:
        request_id = request.headers.get("X-Request-ID") or get_request_id()
        request.request_id = request_id

        setup_logging_context(request)

        request.start_time = time.time()

        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "endpoint": request.path,
                "user_agent": request.headers.get("User-Agent", ""),
                "remote_addr": self._get_client_ip(request),
                "content_type": request.content_type,
            },
        )

    def process_response(
        self, request: HttpRequest, response: HttpResponse
    ) -> HttpResponse:
        duration_ms = None
        if hasattr(request, "start_time"):
            duration_ms = round((time.time() - request.start_time) * 1000, 2)

        if hasattr(request, "request_id"):
            response["X-Request-ID"] = request.request_id

        logger.info(
            "Request completed",
            extra={
                "request_id": getattr(request, "request_id", "unknown"),
                "method": request.method,
                "endpoint": request.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "user_id": _user_id(request),
                "business_id": _business_id(request),
            },
        )

        return response

    def process_exception(self, request: HttpRequest, exception: Exception) -> None:
        duration_ms = None
        if hasattr(request, "start_time"):
            duration_ms = round((time.time() - request.start_time) * 1000, 2)

        logger.error(
            f"Request failed with exception: {exception}",
            extra={
                "request_id": getattr(request, "request_id", "unknown"),
                "method": request.method,
                "endpoint": request.path,
                "duration_ms": duration_ms,
                "exception_type": type(exception).__name__,
                "user_id": _user_id(request),
                "business_id": _business_id(request),
            },
            exc_info=True,
        )

    def _get_client_ip(self, request: HttpRequest) -> str:
        """Client IP, honoring X-Forwarded-For."""
        x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
        if x_forwarded_for:
            ip = x_forwarded_for.split(",")[0].strip()
        else:
            ip = request.META.get("REMOTE_ADDR", "unknown")
        return ip


class SecurityHeadersMiddleware(MiddlewareMixin):
    """Adds baseline security headers to every response."""

    def process_response(
        self, request: HttpRequest, response: HttpResponse
    ) -> HttpResponse:
        response["X-Content-Type-Options"] = "nosniff"
        response["X-Frame-Options"] = "DENY"
        response["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Calendar downloads are fetched cross-origin by the booking widget
        if not response.get("Content-Security-Policy"):
            response["Content-Security-Policy"] = (
                "default-src 'self'; "
                "img-src 'self' data: https:; "
                "connect-src 'self';"
            )

        return response
