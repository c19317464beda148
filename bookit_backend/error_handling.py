"""
Standardized error handling for the BookIt backend.

Provides:
- Stable error codes
- A DRF exception handler producing one response shape
- Structured error logging with sensitive-field sanitization
"""

import logging
import traceback
import uuid
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    MethodNotAllowed,
    NotAuthenticated,
    NotFound,
    PermissionDenied,
    Throttled,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

# =====================================================
# ERROR CODES
# =====================================================


class ErrorCodes:
    """Error codes returned in the `error.code` field."""

    # Authentication (E001-E099)
    AUTH_REQUIRED = "E001"
    AUTH_INVALID_TOKEN = "E002"
    AUTH_EXPIRED_TOKEN = "E003"
    AUTH_INSUFFICIENT_PERMISSIONS = "E004"

    # Validation (E100-E199)
    VALIDATION_REQUIRED_FIELD = "E100"
    VALIDATION_INVALID_FORMAT = "E101"
    VALIDATION_INVALID_VALUE = "E102"
    VALIDATION_DUPLICATE_VALUE = "E103"
    VALIDATION_CONSTRAINT_VIOLATION = "E104"
    VALIDATION_INVALID_RANGE = "E105"

    # Business rules (E200-E299)
    BUSINESS_TENANT_NOT_FOUND = "E200"
    BUSINESS_TENANT_INACTIVE = "E201"
    BUSINESS_APPOINTMENT_CONFLICT = "E202"
    BUSINESS_SLOT_UNAVAILABLE = "E203"
    BUSINESS_SERVICE_INACTIVE = "E204"
    BUSINESS_INVALID_STATUS_TRANSITION = "E205"

    # System (E300-E399)
    SYSTEM_INTERNAL_ERROR = "E300"
    SYSTEM_DATABASE_ERROR = "E301"
    SYSTEM_CACHE_ERROR = "E302"
    SYSTEM_EXTERNAL_SERVICE_ERROR = "E303"
    SYSTEM_RATE_LIMIT_EXCEEDED = "E304"

    # Resources (E400-E499)
    RESOURCE_NOT_FOUND = "E400"
    RESOURCE_ALREADY_EXISTS = "E401"
    RESOURCE_ACCESS_DENIED = "E402"
    RESOURCE_MODIFICATION_DENIED = "E403"
    RESOURCE_METHOD_NOT_ALLOWED = "E404"


# =====================================================
# EXCEPTIONS
# =====================================================


class BookitError(APIException):
    """Base class for application errors."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCodes.SYSTEM_INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        self.detail = message
        super().__init__(message)


class BusinessError(BookitError):
    """Business rule violation (400)."""

    def __init__(
        self, message: str, code: str, details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code=code,
            details=details,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class TenantError(BookitError):
    """The business could not be resolved for the request."""

    def __init__(self, message: str, code: str = ErrorCodes.BUSINESS_TENANT_NOT_FOUND):
        super().__init__(
            message=message, code=code, status_code=status.HTTP_404_NOT_FOUND
        )


class SlotUnavailable(BookitError):
    """The requested start time can no longer be booked."""

    def __init__(
        self,
        message: str = "Time slot is no longer available",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCodes.BUSINESS_SLOT_UNAVAILABLE,
            details=details,
            status_code=status.HTTP_409_CONFLICT,
        )


class InvalidStatusTransition(BusinessError):
    def __init__(self, current: str, target: str):
        super().__init__(
            message=f"Cannot change appointment status from '{current}' to '{target}'",
            code=ErrorCodes.BUSINESS_INVALID_STATUS_TRANSITION,
            details={"current": current, "target": target},
        )


# =====================================================
# EXCEPTION TO CODE MAPPING
# =====================================================

EXCEPTION_CODE_MAPPING = {
    NotAuthenticated: ErrorCodes.AUTH_REQUIRED,
    AuthenticationFailed: ErrorCodes.AUTH_INVALID_TOKEN,
    PermissionDenied: ErrorCodes.AUTH_INSUFFICIENT_PERMISSIONS,
    NotFound: ErrorCodes.RESOURCE_NOT_FOUND,
    MethodNotAllowed: ErrorCodes.RESOURCE_METHOD_NOT_ALLOWED,
    ValidationError: ErrorCodes.VALIDATION_INVALID_VALUE,
    Throttled: ErrorCodes.SYSTEM_RATE_LIMIT_EXCEEDED,
    Http404: ErrorCodes.RESOURCE_NOT_FOUND,
    DjangoValidationError: ErrorCodes.VALIDATION_CONSTRAINT_VIOLATION,
}


# =====================================================
# SENSITIVE DATA SANITIZATION
# =====================================================

SENSITIVE_FIELDS = {
    "password",
    "token",
    "secret",
    "key",
    "auth",
    "authorization",
    "credit_card",
    "card_number",
    "cvv",
    "ssn",
    "phone",
    "email",
    "api_key",
    "private_key",
    "session_id",
}


def sanitize_data(data: Any) -> Any:
    """Redact sensitive keys and truncate long strings, recursively."""
    if isinstance(data, dict):
        return {
            key: (
                "[REDACTED]"
                if any(sensitive in str(key).lower() for sensitive in SENSITIVE_FIELDS)
                else sanitize_data(value)
            )
            for key, value in data.items()
        }
    elif isinstance(data, list):
        return [sanitize_data(item) for item in data]
    elif isinstance(data, str) and len(data) > 100:
        return data[:100] + "... [TRUNCATED]"
    return data


# =====================================================
# STRUCTURED ERROR LOGGING
# =====================================================

_EXPECTED_ERRORS = (ValidationError, NotFound, PermissionDenied, BookitError)


def log_error(
    exception: Exception,
    request=None,
    user=None,
    business=None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Log an error with request, user and business context.

    Returns:
        str: short error id echoed to the client
    """
    error_id = str(uuid.uuid4())[:8]

    error_context = {
        "error_id": error_id,
        "error_type": type(exception).__name__,
        "error_message": str(exception),
        "error_code": getattr(exception, "code", "UNKNOWN"),
    }

    if request is not None:
        error_context.update(
            {
                "method": request.method,
                "path": request.path,
                "user_agent": request.META.get("HTTP_USER_AGENT", ""),
                "remote_addr": request.META.get("REMOTE_ADDR", ""),
                "query_params": sanitize_data(dict(request.GET)),
            }
        )

        if hasattr(request, "data"):
            error_context["request_data"] = sanitize_data(request.data)

    if user is not None and getattr(user, "id", None):
        error_context.update(
            {
                "user_id": user.id,
                "username": getattr(user, "username", ""),
            }
        )

    if business is not None:
        error_context.update(
            {
                "business_pk": getattr(business, "id", ""),
                "business_slug": getattr(business, "slug", ""),
            }
        )

    if extra_context:
        error_context.update(sanitize_data(extra_context))

    unexpected = not isinstance(exception, _EXPECTED_ERRORS)
    if unexpected:
        error_context["stack_trace"] = traceback.format_exc()

    level = logging.ERROR if unexpected else logging.WARNING
    logger.log(
        level,
        f"Error {error_id}: {exception}",
        extra=error_context,
        exc_info=unexpected,
    )

    return error_id


# =====================================================
# DRF EXCEPTION HANDLER
# =====================================================


def custom_exception_handler(exc, context):
    """
    Normalize every API error to:

    {
        "error": {
            "code": "E203",
            "message": "Time slot is no longer available",
            "details": {...},
            "error_id": "abc12345"
        }
    }
    """
    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(
            exc.message_dict if hasattr(exc, "error_dict") else exc.messages
        )

    response = exception_handler(exc, context)

    request = context.get("request")
    user = getattr(request, "user", None) if request else None
    business = getattr(request, "business", None) if request else None

    error_id = log_error(
        exception=exc,
        request=request,
        user=user,
        business=business,
        extra_context={
            "view": (
                type(context.get("view")).__name__ if context.get("view") else ""
            )
        },
    )

    if response is None:
        return Response(
            {
                "error": {
                    "code": ErrorCodes.SYSTEM_INTERNAL_ERROR,
                    "message": "Internal server error",
                    "details": {},
                    "error_id": error_id,
                }
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, BookitError):
        error_code = exc.code
    else:
        error_code = EXCEPTION_CODE_MAPPING.get(
            type(exc), ErrorCodes.SYSTEM_INTERNAL_ERROR
        )

    error_message = str(exc.detail) if hasattr(exc, "detail") else str(exc)
    error_details = {}

    if isinstance(exc, ValidationError):
        if isinstance(exc.detail, dict):
            error_details = exc.detail
            field_errors = []
            for field, errors in exc.detail.items():
                if isinstance(errors, list):
                    field_errors.append(f"{field}: {', '.join(map(str, errors))}")
                else:
                    field_errors.append(f"{field}: {errors}")
            error_message = "Invalid data: " + "; ".join(field_errors)
        elif isinstance(exc.detail, list):
            error_message = "; ".join(map(str, exc.detail))

    if isinstance(exc, BookitError):
        error_details.update(exc.details)

    response.data = {
        "error": {
            "code": error_code,
            "message": error_message,
            "details": error_details,
            "error_id": error_id,
        }
    }
    return response
