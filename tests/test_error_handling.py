"""
Tests for the error handling layer.
"""

from typing import Any, cast
from unittest.mock import patch

from django.core.exceptions import ValidationError as DjangoValidationError
from django.test import RequestFactory, TestCase
from rest_framework.exceptions import NotFound, Throttled, ValidationError
from rest_framework.test import APIClient, APITestCase

from bookit_backend.error_handling import (
    BookitError,
    BusinessError,
    ErrorCodes,
    InvalidStatusTransition,
    SlotUnavailable,
    TenantError,
    custom_exception_handler,
    log_error,
    sanitize_data,
)
from users.models import Business, CustomUser


class ErrorCodesTestCase(TestCase):

    def test_error_codes_format(self):
        codes = [
            value
            for name, value in vars(ErrorCodes).items()
            if not name.startswith("_") and isinstance(value, str)
        ]

        for code in codes:
            self.assertTrue(code.startswith("E"), f"{code} must start with E")
            self.assertEqual(len(code), 4, f"{code} must have 4 characters")
            self.assertTrue(code[1:].isdigit())
        self.assertEqual(len(codes), len(set(codes)), "codes must be unique")

    def test_error_codes_categories(self):
        self.assertTrue(ErrorCodes.AUTH_REQUIRED.startswith("E0"))
        self.assertTrue(ErrorCodes.VALIDATION_REQUIRED_FIELD.startswith("E1"))
        self.assertTrue(ErrorCodes.BUSINESS_SLOT_UNAVAILABLE.startswith("E2"))
        self.assertTrue(ErrorCodes.SYSTEM_INTERNAL_ERROR.startswith("E3"))
        self.assertTrue(ErrorCodes.RESOURCE_NOT_FOUND.startswith("E4"))


class BookitErrorTestCase(TestCase):

    def test_bookit_error_creation(self):
        error = BookitError(
            "Test error",
            code=ErrorCodes.VALIDATION_INVALID_VALUE,
            details={"field": "test"},
            status_code=400,
        )

        self.assertEqual(error.message, "Test error")
        self.assertEqual(error.code, ErrorCodes.VALIDATION_INVALID_VALUE)
        self.assertEqual(error.details, {"field": "test"})
        self.assertEqual(error.status_code, 400)

    def test_business_error(self):
        error = BusinessError("Invalid range", code=ErrorCodes.VALIDATION_INVALID_RANGE)
        self.assertEqual(error.status_code, 400)
        self.assertEqual(error.details, {})

    def test_tenant_error(self):
        error = TenantError("Business not found.")
        self.assertEqual(error.status_code, 404)
        self.assertEqual(error.code, ErrorCodes.BUSINESS_TENANT_NOT_FOUND)

        inactive = TenantError("Business is inactive.", code=ErrorCodes.BUSINESS_TENANT_INACTIVE)
        self.assertEqual(inactive.code, ErrorCodes.BUSINESS_TENANT_INACTIVE)

    def test_slot_unavailable(self):
        error = SlotUnavailable(details={"reason": "full"})
        self.assertEqual(error.status_code, 409)
        self.assertEqual(error.code, ErrorCodes.BUSINESS_SLOT_UNAVAILABLE)
        self.assertEqual(error.message, "Time slot is no longer available")
        self.assertEqual(error.details["reason"], "full")

    def test_invalid_status_transition(self):
        error = InvalidStatusTransition("completed", "canceled")
        self.assertIsInstance(error, BusinessError)
        self.assertEqual(error.status_code, 400)
        self.assertEqual(error.code, ErrorCodes.BUSINESS_INVALID_STATUS_TRANSITION)
        self.assertIn("completed", error.message)
        self.assertEqual(error.details, {"current": "completed", "target": "canceled"})


class SanitizeDataTestCase(TestCase):

    def test_sanitize_password(self):
        sanitized = sanitize_data({"username": "test", "password": "secret123"})

        self.assertEqual(sanitized["username"], "test")
        self.assertEqual(sanitized["password"], "[REDACTED]")

    def test_sanitize_customer_contact(self):
        sanitized = sanitize_data(
            {
                "customer_name": "Ana Rivera",
                "customer_phone": "+17875550101",
                "customer_email": "ana@example.com",
            }
        )

        self.assertEqual(sanitized["customer_name"], "Ana Rivera")
        self.assertEqual(sanitized["customer_phone"], "[REDACTED]")
        self.assertEqual(sanitized["customer_email"], "[REDACTED]")

    def test_sanitize_nested_dict(self):
        data = {
            "user": {"name": "Ana", "auth_token": "abc123", "preferences": {"lang": "es"}},
            "api_key": "secret",
        }

        sanitized = sanitize_data(data)

        self.assertEqual(sanitized["user"]["name"], "Ana")
        self.assertEqual(sanitized["user"]["auth_token"], "[REDACTED]")
        self.assertEqual(sanitized["user"]["preferences"]["lang"], "es")
        self.assertEqual(sanitized["api_key"], "[REDACTED]")

    def test_sanitize_list(self):
        sanitized = sanitize_data(
            [{"name": "a", "password": "p"}, {"name": "b", "token": "t"}]
        )
        self.assertEqual(sanitized[0]["password"], "[REDACTED]")
        self.assertEqual(sanitized[1]["token"], "[REDACTED]")

    def test_sanitize_long_string(self):
        sanitized = sanitize_data("a" * 150)

        self.assertTrue(sanitized.endswith("... [TRUNCATED]"))
        self.assertEqual(len(sanitized), 100 + len("... [TRUNCATED]"))


class LogErrorTestCase(TestCase):

    def setUp(self):
        self.business = Business.objects.create(name="Test Business", slug="test-business")
        self.user = CustomUser.objects.create_user(
            username="testuser", email="test@example.com", business=self.business
        )

    @patch("bookit_backend.error_handling.logger")
    def test_unexpected_error_logged_as_error(self, mock_logger):
        error_id = log_error(ValueError("Boom"))

        self.assertEqual(len(error_id), 8)
        mock_logger.log.assert_called_once()
        level = mock_logger.log.call_args[0][0]
        extra = mock_logger.log.call_args[1]["extra"]
        self.assertEqual(level, 40)
        self.assertEqual(extra["error_type"], "ValueError")
        self.assertEqual(extra["error_message"], "Boom")
        self.assertIn("stack_trace", extra)

    @patch("bookit_backend.error_handling.logger")
    def test_expected_error_logged_as_warning(self, mock_logger):
        log_error(SlotUnavailable(details={"reason": "full"}))

        level = mock_logger.log.call_args[0][0]
        extra = mock_logger.log.call_args[1]["extra"]
        self.assertEqual(level, 30)
        self.assertEqual(extra["error_code"], ErrorCodes.BUSINESS_SLOT_UNAVAILABLE)
        self.assertNotIn("stack_trace", extra)

    @patch("bookit_backend.error_handling.logger")
    def test_log_error_with_request(self, mock_logger):
        request = RequestFactory().post("/api/appointments/", {"customer_phone": "787"})
        request.user = self.user

        log_error(
            ValidationError("Invalid data"),
            request=request,
            user=self.user,
            business=self.business,
        )

        extra = mock_logger.log.call_args[1]["extra"]
        self.assertEqual(extra["method"], "POST")
        self.assertEqual(extra["path"], "/api/appointments/")
        self.assertEqual(extra["user_id"], self.user.id)
        self.assertEqual(extra["business_slug"], "test-business")


class CustomExceptionHandlerTestCase(APITestCase):

    def setUp(self):
        self.request = RequestFactory().get("/test/")
        self.context = {"request": self.request}

    def _error(self, response) -> dict:
        data = cast(dict[str, Any], response.data)
        return cast(dict[str, Any], data["error"])

    def test_validation_error_format(self):
        exc = ValidationError({"customer_name": ["This field is required."]})

        response = custom_exception_handler(exc, self.context)
        error = self._error(response)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(error["code"], ErrorCodes.VALIDATION_INVALID_VALUE)
        self.assertIn("customer_name", error["message"])
        self.assertIn("customer_name", error["details"])
        self.assertEqual(len(error["error_id"]), 8)

    def test_django_validation_error_is_converted(self):
        exc = DjangoValidationError({"timezone": ["Unknown timezone."]})

        response = custom_exception_handler(exc, self.context)

        self.assertEqual(response.status_code, 400)
        self.assertIn("timezone", self._error(response)["details"])

    def test_slot_unavailable_format(self):
        exc = SlotUnavailable(details={"reason": "full", "requested_start": "x"})

        response = custom_exception_handler(exc, self.context)
        error = self._error(response)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(error["code"], ErrorCodes.BUSINESS_SLOT_UNAVAILABLE)
        self.assertEqual(error["message"], "Time slot is no longer available")
        self.assertEqual(error["details"]["reason"], "full")

    def test_tenant_error_format(self):
        response = custom_exception_handler(TenantError("Business not found."), self.context)

        self.assertEqual(response.status_code, 404)
        self.assertEqual(self._error(response)["code"], ErrorCodes.BUSINESS_TENANT_NOT_FOUND)

    def test_not_found_and_throttled_codes(self):
        not_found = custom_exception_handler(NotFound(), self.context)
        throttled = custom_exception_handler(Throttled(wait=30), self.context)

        self.assertEqual(self._error(not_found)["code"], ErrorCodes.RESOURCE_NOT_FOUND)
        self.assertEqual(throttled.status_code, 429)
        self.assertEqual(self._error(throttled)["code"], ErrorCodes.SYSTEM_RATE_LIMIT_EXCEEDED)

    def test_unknown_error_format(self):
        response = custom_exception_handler(RuntimeError("Unexpected"), self.context)
        error = self._error(response)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(error["code"], ErrorCodes.SYSTEM_INTERNAL_ERROR)
        self.assertEqual(error["message"], "Internal server error")
        self.assertNotIn("Unexpected", error["message"])


class IntegrationTestCase(APITestCase):

    def setUp(self):
        self.client = APIClient()

    def test_unknown_public_business(self):
        response = self.client.get("/api/public/missing/services/")

        self.assertEqual(response.status_code, 404)
        error = cast(dict[str, Any], response.data)["error"]
        self.assertEqual(error["code"], ErrorCodes.BUSINESS_TENANT_NOT_FOUND)
        self.assertIn("error_id", error)

    def test_dashboard_requires_authentication(self):
        response = self.client.get("/api/appointments/")

        self.assertEqual(response.status_code, 401)
        error = cast(dict[str, Any], response.data)["error"]
        self.assertEqual(error["code"], ErrorCodes.AUTH_REQUIRED)
