"""
Shared validators for the BookIt backend.

Provides:
- Field format validators (phone numbers, timezone names, weekdays)
- Numeric validators for durations, buffers and money in cents
- Range validators for wall-clock windows and date queries
- Input sanitizers
"""

import re
from datetime import date, time
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.deconstruct import deconstructible

from bookit_backend.error_handling import BusinessError, ErrorCodes


# =====================================================
# FORMAT VALIDATORS
# =====================================================


@deconstructible
class PhoneNumberValidator:
    """Puerto Rico / NANP numbers, or international numbers in E.164."""

    message = "Invalid phone number. Use a 10-digit number (787...) or +<country code>."
    code = "invalid_phone"

    def __call__(self, value: str):
        if not value:
            return

        clean_value = re.sub(r"[^\d+]", "", str(value))

        patterns = [
            r"^\+1[2-9][0-9]{9}$",  # NANP with country code
            r"^1?[2-9][0-9]{9}$",  # NANP national
            r"^\+[2-9][0-9]{7,14}$",  # international
        ]

        if not any(re.match(pattern, clean_value) for pattern in patterns):
            raise ValidationError(self.message, code=self.code)


@deconstructible
class TimezoneValidator:
    """IANA timezone name known to the system tz database."""

    message = "Unknown timezone."
    code = "invalid_timezone"

    def __call__(self, value: str):
        if not value:
            raise ValidationError(self.message, code=self.code)
        try:
            ZoneInfo(str(value))
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError(f"Unknown timezone: {value}", code=self.code)


@deconstructible
class WeekdayValidator:
    """Weekday number with 0 = Sunday ... 6 = Saturday."""

    message = "Weekday must be between 0 (Sunday) and 6 (Saturday)."
    code = "invalid_weekday"

    def __call__(self, value: int):
        if value is None:
            return
        try:
            weekday = int(value)
        except (TypeError, ValueError):
            raise ValidationError(self.message, code=self.code)
        if weekday < 0 or weekday > 6:
            raise ValidationError(self.message, code=self.code)


# =====================================================
# NUMERIC VALIDATORS
# =====================================================


@deconstructible
class MoneyCentsValidator:
    """Non-negative integer amount of cents."""

    def __init__(self, max_cents: int = 1_000_000):
        self.max_cents = max_cents

    def __call__(self, value: int):
        if value is None:
            return

        try:
            cents = int(value)
        except (TypeError, ValueError):
            raise ValidationError(
                "Amount must be an integer number of cents.", code="invalid_amount"
            )

        if cents < 0:
            raise ValidationError("Amount cannot be negative.", code="amount_negative")

        if cents > self.max_cents:
            raise ValidationError(
                f"Amount cannot exceed {self.max_cents} cents.", code="amount_too_high"
            )


@deconstructible
class DurationValidator:
    """Service duration in minutes."""

    def __init__(self, min_minutes: int = 5, max_minutes: int = 480):
        self.min_minutes = min_minutes
        self.max_minutes = max_minutes

    def __call__(self, value: int):
        if value is None:
            return

        try:
            minutes = int(value)
        except (ValueError, TypeError):
            raise ValidationError(
                "Duration must be an integer number of minutes.",
                code="invalid_duration_format",
            )

        if minutes < self.min_minutes:
            raise ValidationError(
                f"Duration must be at least {self.min_minutes} minutes.",
                code="duration_too_short",
            )

        if minutes > self.max_minutes:
            raise ValidationError(
                f"Duration cannot exceed {self.max_minutes} minutes.",
                code="duration_too_long",
            )

        if minutes % 5 != 0:
            raise ValidationError(
                "Duration must be a multiple of 5 minutes.",
                code="invalid_duration_increment",
            )


@deconstructible
class BufferValidator:
    """Padding before/after a service, in minutes."""

    def __init__(self, max_minutes: int = 240):
        self.max_minutes = max_minutes

    def __call__(self, value: int):
        if value is None:
            return
        try:
            minutes = int(value)
        except (ValueError, TypeError):
            raise ValidationError(
                "Buffer must be an integer number of minutes.", code="invalid_buffer"
            )
        if minutes < 0:
            raise ValidationError("Buffer cannot be negative.", code="buffer_negative")
        if minutes > self.max_minutes:
            raise ValidationError(
                f"Buffer cannot exceed {self.max_minutes} minutes.",
                code="buffer_too_long",
            )


# =====================================================
# RANGE VALIDATORS
# =====================================================


class TimeRangeValidator:
    """Wall-clock window where start must be strictly before end."""

    def __call__(self, start_time: Optional[time], end_time: Optional[time]):
        if start_time is None or end_time is None:
            return

        if end_time <= start_time:
            raise BusinessError(
                "End time must be after start time.",
                code=ErrorCodes.VALIDATION_INVALID_RANGE,
                details={
                    "start_time": start_time.strftime("%H:%M"),
                    "end_time": end_time.strftime("%H:%M"),
                },
            )


class DateRangeValidator:
    """Query range check: end on or after start, no longer than MAX_RANGE_DAYS."""

    def __init__(self, max_days: Optional[int] = None):
        self.max_days = max_days

    def __call__(self, start: date, end: date):
        max_days = self.max_days or settings.BOOKING["MAX_RANGE_DAYS"]

        if end < start:
            raise BusinessError(
                "End date must be on or after start date.",
                code=ErrorCodes.VALIDATION_INVALID_RANGE,
                details={"start": start.isoformat(), "end": end.isoformat()},
            )

        if (end - start).days + 1 > max_days:
            raise BusinessError(
                f"Date range cannot exceed {max_days} days.",
                code=ErrorCodes.VALIDATION_INVALID_RANGE,
                details={"max_days": max_days},
            )


# =====================================================
# SANITIZERS
# =====================================================


def sanitize_text_input(value: str, max_length: Optional[int] = None) -> str:
    """Collapse whitespace, strip control characters, truncate."""
    if not value:
        return ""

    sanitized = re.sub(r"\s+", " ", str(value).strip())

    sanitized = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", sanitized)

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length].strip()

    return sanitized


def sanitize_phone_number(value: str) -> str:
    """Digits only, with +1 prepended to national NANP numbers."""
    if not value:
        return ""

    sanitized = re.sub(r"[^\d+]", "", str(value))

    if re.match(r"^[2-9][0-9]{9}$", sanitized):
        sanitized = f"+1{sanitized}"
    elif re.match(r"^1[2-9][0-9]{9}$", sanitized):
        sanitized = f"+{sanitized}"

    return sanitized


# =====================================================
# SHARED INSTANCES
# =====================================================

validate_phone_number = PhoneNumberValidator()
validate_timezone = TimezoneValidator()
validate_weekday = WeekdayValidator()
validate_money_cents = MoneyCentsValidator()
validate_duration = DurationValidator()
validate_buffer = BufferValidator()
validate_time_range = TimeRangeValidator()
validate_date_range = DateRangeValidator()
