"""
Tests for the shared validators.

Covers:
- Format validators
- Numeric validators
- Range validators
- Sanitizers
- Database constraints
"""

from datetime import date, time, timedelta

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings

from bookit_backend.error_handling import BusinessError, ErrorCodes
from bookit_backend.validators import (
    BufferValidator,
    DateRangeValidator,
    DurationValidator,
    MoneyCentsValidator,
    PhoneNumberValidator,
    TimeRangeValidator,
    TimezoneValidator,
    WeekdayValidator,
    sanitize_phone_number,
    sanitize_text_input,
)
from core.models import AvailabilityException, AvailabilityRule, Service
from users.models import Business


class PhoneNumberValidatorTestCase(TestCase):

    def setUp(self):
        self.validator = PhoneNumberValidator()

    def test_valid_puerto_rico_phone(self):
        for phone in ["+17875550101", "7875550101", "(787) 555-0101", "1-939-555-0101"]:
            try:
                self.validator(phone)
            except ValidationError:
                self.fail(f"Phone {phone} should be valid")

    def test_valid_international_phone(self):
        for phone in ["+351912345678", "+34612345678"]:
            try:
                self.validator(phone)
            except ValidationError:
                self.fail(f"Phone {phone} should be valid")

    def test_invalid_phone(self):
        for phone in ["123", "0875550101", "+1087555010", "abc"]:
            with self.assertRaises(ValidationError):
                self.validator(phone)

    def test_empty_phone_is_allowed(self):
        self.validator("")


class TimezoneValidatorTestCase(TestCase):

    def test_known_timezones(self):
        validator = TimezoneValidator()
        validator("America/Puerto_Rico")
        validator("America/New_York")

    def test_unknown_timezone(self):
        validator = TimezoneValidator()
        for value in ["Mars/Olympus", "", "../etc/passwd"]:
            with self.assertRaises(ValidationError):
                validator(value)


class WeekdayValidatorTestCase(TestCase):

    def test_range(self):
        validator = WeekdayValidator()
        for weekday in range(7):
            validator(weekday)
        for weekday in (-1, 7, "x"):
            with self.assertRaises(ValidationError):
                validator(weekday)


class NumericValidatorsTestCase(TestCase):

    def test_money_cents(self):
        validator = MoneyCentsValidator(max_cents=10_000)
        validator(0)
        validator(3500)
        with self.assertRaises(ValidationError):
            validator(-1)
        with self.assertRaises(ValidationError):
            validator(10_001)

    def test_valid_durations(self):
        validator = DurationValidator()
        for minutes in [5, 30, 45, 480]:
            validator(minutes)

    def test_invalid_durations(self):
        validator = DurationValidator()
        for minutes in [0, 3, 42, 485, "long"]:
            with self.assertRaises(ValidationError):
                validator(minutes)

    def test_buffers(self):
        validator = BufferValidator(max_minutes=60)
        validator(0)
        validator(60)
        with self.assertRaises(ValidationError):
            validator(-5)
        with self.assertRaises(ValidationError):
            validator(61)


class RangeValidatorsTestCase(TestCase):

    def test_time_range(self):
        validator = TimeRangeValidator()
        validator(time(9), time(17))
        validator(None, time(17))

        with self.assertRaises(BusinessError) as cm:
            validator(time(17), time(9))
        self.assertEqual(cm.exception.code, ErrorCodes.VALIDATION_INVALID_RANGE)
        self.assertEqual(cm.exception.details["start_time"], "17:00")

        with self.assertRaises(BusinessError):
            validator(time(9), time(9))

    def test_date_range(self):
        validator = DateRangeValidator(max_days=7)
        start = date(2024, 1, 1)
        validator(start, start)
        validator(start, start + timedelta(days=6))

        with self.assertRaises(BusinessError):
            validator(start, start - timedelta(days=1))
        with self.assertRaises(BusinessError) as cm:
            validator(start, start + timedelta(days=7))
        self.assertEqual(cm.exception.details["max_days"], 7)

    @override_settings(BOOKING={"MAX_RANGE_DAYS": 3})
    def test_date_range_reads_settings(self):
        validator = DateRangeValidator()
        with self.assertRaises(BusinessError):
            validator(date(2024, 1, 1), date(2024, 1, 4))


class SanitizationTestCase(TestCase):

    def test_sanitize_text_input(self):
        self.assertEqual(sanitize_text_input("  Ana   Rivera "), "Ana Rivera")
        self.assertEqual(sanitize_text_input("Ana\x00 Rivera"), "Ana Rivera")
        self.assertEqual(sanitize_text_input("a" * 20, max_length=5), "aaaaa")
        self.assertEqual(sanitize_text_input(""), "")

    def test_sanitize_phone_number(self):
        self.assertEqual(sanitize_phone_number("(787) 555-0101"), "+17875550101")
        self.assertEqual(sanitize_phone_number("1 939 555 0101"), "+19395550101")
        self.assertEqual(sanitize_phone_number("+351 912 345 678"), "+351912345678")
        self.assertEqual(sanitize_phone_number(""), "")


class ConstraintTestCase(TestCase):

    def setUp(self):
        self.business = Business.objects.create(name="Test", slug="test-business")

    def test_business_timezone_is_validated(self):
        business = Business(name="Bad", slug="bad-tz", timezone="Nowhere/City")
        with self.assertRaises(ValidationError):
            business.full_clean()

    def test_deposit_cannot_exceed_price(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Service.objects.create(
                    business=self.business,
                    name="Haircut",
                    duration_min=45,
                    price_cents=1000,
                    deposit_cents=2000,
                )

    def test_rule_start_before_end(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                AvailabilityRule.objects.create(
                    business=self.business, weekday=1, start_time=time(17), end_time=time(9)
                )

    def test_one_business_exception_per_date(self):
        AvailabilityException.objects.create(business=self.business, date=date(2024, 1, 8))
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                AvailabilityException.objects.create(
                    business=self.business, date=date(2024, 1, 8)
                )

    def test_open_exception_needs_hours(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                AvailabilityException.objects.create(
                    business=self.business, date=date(2024, 1, 8), is_closed=False
                )


@pytest.mark.parametrize("value", ["7875550101", "+17875550101"])
def test_phone_validator_accepts_national_and_e164(value):
    PhoneNumberValidator()(value)
