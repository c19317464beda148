from datetime import time

import pytest

from core.models import AvailabilityRule, Service, Staff
from core.scheduling import CustomerInfo


@pytest.fixture
def staff_fixture(business_fixture):
    return Staff.objects.create(business=business_fixture, display_name="Carlos")


@pytest.fixture
def weekday_hours(business_fixture):
    """Business-wide Monday-Friday 09:00-17:00."""
    return [
        AvailabilityRule.objects.create(
            business=business_fixture,
            weekday=weekday,
            start_time=time(9),
            end_time=time(17),
        )
        for weekday in range(1, 6)
    ]


@pytest.fixture
def service_factory(business_fixture):
    def _make(**kwargs):
        defaults = {
            "business": business_fixture,
            "name": "Haircut",
            "duration_min": 45,
            "price_cents": 3500,
        }
        defaults.update(kwargs)
        return Service.objects.create(**defaults)

    return _make


@pytest.fixture
def service_fixture(service_factory):
    return service_factory()


@pytest.fixture
def customer():
    return CustomerInfo(name="Ana Rivera", phone="+17875550101", email="ana@example.com")
