"""
Global test fixtures: a default business, its owner and API clients.
"""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from users.models import Business, CustomUser


@pytest.fixture(autouse=True)
def clear_cache():
    """Throttle counters and cached catalogs live in the cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def business_fixture(db):
    return Business.objects.create(
        name="Barbería Boricua",
        slug="barberia-boricua",
        location="San Juan, PR",
        timezone="America/Puerto_Rico",
    )


@pytest.fixture
def other_business(db):
    return Business.objects.create(
        name="Other Salon", slug="other-salon", timezone="America/Puerto_Rico"
    )


@pytest.fixture
def user_fixture(db, business_fixture):
    return CustomUser.objects.create_user(
        username="owner",
        email="owner@example.com",
        password="testpass",
        business=business_fixture,
    )


@pytest.fixture
def api_client(user_fixture):
    client = APIClient()
    client.force_authenticate(user=user_fixture)
    return client


@pytest.fixture
def anon_client():
    return APIClient()
