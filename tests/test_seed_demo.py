import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import override_settings

from core.models import AvailabilityRule, Service, Staff
from users.models import Business


User = get_user_model()


@pytest.mark.django_db
def test_seed_demo_uses_configurable_password():
    custom_password = "Test@123"
    with override_settings(DEMO_OWNER_PASSWORD=custom_password):
        call_command("seed_demo")

    owner = User.objects.get(username="demo_owner")
    assert owner.check_password(custom_password)
    assert owner.business.slug == "demo"


@pytest.mark.django_db
def test_seed_demo_builds_a_bookable_business():
    call_command("seed_demo")

    business = Business.objects.get(slug="demo")
    assert business.timezone == "America/Puerto_Rico"
    assert Staff.objects.filter(business=business).count() == 2
    services = Service.objects.filter(business=business)
    assert services.count() == 4
    assert services.get(name="Haircut").staff.count() == 2
    assert AvailabilityRule.objects.filter(business=business).count() == 6


@pytest.mark.django_db
def test_seed_demo_is_idempotent():
    call_command("seed_demo")
    call_command("seed_demo")

    assert Business.objects.filter(slug="demo").count() == 1
    assert Service.objects.filter(business__slug="demo").count() == 4
    assert AvailabilityRule.objects.filter(business__slug="demo").count() == 6
