from datetime import time, timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from core.models import Appointment, RecurringAppointmentSeries

from .helpers import PR


@pytest.fixture
def weekly_series(business_fixture, weekday_hours, service_fixture):
    today = timezone.now().astimezone(PR).date()
    return RecurringAppointmentSeries.objects.create(
        business=business_fixture,
        service=service_fixture,
        customer_name="Ana Rivera",
        customer_phone="+17875550101",
        frequency=RecurringAppointmentSeries.Frequency.WEEKLY,
        start_date=today - timedelta(days=today.weekday()),
        time_of_day=time(10),
    )


@pytest.mark.django_db
def test_generate_recurring_appointments(weekly_series):
    out = StringIO()
    until = (weekly_series.start_date + timedelta(days=21)).isoformat()

    call_command("generate_recurring_appointments", "--until", until, stdout=out)

    assert Appointment.objects.filter(series=weekly_series).count() == 3
    assert "1 series processed: 3 created, 0 skipped." in out.getvalue()


@pytest.mark.django_db
def test_generate_recurring_appointments_for_one_business(weekly_series, other_business):
    out = StringIO()
    call_command(
        "generate_recurring_appointments",
        "--business",
        other_business.slug,
        stdout=out,
    )

    assert Appointment.objects.count() == 0
    assert "0 series processed" in out.getvalue()


@pytest.mark.django_db
def test_generate_recurring_appointments_unknown_business():
    with pytest.raises(CommandError):
        call_command("generate_recurring_appointments", "--business", "missing")


@pytest.mark.django_db
def test_generate_recurring_appointments_bad_date(weekly_series):
    with pytest.raises(CommandError):
        call_command("generate_recurring_appointments", "--until", "31/03/2030")
