from datetime import timedelta

import pytest
from prometheus_client import REGISTRY

from bookit_backend.error_handling import (
    ErrorCodes,
    InvalidStatusTransition,
    SlotUnavailable,
)
from core.models import Appointment, Staff
from core.scheduling import (
    book_slot,
    cancel_appointment,
    reschedule_appointment,
    set_appointment_status,
)

from .helpers import MONDAY, NOW, local

pytestmark = pytest.mark.django_db


def _conflicts(business, reason):
    value = REGISTRY.get_sample_value(
        "bookit_slot_conflicts_total",
        {"business_id": str(business.id), "reason": reason},
    )
    return value or 0


def test_book_slot_creates_confirmed_appointment(
    business_fixture, weekday_hours, service_factory, customer
):
    service = service_factory(duration_min=30, buffer_before_min=10, buffer_after_min=5)
    start = local(MONDAY, 10)

    appointment = book_slot(business_fixture, service, None, start, customer, now=NOW)

    assert appointment.status == Appointment.Status.CONFIRMED
    assert appointment.source == Appointment.Source.PUBLIC
    assert appointment.starts_at == start
    assert appointment.ends_at == start + timedelta(minutes=30)
    assert appointment.blocked_from == start - timedelta(minutes=10)
    assert appointment.blocked_until == start + timedelta(minutes=35)
    assert appointment.payment_status == Appointment.PaymentStatus.NOT_REQUIRED
    assert appointment.customer_name == "Ana Rivera"
    assert appointment.customer_locale == "es-PR"


def test_public_booking_with_deposit_is_pending(
    business_fixture, weekday_hours, service_factory, customer
):
    service = service_factory(deposit_cents=1000)

    appointment = book_slot(
        business_fixture, service, None, local(MONDAY, 10), customer, now=NOW
    )

    assert appointment.status == Appointment.Status.PENDING
    assert appointment.deposit_cents == 1000
    assert appointment.payment_status == Appointment.PaymentStatus.PENDING


def test_dashboard_booking_skips_deposit(
    business_fixture, weekday_hours, service_factory, customer
):
    service = service_factory(deposit_cents=1000)

    appointment = book_slot(
        business_fixture,
        service,
        None,
        local(MONDAY, 10),
        customer,
        source=Appointment.Source.DASHBOARD,
        now=NOW,
    )

    assert appointment.status == Appointment.Status.CONFIRMED
    assert appointment.deposit_cents == 0
    assert appointment.payment_status == Appointment.PaymentStatus.NOT_REQUIRED


def test_pending_appointment_still_occupies(
    business_fixture, weekday_hours, service_factory, customer
):
    service = service_factory(deposit_cents=1000)
    start = local(MONDAY, 10)
    book_slot(business_fixture, service, None, start, customer, now=NOW)

    with pytest.raises(SlotUnavailable):
        book_slot(business_fixture, service, None, start, customer, now=NOW)


def test_double_booking_raises_conflict(
    business_fixture, weekday_hours, service_fixture, customer
):
    start = local(MONDAY, 10)
    book_slot(business_fixture, service_fixture, None, start, customer, now=NOW)
    before = _conflicts(business_fixture, "full")

    with pytest.raises(SlotUnavailable) as exc_info:
        book_slot(
            business_fixture,
            service_fixture,
            None,
            start + timedelta(minutes=30),
            customer,
            now=NOW,
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.code == ErrorCodes.BUSINESS_SLOT_UNAVAILABLE
    assert exc_info.value.details["reason"] == "full"
    assert _conflicts(business_fixture, "full") == before + 1
    assert Appointment.objects.count() == 1


def test_off_grid_booking_is_rejected(
    business_fixture, weekday_hours, service_fixture, customer
):
    with pytest.raises(SlotUnavailable) as exc_info:
        book_slot(
            business_fixture, service_fixture, None, local(MONDAY, 9, 15), customer, now=NOW
        )
    assert exc_info.value.details["reason"] == "off_grid"


def test_book_slot_with_staff(
    business_fixture, weekday_hours, service_fixture, staff_fixture, customer
):
    appointment = book_slot(
        business_fixture, service_fixture, staff_fixture, local(MONDAY, 11), customer, now=NOW
    )
    assert appointment.staff == staff_fixture


def test_cancel_is_idempotent(business_fixture, weekday_hours, service_fixture, customer):
    appointment = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )

    cancel_appointment(appointment, now=NOW)
    canceled_at = appointment.canceled_at
    cancel_appointment(appointment, now=NOW + timedelta(hours=1))

    appointment.refresh_from_db()
    assert appointment.status == Appointment.Status.CANCELED
    assert appointment.canceled_at == canceled_at


def test_cancel_completed_appointment_raises(
    business_fixture, weekday_hours, service_fixture, customer
):
    appointment = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )
    set_appointment_status(appointment, Appointment.Status.COMPLETED)

    with pytest.raises(InvalidStatusTransition):
        cancel_appointment(appointment)


def test_reschedule_may_overlap_its_own_interval(
    business_fixture, weekday_hours, service_fixture, customer
):
    appointment = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )

    reschedule_appointment(appointment, local(MONDAY, 10, 30), now=NOW)

    appointment.refresh_from_db()
    assert appointment.starts_at == local(MONDAY, 10, 30)
    assert appointment.ends_at == local(MONDAY, 11, 15)
    assert appointment.blocked_until == local(MONDAY, 11, 15)


def test_reschedule_into_occupied_slot_raises(
    business_fixture, weekday_hours, service_fixture, customer
):
    first = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )
    book_slot(business_fixture, service_fixture, None, local(MONDAY, 12), customer, now=NOW)

    with pytest.raises(SlotUnavailable):
        reschedule_appointment(first, local(MONDAY, 12), now=NOW)

    first.refresh_from_db()
    assert first.starts_at == local(MONDAY, 10)


def test_reschedule_to_another_staff_member(
    business_fixture, weekday_hours, service_fixture, staff_fixture, customer
):
    maria = Staff.objects.create(business=business_fixture, display_name="María")
    appointment = book_slot(
        business_fixture, service_fixture, staff_fixture, local(MONDAY, 10), customer, now=NOW
    )

    reschedule_appointment(appointment, local(MONDAY, 10), staff=maria, now=NOW)

    appointment.refresh_from_db()
    assert appointment.staff == maria


def test_reschedule_canceled_appointment_raises(
    business_fixture, weekday_hours, service_fixture, customer
):
    appointment = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )
    cancel_appointment(appointment, now=NOW)

    with pytest.raises(InvalidStatusTransition):
        reschedule_appointment(appointment, local(MONDAY, 11), now=NOW)


def test_confirming_pending_deposit_marks_it_paid(
    business_fixture, weekday_hours, service_factory, customer
):
    service = service_factory(deposit_cents=1000)
    appointment = book_slot(
        business_fixture, service, None, local(MONDAY, 10), customer, now=NOW
    )

    set_appointment_status(appointment, Appointment.Status.CONFIRMED)

    appointment.refresh_from_db()
    assert appointment.status == Appointment.Status.CONFIRMED
    assert appointment.payment_status == Appointment.PaymentStatus.SUCCEEDED


@pytest.mark.parametrize(
    "target",
    [Appointment.Status.COMPLETED, Appointment.Status.NO_SHOW],
)
def test_confirmed_can_be_closed_out(
    business_fixture, weekday_hours, service_fixture, customer, target
):
    appointment = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )
    set_appointment_status(appointment, target)
    appointment.refresh_from_db()
    assert appointment.status == target


def test_no_show_is_final(business_fixture, weekday_hours, service_fixture, customer):
    appointment = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )
    set_appointment_status(appointment, Appointment.Status.NO_SHOW)

    with pytest.raises(InvalidStatusTransition) as exc_info:
        set_appointment_status(appointment, Appointment.Status.CONFIRMED)
    assert exc_info.value.details == {"current": "no_show", "target": "confirmed"}


def test_status_canceled_goes_through_cancel(
    business_fixture, weekday_hours, service_fixture, customer
):
    appointment = book_slot(
        business_fixture, service_fixture, None, local(MONDAY, 10), customer, now=NOW
    )
    set_appointment_status(appointment, Appointment.Status.CANCELED, now=NOW)
    assert appointment.status == Appointment.Status.CANCELED
    assert appointment.canceled_at == NOW
