"""
Guarded writes: booking, rescheduling, canceling and status changes.

Every write that claims capacity runs in a transaction holding a row lock on
the resource it books (the staff row, or the business row for staff-less
bookings) and re-validates the start with check_slot before inserting.
Concurrent submissions for the same resource are serialized; different
resources do not block each other.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.utils import timezone

from bookit_backend.error_handling import InvalidStatusTransition, SlotUnavailable
from core import observability
from core.models import Appointment, Staff
from users.models import Business

from .slots import PaddedInterval, check_slot

logger = logging.getLogger(__name__)


@dataclass
class CustomerInfo:
    name: str
    phone: str
    email: str = ""
    locale: str = "es-PR"


KEEP_STAFF = object()


# Allowed manual status transitions; cancellation goes through cancel_appointment
STATUS_TRANSITIONS = {
    Appointment.Status.PENDING: {
        Appointment.Status.CONFIRMED,
        Appointment.Status.COMPLETED,
        Appointment.Status.NO_SHOW,
    },
    Appointment.Status.CONFIRMED: {
        Appointment.Status.COMPLETED,
        Appointment.Status.NO_SHOW,
    },
    Appointment.Status.COMPLETED: set(),
    Appointment.Status.NO_SHOW: set(),
    Appointment.Status.CANCELED: set(),
}


def _lock_resource(business, staff) -> None:
    if staff is not None:
        Staff.objects.select_for_update().filter(pk=staff.pk).first()
    else:
        Business.objects.select_for_update().filter(pk=business.pk).first()


def _raise_unavailable(business, start: datetime, reason: str, action: str):
    observability.SLOT_CONFLICTS_TOTAL.labels(
        business_id=str(business.id), reason=reason
    ).inc()
    logger.info(
        "slot_conflict",
        extra={
            "business_id": business.slug,
            "action": action,
            "requested_start": start.isoformat(),
            "reason": reason,
        },
    )
    raise SlotUnavailable(
        details={"requested_start": start.isoformat(), "reason": reason}
    )


def book_slot(
    business,
    service,
    staff,
    requested_start: datetime,
    customer: CustomerInfo,
    source: str = Appointment.Source.PUBLIC,
    now: Optional[datetime] = None,
    notes: str = "",
    series=None,
) -> Appointment:
    """
    Create an appointment at `requested_start` or raise SlotUnavailable.

    Public bookings of a service with a deposit start as pending until the
    deposit is paid; everything else is confirmed immediately.
    """
    now = now or timezone.now()
    requires_deposit = source == Appointment.Source.PUBLIC and service.requires_deposit

    with transaction.atomic():
        _lock_resource(business, staff)

        reason = check_slot(business, service, staff, requested_start, now=now)
        if reason is not None:
            _raise_unavailable(business, requested_start, reason, "book")

        padded = PaddedInterval.for_service(service, requested_start)
        appointment = Appointment.objects.create(
            business=business,
            staff=staff,
            service=service,
            series=series,
            customer_name=customer.name,
            customer_phone=customer.phone,
            customer_email=customer.email or "",
            customer_locale=customer.locale or "es-PR",
            starts_at=padded.start,
            ends_at=padded.end,
            blocked_from=padded.blocked_from,
            blocked_until=padded.blocked_until,
            status=(
                Appointment.Status.PENDING
                if requires_deposit
                else Appointment.Status.CONFIRMED
            ),
            source=source,
            notes=notes or "",
            deposit_cents=service.deposit_cents if requires_deposit else 0,
            payment_status=(
                Appointment.PaymentStatus.PENDING
                if requires_deposit
                else Appointment.PaymentStatus.NOT_REQUIRED
            ),
        )

    observability.BOOKINGS_CREATED_TOTAL.labels(
        business_id=str(business.id), source=source
    ).inc()
    logger.info(
        "appointment_booked",
        extra={
            "business_id": business.slug,
            "appointment_id": appointment.id,
            "service_id": service.id,
            "staff_id": staff.id if staff else None,
            "starts_at": appointment.starts_at.isoformat(),
            "source": source,
            "status": appointment.status,
        },
    )
    return appointment


def cancel_appointment(
    appointment: Appointment, now: Optional[datetime] = None, origin: str = "dashboard"
) -> Appointment:
    """Cancel and free the interval. Canceling twice is a no-op."""
    if appointment.status == Appointment.Status.CANCELED:
        return appointment
    if appointment.status not in (
        Appointment.Status.PENDING,
        Appointment.Status.CONFIRMED,
    ):
        raise InvalidStatusTransition(appointment.status, Appointment.Status.CANCELED)

    appointment.status = Appointment.Status.CANCELED
    appointment.canceled_at = now or timezone.now()
    appointment.save(update_fields=["status", "canceled_at", "updated_at"])

    observability.APPOINTMENTS_CANCELED_TOTAL.labels(
        business_id=str(appointment.business_id), origin=origin
    ).inc()
    logger.info(
        "appointment_canceled",
        extra={
            "appointment_id": appointment.id,
            "business_pk": appointment.business_id,
            "origin": origin,
        },
    )
    return appointment


def reschedule_appointment(
    appointment: Appointment,
    new_start: datetime,
    staff=KEEP_STAFF,
    now: Optional[datetime] = None,
) -> Appointment:
    """
    Move an active appointment to `new_start` (optionally to another staff
    member), validated like a new booking but ignoring its own interval.
    """
    if appointment.status not in (
        Appointment.Status.PENDING,
        Appointment.Status.CONFIRMED,
    ):
        raise InvalidStatusTransition(appointment.status, "rescheduled")

    now = now or timezone.now()
    business = appointment.business
    service = appointment.service
    target_staff = appointment.staff if staff is KEEP_STAFF else staff

    with transaction.atomic():
        _lock_resource(business, target_staff)

        reason = check_slot(
            business,
            service,
            target_staff,
            new_start,
            now=now,
            exclude_appointment=appointment,
        )
        if reason is not None:
            _raise_unavailable(business, new_start, reason, "reschedule")

        previous = appointment.starts_at
        padded = PaddedInterval.for_service(service, new_start)
        appointment.staff = target_staff
        appointment.starts_at = padded.start
        appointment.ends_at = padded.end
        appointment.blocked_from = padded.blocked_from
        appointment.blocked_until = padded.blocked_until
        appointment.save(
            update_fields=[
                "staff",
                "starts_at",
                "ends_at",
                "blocked_from",
                "blocked_until",
                "updated_at",
            ]
        )

    logger.info(
        "appointment_rescheduled",
        extra={
            "appointment_id": appointment.id,
            "business_id": business.slug,
            "previous_start": previous.isoformat(),
            "starts_at": appointment.starts_at.isoformat(),
        },
    )
    return appointment


def set_appointment_status(
    appointment: Appointment, status: str, now: Optional[datetime] = None
) -> Appointment:
    if status == Appointment.Status.CANCELED:
        return cancel_appointment(appointment, now=now)

    allowed = STATUS_TRANSITIONS.get(appointment.status, set())
    if status not in allowed:
        raise InvalidStatusTransition(appointment.status, status)

    previous = appointment.status
    appointment.status = status
    update_fields = ["status", "updated_at"]
    if (
        status == Appointment.Status.CONFIRMED
        and appointment.payment_status == Appointment.PaymentStatus.PENDING
    ):
        # Manual confirmation by the owner settles the deposit out of band
        appointment.payment_status = Appointment.PaymentStatus.SUCCEEDED
        update_fields.append("payment_status")
    appointment.save(update_fields=update_fields)

    logger.info(
        "appointment_status_changed",
        extra={
            "appointment_id": appointment.id,
            "business_pk": appointment.business_id,
            "from_status": previous,
            "to_status": status,
        },
    )
    return appointment
