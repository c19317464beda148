"""
Recurring series: occurrence dates and materialization into appointments.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterator, Optional

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.utils import timezone

from bookit_backend.error_handling import SlotUnavailable
from core import observability
from core.models import Appointment, RecurringAppointmentSeries, SkippedOccurrence

from .booking import CustomerInfo, book_slot, cancel_appointment
from .config import get_booking_config

logger = logging.getLogger(__name__)

Frequency = RecurringAppointmentSeries.Frequency


@dataclass
class ExpansionResult:
    created: list[Appointment] = field(default_factory=list)
    skipped: list[SkippedOccurrence] = field(default_factory=list)

    def merge(self, other: "ExpansionResult") -> "ExpansionResult":
        self.created.extend(other.created)
        self.skipped.extend(other.skipped)
        return self

    def as_dict(self) -> dict:
        return {
            "created": len(self.created),
            "skipped": len(self.skipped),
            "created_ids": [appointment.id for appointment in self.created],
            "skipped_dates": [skip.date.isoformat() for skip in self.skipped],
        }


def nth_occurrence(anchor: date, frequency: str, k: int) -> date:
    """
    k-th occurrence after `anchor` (k >= 1). Monthly steps are computed from
    the anchor, so a series on the 31st comes back to the 31st after a
    shorter month.
    """
    if frequency == Frequency.WEEKLY:
        return anchor + timedelta(days=7 * k)
    if frequency == Frequency.BI_WEEKLY:
        return anchor + timedelta(days=14 * k)
    if frequency == Frequency.MONTHLY:
        return anchor + relativedelta(months=k)
    raise ValueError(f"Unknown frequency: {frequency}")


def occurrence_dates(
    anchor: date, frequency: str, until: date, end_date: Optional[date] = None
) -> Iterator[date]:
    """Occurrences after `anchor` up to `until` and `end_date`, inclusive."""
    limit = min(until, end_date) if end_date else until
    k = 1
    while True:
        day = nth_occurrence(anchor, frequency, k)
        if day > limit:
            return
        yield day
        k += 1


def _record_skip(series, day: date, starts_at: datetime, reason: str, detail: str):
    skip, _ = SkippedOccurrence.objects.update_or_create(
        series=series,
        date=day,
        defaults={
            "starts_at": starts_at,
            "reason": reason,
            "detail": detail[:255],
            "resolved": False,
        },
    )
    return skip


def expand_series(
    series: RecurringAppointmentSeries,
    horizon_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> ExpansionResult:
    """
    Book the series' occurrences up to the horizon.

    Only occurrences after `last_generated_date` are considered. Future ones
    go through the same guarded insert as a public booking; the ones that
    cannot be booked are recorded as SkippedOccurrence rows. Occurrences that
    were due since the last run but are already past are recorded as skipped
    too. Inactive series generate nothing.
    """
    result = ExpansionResult()
    if not series.is_active:
        return result

    business = series.business
    tz = business.tzinfo
    now = now or timezone.now()
    config = get_booking_config()
    horizon = horizon_date or (
        now.astimezone(tz).date() + timedelta(days=config.recurring_horizon_days)
    )

    customer = CustomerInfo(
        name=series.customer_name,
        phone=series.customer_phone,
        email=series.customer_email,
    )

    last_processed = series.last_generated_date
    for day in occurrence_dates(
        series.start_date, series.frequency, horizon, series.end_date
    ):
        if series.last_generated_date and day <= series.last_generated_date:
            continue

        starts_at = datetime.combine(day, series.time_of_day, tzinfo=tz)

        if starts_at <= now:
            # Only occurrences missed since an earlier run are worth flagging
            if series.last_generated_date is not None:
                result.skipped.append(
                    _record_skip(
                        series,
                        day,
                        starts_at,
                        SkippedOccurrence.Reason.PAST,
                        "Occurrence passed before it was generated",
                    )
                )
            last_processed = day
            continue

        already_booked = series.appointments.filter(
            starts_at=starts_at, status__in=Appointment.OCCUPYING_STATUSES
        ).exists()
        if already_booked:
            last_processed = day
            continue

        try:
            appointment = book_slot(
                business,
                series.service,
                series.staff,
                starts_at,
                customer,
                source=Appointment.Source.RECURRING,
                now=now,
                notes=series.notes,
                series=series,
            )
        except SlotUnavailable as exc:
            result.skipped.append(
                _record_skip(
                    series,
                    day,
                    starts_at,
                    SkippedOccurrence.Reason.UNAVAILABLE,
                    exc.details.get("reason", ""),
                )
            )
        else:
            result.created.append(appointment)
        last_processed = day

    if last_processed != series.last_generated_date:
        series.last_generated_date = last_processed
        series.save(update_fields=["last_generated_date", "updated_at"])

    business_label = str(business.id)
    if result.created:
        observability.RECURRING_OCCURRENCES_TOTAL.labels(
            business_id=business_label, result="created"
        ).inc(len(result.created))
    if result.skipped:
        observability.RECURRING_OCCURRENCES_TOTAL.labels(
            business_id=business_label, result="skipped"
        ).inc(len(result.skipped))

    logger.info(
        "recurring_series_expanded",
        extra={
            "series_id": series.id,
            "business_id": business.slug,
            "horizon": horizon.isoformat(),
            "created_count": len(result.created),
            "skipped_count": len(result.skipped),
        },
    )
    return result


def expand_all_active(
    business=None, horizon_date: Optional[date] = None, now: Optional[datetime] = None
) -> dict[int, ExpansionResult]:
    """Expand every active series (of one business, or of all active ones)."""
    qs = RecurringAppointmentSeries.objects.filter(
        is_active=True, business__is_active=True
    ).select_related("business", "service", "staff")
    if business is not None:
        qs = qs.filter(business=business)

    results = {}
    for series in qs.order_by("id"):
        results[series.id] = expand_series(series, horizon_date=horizon_date, now=now)
    return results


def cancel_future_occurrences(series, now: Optional[datetime] = None) -> int:
    now = now or timezone.now()
    future = series.appointments.filter(
        starts_at__gt=now,
        status__in=(Appointment.Status.PENDING, Appointment.Status.CONFIRMED),
    )
    canceled = 0
    for appointment in future:
        cancel_appointment(appointment, now=now, origin="recurring")
        canceled += 1
    return canceled


def deactivate_series(series, now: Optional[datetime] = None) -> int:
    """Stop generation and cancel future occurrences. Past ones stay untouched."""
    with transaction.atomic():
        series.is_active = False
        series.save(update_fields=["is_active", "updated_at"])
        canceled = cancel_future_occurrences(series, now=now)

    logger.info(
        "recurring_series_deactivated",
        extra={"series_id": series.id, "canceled_future": canceled},
    )
    return canceled


def delete_series(series, cancel_future: bool = False, now: Optional[datetime] = None) -> int:
    """
    Delete the series. Generated appointments are kept (unlinked); future
    ones are canceled first when `cancel_future` is set.
    """
    series_id = series.id
    with transaction.atomic():
        canceled = cancel_future_occurrences(series, now=now) if cancel_future else 0
        series.delete()

    logger.info(
        "recurring_series_deleted",
        extra={"series_id": series_id, "canceled_future": canceled},
    )
    return canceled
