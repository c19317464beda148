"""
Bookable start times for a service.

A candidate start is kept when:

- it lies on the step grid counted from its window start,
- the visit (start + duration) ends inside the window,
- fewer than `max_per_slot` occupying appointments of the same resource
  overlap its padded interval [start - buffer_before, end + buffer_after),
- it is later than now + MIN_ADVANCE_MINUTES.

"Same resource" is the given staff member, or the staff-less appointments of
the business when no staff member is given.
"""

from bisect import bisect_left
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from django.utils import timezone

from core.models import Appointment

from .availability import AvailabilityIndex, DayAvailability, iter_dates
from .config import BookingConfig, get_booking_config


# Reasons returned by check_slot
REASON_SERVICE_UNAVAILABLE = "service_unavailable"
REASON_CLOSED = "closed"
REASON_OUTSIDE_HOURS = "outside_hours"
REASON_OFF_GRID = "off_grid"
REASON_TOO_SOON = "too_soon"
REASON_FULL = "full"


@dataclass(frozen=True)
class PaddedInterval:
    start: datetime
    end: datetime
    blocked_from: datetime
    blocked_until: datetime

    @classmethod
    def for_service(cls, service, start: datetime) -> "PaddedInterval":
        end = start + timedelta(minutes=service.duration_min)
        return cls(
            start=start,
            end=end,
            blocked_from=start - timedelta(minutes=service.buffer_before_min),
            blocked_until=end + timedelta(minutes=service.buffer_after_min),
        )


def service_bookable(business, service, staff=None) -> bool:
    if business is None or service is None:
        return False
    if not service.is_active or service.business_id != business.id:
        return False
    if staff is not None:
        assigned = list(service.staff.values_list("id", flat=True))
        if assigned and staff.id not in assigned:
            return False
    return True


def occupying_intervals(
    business,
    staff,
    range_start: datetime,
    range_end: datetime,
    exclude_appointment=None,
) -> list[tuple[datetime, datetime]]:
    """Stored padded intervals of occupying appointments overlapping the range."""
    qs = Appointment.objects.filter(
        business=business,
        status__in=Appointment.OCCUPYING_STATUSES,
        blocked_from__lt=range_end,
        blocked_until__gt=range_start,
    )
    if staff is not None:
        qs = qs.filter(staff=staff)
    else:
        qs = qs.filter(staff__isnull=True)
    if exclude_appointment is not None and exclude_appointment.pk:
        qs = qs.exclude(pk=exclude_appointment.pk)
    return sorted(qs.values_list("blocked_from", "blocked_until"))


def count_overlaps(intervals, blocked_from: datetime, blocked_until: datetime) -> int:
    """Intervals (sorted by start) overlapping [blocked_from, blocked_until)."""
    limit = bisect_left(intervals, (blocked_until,))
    return sum(1 for _start, end in intervals[:limit] if end > blocked_from)


def _window_bounds(day: date, window, tz) -> tuple[datetime, datetime]:
    return (
        datetime.combine(day, window.start, tzinfo=tz),
        datetime.combine(day, window.end, tzinfo=tz),
    )


def day_candidates(
    day_availability: DayAvailability, service, tz, config: BookingConfig
) -> list[datetime]:
    """Grid starts whose visit fits inside one of the day's windows."""
    duration = timedelta(minutes=service.duration_min)
    starts = []
    for window in day_availability.windows:
        window_start, window_end = _window_bounds(day_availability.date, window, tz)
        t = window_start
        while t + duration <= window_end:
            starts.append(t)
            t += config.step
    return starts


def generate_slots(
    business,
    service,
    staff,
    start_date: date,
    end_date: date,
    now: Optional[datetime] = None,
    config: Optional[BookingConfig] = None,
) -> list[datetime]:
    """
    Ascending bookable starts between start_date and end_date (inclusive),
    as aware datetimes in the business timezone.
    """
    if end_date < start_date or not service_bookable(business, service, staff):
        return []

    config = config or get_booking_config()
    now = now or timezone.now()
    tz = business.tzinfo
    cutoff = now + config.min_advance

    index = AvailabilityIndex(business, staff, start_date, end_date)
    if not index.valid:
        return []

    candidates: list[datetime] = []
    for day in iter_dates(start_date, end_date):
        day_availability = index.resolve(day)
        if day_availability.is_open:
            candidates.extend(day_candidates(day_availability, service, tz, config))

    candidates = [start for start in candidates if start > cutoff]
    if not candidates:
        return []

    first = PaddedInterval.for_service(service, candidates[0])
    last = PaddedInterval.for_service(service, candidates[-1])
    intervals = occupying_intervals(
        business, staff, first.blocked_from, last.blocked_until
    )

    slots = []
    for start in candidates:
        padded = PaddedInterval.for_service(service, start)
        if count_overlaps(intervals, padded.blocked_from, padded.blocked_until) < service.max_per_slot:
            slots.append(start)
    return slots


def check_slot(
    business,
    service,
    staff,
    start: datetime,
    now: Optional[datetime] = None,
    exclude_appointment=None,
    config: Optional[BookingConfig] = None,
) -> Optional[str]:
    """
    Re-validate one start time. Returns None when bookable, otherwise the
    reason it is not.
    """
    if not service_bookable(business, service, staff):
        return REASON_SERVICE_UNAVAILABLE

    config = config or get_booking_config()
    now = now or timezone.now()
    tz = business.tzinfo
    local_start = start.astimezone(tz)
    day = local_start.date()

    day_availability = AvailabilityIndex(business, staff, day, day).resolve(day)
    if not day_availability.is_open:
        return REASON_CLOSED

    padded = PaddedInterval.for_service(service, local_start)
    fitting = None
    for window in day_availability.windows:
        window_start, window_end = _window_bounds(day, window, tz)
        if window_start <= local_start and padded.end <= window_end:
            fitting = window_start
            break
    if fitting is None:
        return REASON_OUTSIDE_HOURS

    if (local_start - fitting) % config.step != timedelta(0):
        return REASON_OFF_GRID

    if local_start <= now + config.min_advance:
        return REASON_TOO_SOON

    intervals = occupying_intervals(
        business,
        staff,
        padded.blocked_from,
        padded.blocked_until,
        exclude_appointment=exclude_appointment,
    )
    if count_overlaps(intervals, padded.blocked_from, padded.blocked_until) >= service.max_per_slot:
        return REASON_FULL

    return None


def is_slot_available(
    business,
    service,
    staff,
    start: datetime,
    now: Optional[datetime] = None,
    exclude_appointment=None,
) -> bool:
    return (
        check_slot(
            business,
            service,
            staff,
            start,
            now=now,
            exclude_appointment=exclude_appointment,
        )
        is None
    )
