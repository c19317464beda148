"""
Day-level availability: which wall-clock windows a business (or one staff
member) is open on a given date.

Resolution order for one date:

1. Exceptions. The staff member's own exception wins, otherwise the
   business-wide one. A closed exception closes the day; an exception with
   hours replaces the weekly rules with that single window.
2. Weekly rules. A staff member with any active weekly rule follows only
   their own rules (no rule for that weekday means closed). A staff member
   without weekly rules follows the business-wide rules.

Windows are sorted and merged when they overlap or touch.
"""

from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Iterable, Optional

from django.db.models import Q

from core.models import AvailabilityException, AvailabilityRule


SOURCE_NONE = "none"
SOURCE_RULES = "rules"
SOURCE_STAFF_RULES = "staff_rules"
SOURCE_EXCEPTION = "exception"
SOURCE_STAFF_EXCEPTION = "staff_exception"


@dataclass(frozen=True)
class Window:
    start: time
    end: time

    def as_dict(self) -> dict:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


@dataclass
class DayAvailability:
    date: date
    is_open: bool
    windows: list[Window] = field(default_factory=list)
    reason: str = ""
    source: str = SOURCE_NONE

    @property
    def is_custom(self) -> bool:
        return self.source in (SOURCE_EXCEPTION, SOURCE_STAFF_EXCEPTION) and self.is_open

    @property
    def state(self) -> str:
        if not self.is_open:
            return "closed"
        return "custom" if self.is_custom else "open"

    @classmethod
    def closed(cls, day: date, reason: str = "", source: str = SOURCE_NONE):
        return cls(date=day, is_open=False, windows=[], reason=reason, source=source)


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def merge_windows(windows: Iterable[Window]) -> list[Window]:
    merged: list[Window] = []
    for window in sorted(windows, key=lambda w: (w.start, w.end)):
        if merged and window.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Window(last.start, max(last.end, window.end))
        else:
            merged.append(window)
    return merged


def _is_resolvable(business, staff) -> bool:
    if business is None or not business.is_active:
        return False
    if staff is not None and (not staff.is_active or staff.business_id != business.id):
        return False
    return True


class AvailabilityIndex:
    """
    Rules and exceptions of one business for a date range, loaded once.
    Resolves many days without a query per day.
    """

    def __init__(self, business, staff, start: date, end: date):
        self.business = business
        self.staff = staff
        self.valid = _is_resolvable(business, staff)
        self._business_rules: dict[int, list[Window]] = {}
        self._staff_rules: dict[int, list[Window]] = {}
        self._staff_has_rules = False
        self._business_exceptions: dict[date, AvailabilityException] = {}
        self._staff_exceptions: dict[date, AvailabilityException] = {}
        if self.valid:
            self._load(start, end)

    def _load(self, start: date, end: date) -> None:
        rules = AvailabilityRule.objects.filter(business=self.business, is_active=True)
        if self.staff is not None:
            rules = rules.filter(Q(staff__isnull=True) | Q(staff=self.staff))
        else:
            rules = rules.filter(staff__isnull=True)

        for rule in rules:
            target = self._staff_rules if rule.staff_id else self._business_rules
            target.setdefault(rule.weekday, []).append(Window(rule.start_time, rule.end_time))
        self._staff_has_rules = bool(self._staff_rules)

        exceptions = AvailabilityException.objects.filter(
            business=self.business, date__gte=start, date__lte=end
        )
        if self.staff is not None:
            exceptions = exceptions.filter(Q(staff__isnull=True) | Q(staff=self.staff))
        else:
            exceptions = exceptions.filter(staff__isnull=True)

        for exc in exceptions:
            target = self._staff_exceptions if exc.staff_id else self._business_exceptions
            target[exc.date] = exc

    def resolve(self, day: date) -> DayAvailability:
        if not self.valid:
            return DayAvailability.closed(day)

        exc = self._staff_exceptions.get(day)
        source = SOURCE_STAFF_EXCEPTION
        if exc is None:
            exc = self._business_exceptions.get(day)
            source = SOURCE_EXCEPTION
        if exc is not None:
            if exc.is_closed:
                return DayAvailability.closed(day, reason=exc.reason or "closed", source=source)
            return DayAvailability(
                date=day,
                is_open=True,
                windows=[Window(exc.start_time, exc.end_time)],
                reason=exc.reason,
                source=source,
            )

        weekday = weekday_index(day)
        if self._staff_has_rules:
            windows = merge_windows(self._staff_rules.get(weekday, []))
            source = SOURCE_STAFF_RULES
        else:
            windows = merge_windows(self._business_rules.get(weekday, []))
            source = SOURCE_RULES

        if not windows:
            return DayAvailability.closed(day, source=source)
        return DayAvailability(date=day, is_open=True, windows=windows, source=source)


def resolve_day_availability(business, staff, day: date) -> DayAvailability:
    """Open windows of `staff` (or the whole business when None) on `day`."""
    return AvailabilityIndex(business, staff, day, day).resolve(day)


def iter_dates(start: date, end: date):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def summarize_availability(
    business, staff, start: date, end: date, index: Optional[AvailabilityIndex] = None
) -> list[DayAvailability]:
    """One entry per date in [start, end], for calendar views."""
    index = index or AvailabilityIndex(business, staff, start, end)
    return [index.resolve(day) for day in iter_dates(start, end)]


# (weekday, start, end): Monday-Friday 09:00-17:00, Saturday 10:00-15:00
DEFAULT_SCHEDULE = (
    (1, time(9), time(17)),
    (2, time(9), time(17)),
    (3, time(9), time(17)),
    (4, time(9), time(17)),
    (5, time(9), time(17)),
    (6, time(10), time(15)),
)


def create_default_schedule(business) -> list[AvailabilityRule]:
    """
    Business-wide starter hours. Does nothing (returns []) when the business
    already has business-wide rules.
    """
    if AvailabilityRule.objects.filter(business=business, staff__isnull=True).exists():
        return []
    return [
        AvailabilityRule.objects.create(
            business=business, weekday=weekday, start_time=start, end_time=end
        )
        for weekday, start, end in DEFAULT_SCHEDULE
    ]
