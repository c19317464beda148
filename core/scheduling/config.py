"""
Scheduling engine configuration, read from settings.BOOKING.
"""

from dataclasses import dataclass
from datetime import timedelta

from django.conf import settings


@dataclass(frozen=True)
class BookingConfig:
    """
    Attributes:
        slot_step_minutes: grid on which candidate starts are generated,
            counted from each window start
        min_advance_minutes: starts at or before now + this are not offered
        max_range_days: largest inclusive date range a query may span
        recurring_horizon_days: how far ahead recurring series are booked
    """

    slot_step_minutes: int = 30
    min_advance_minutes: int = 0
    max_range_days: int = 62
    recurring_horizon_days: int = 30

    def __post_init__(self):
        if self.slot_step_minutes <= 0 or 1440 % self.slot_step_minutes != 0:
            raise ValueError(
                f"slot_step_minutes must divide a day evenly, got {self.slot_step_minutes}"
            )
        if self.min_advance_minutes < 0:
            raise ValueError("min_advance_minutes cannot be negative")

    @property
    def step(self) -> timedelta:
        return timedelta(minutes=self.slot_step_minutes)

    @property
    def min_advance(self) -> timedelta:
        return timedelta(minutes=self.min_advance_minutes)


def get_booking_config() -> BookingConfig:
    """Current configuration. Not cached so settings overrides apply in tests."""
    booking = getattr(settings, "BOOKING", {}) or {}
    return BookingConfig(
        slot_step_minutes=int(booking.get("SLOT_STEP_MINUTES", 30)),
        min_advance_minutes=int(booking.get("MIN_ADVANCE_MINUTES", 0)),
        max_range_days=int(booking.get("MAX_RANGE_DAYS", 62)),
        recurring_horizon_days=int(booking.get("RECURRING_HORIZON_DAYS", 30)),
    )
