from .availability import (
    DayAvailability,
    create_default_schedule,
    Window,
    resolve_day_availability,
    summarize_availability,
    weekday_index,
)
from .booking import (
    KEEP_STAFF,
    CustomerInfo,
    book_slot,
    cancel_appointment,
    reschedule_appointment,
    set_appointment_status,
)
from .config import BookingConfig, get_booking_config
from .recurrence import (
    ExpansionResult,
    deactivate_series,
    delete_series,
    expand_all_active,
    expand_series,
    occurrence_dates,
)
from .slots import check_slot, generate_slots, is_slot_available

__all__ = [
    "KEEP_STAFF",
    "BookingConfig",
    "CustomerInfo",
    "DayAvailability",
    "ExpansionResult",
    "Window",
    "book_slot",
    "cancel_appointment",
    "check_slot",
    "create_default_schedule",
    "deactivate_series",
    "delete_series",
    "expand_all_active",
    "expand_series",
    "generate_slots",
    "get_booking_config",
    "is_slot_available",
    "occurrence_dates",
    "reschedule_appointment",
    "resolve_day_availability",
    "set_appointment_status",
    "summarize_availability",
    "weekday_index",
]
