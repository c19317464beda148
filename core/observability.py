from prometheus_client import Counter, REGISTRY


def _get_or_create_counter(name: str, documentation: str, labelnames: tuple[str, ...]) -> Counter:
    existing = REGISTRY._names_to_collectors.get(name)  # type: ignore[attr-defined]
    if existing is not None:
        return existing  # type: ignore[return-value]
    return Counter(name, documentation, labelnames)


SLOT_QUERIES_TOTAL = _get_or_create_counter(
    "bookit_slot_queries_total",
    "Slot and day-summary queries served",
    ("business_id", "endpoint"),
)

BOOKINGS_CREATED_TOTAL = _get_or_create_counter(
    "bookit_bookings_created_total",
    "Appointments created through the booking engine",
    ("business_id", "source"),
)

SLOT_CONFLICTS_TOTAL = _get_or_create_counter(
    "bookit_slot_conflicts_total",
    "Bookings or reschedules rejected because the slot was unavailable",
    ("business_id", "reason"),
)

APPOINTMENTS_CANCELED_TOTAL = _get_or_create_counter(
    "bookit_appointments_canceled_total",
    "Appointments canceled",
    ("business_id", "origin"),
)

RECURRING_OCCURRENCES_TOTAL = _get_or_create_counter(
    "bookit_recurring_occurrences_total",
    "Recurring occurrences processed by the expander",
    ("business_id", "result"),
)

ICS_DOWNLOADS_TOTAL = _get_or_create_counter(
    "bookit_ics_downloads_total",
    "Calendar (.ics) downloads",
    ("business_id", "status"),
)

DEPOSIT_CHECKOUTS_TOTAL = _get_or_create_counter(
    "bookit_deposit_checkouts_total",
    "Deposit payment flows started",
    ("business_id", "provider", "status"),
)
