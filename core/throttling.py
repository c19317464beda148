from users.throttling import RuntimeScopedThrottle


class PublicBookingThrottle(RuntimeScopedThrottle):
    scope = "public_booking"
