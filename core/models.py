from datetime import datetime
from typing import Any, cast

from django.db import models
from django.db.models import Q

from bookit_backend.validators import (
    validate_buffer,
    validate_duration,
    validate_money_cents,
    validate_phone_number,
    validate_weekday,
)
from users.models import Business, CustomUser


class Staff(models.Model):
    class Role(models.TextChoices):
        MEMBER = "member", "Member"
        ADMIN = "admin", "Admin"

    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="staff"
    )
    user = models.ForeignKey(
        CustomUser,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="staff_profiles",
    )
    display_name = models.CharField(max_length=120)
    phone = models.CharField(
        max_length=20, blank=True, default="", validators=[validate_phone_number]
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    is_active = models.BooleanField(default=cast(Any, True))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "staff"
        ordering = ("display_name", "id")
        indexes = [
            models.Index(fields=["business", "is_active"], name="core_staff_active_idx"),
        ]

    def __str__(self):
        return f"{self.display_name} ({self.business.slug})"


class Service(models.Model):
    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="services"
    )
    name = models.CharField(max_length=120)
    description = models.TextField(blank=True, default="")
    duration_min = models.PositiveIntegerField(validators=[validate_duration])
    price_cents = models.PositiveIntegerField(
        default=0, validators=[validate_money_cents]
    )
    deposit_cents = models.PositiveIntegerField(
        default=0, validators=[validate_money_cents]
    )
    buffer_before_min = models.PositiveIntegerField(
        default=0, validators=[validate_buffer]
    )
    buffer_after_min = models.PositiveIntegerField(
        default=0, validators=[validate_buffer]
    )
    max_per_slot = models.PositiveIntegerField(
        default=1, help_text="Concurrent bookings allowed for the same interval"
    )
    is_active = models.BooleanField(default=cast(Any, True))
    staff = models.ManyToManyField(Staff, blank=True, related_name="services")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name", "id")
        indexes = [
            models.Index(
                fields=["business", "is_active"], name="core_service_active_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(duration_min__gt=0), name="service_duration_positive"
            ),
            models.CheckConstraint(
                condition=Q(max_per_slot__gte=1), name="service_max_per_slot_min"
            ),
            models.CheckConstraint(
                condition=Q(deposit_cents__lte=models.F("price_cents")),
                name="service_deposit_lte_price",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.duration_min} min)"

    @property
    def requires_deposit(self) -> bool:
        return self.deposit_cents > 0


class AvailabilityRule(models.Model):
    """Recurring weekly open window. weekday: 0 = Sunday ... 6 = Saturday."""

    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="availability_rules"
    )
    staff = models.ForeignKey(
        Staff,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="availability_rules",
    )
    weekday = models.PositiveSmallIntegerField(validators=[validate_weekday])
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_active = models.BooleanField(default=cast(Any, True))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("weekday", "start_time", "id")
        indexes = [
            models.Index(
                fields=["business", "staff", "weekday"], name="core_rule_lookup_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_time__lt=models.F("end_time")),
                name="rule_start_before_end",
            ),
            models.CheckConstraint(
                condition=Q(weekday__gte=0) & Q(weekday__lte=6),
                name="rule_weekday_range",
            ),
        ]

    def __str__(self):
        who = self.staff.display_name if self.staff_id else "business"
        return f"{who} weekday={self.weekday} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


class AvailabilityException(models.Model):
    """Date-specific override: closed all day, or open with custom hours."""

    class Reason(models.TextChoices):
        VACATION = "vacation", "Vacation"
        SICK = "sick", "Sick"
        HOLIDAY = "holiday", "Holiday"
        MAINTENANCE = "maintenance", "Maintenance"
        OTHER = "other", "Other"

    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="availability_exceptions"
    )
    staff = models.ForeignKey(
        Staff,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="availability_exceptions",
    )
    date = models.DateField()
    is_closed = models.BooleanField(default=cast(Any, True))
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    reason = models.CharField(
        max_length=20, choices=Reason.choices, blank=True, default=""
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("date", "id")
        indexes = [
            models.Index(fields=["business", "date"], name="core_exc_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["business", "staff", "date"],
                condition=Q(staff__isnull=False),
                name="exception_unique_staff_date",
            ),
            models.UniqueConstraint(
                fields=["business", "date"],
                condition=Q(staff__isnull=True),
                name="exception_unique_business_date",
            ),
            models.CheckConstraint(
                condition=(
                    Q(is_closed=True, start_time__isnull=True, end_time__isnull=True)
                    | Q(
                        is_closed=False,
                        start_time__isnull=False,
                        end_time__isnull=False,
                        start_time__lt=models.F("end_time"),
                    )
                ),
                name="exception_hours_consistent",
            ),
        ]

    def __str__(self):
        state = (
            "closed"
            if self.is_closed
            else f"{self.start_time:%H:%M}-{self.end_time:%H:%M}"
        )
        return f"{self.date} {state}"


class RecurringAppointmentSeries(models.Model):
    class Frequency(models.TextChoices):
        WEEKLY = "weekly", "Weekly"
        BI_WEEKLY = "bi-weekly", "Every two weeks"
        MONTHLY = "monthly", "Monthly"

    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="recurring_series"
    )
    service = models.ForeignKey(
        Service, on_delete=models.CASCADE, related_name="recurring_series"
    )
    staff = models.ForeignKey(
        Staff,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recurring_series",
    )
    customer_name = models.CharField(max_length=120)
    customer_phone = models.CharField(max_length=20, validators=[validate_phone_number])
    customer_email = models.EmailField(blank=True, default="")
    frequency = models.CharField(max_length=10, choices=Frequency.choices)
    start_date = models.DateField(help_text="Anchor date; occurrences follow it")
    end_date = models.DateField(null=True, blank=True)
    time_of_day = models.TimeField()
    notes = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=cast(Any, True))
    last_generated_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "recurring appointment series"
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(
                fields=["business", "is_active"], name="core_series_active_idx"
            ),
        ]

    def __str__(self):
        return f"Series<{self.id}> {self.customer_name} {self.frequency} @ {self.time_of_day:%H:%M}"


class Appointment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        CANCELED = "canceled", "Canceled"
        COMPLETED = "completed", "Completed"
        NO_SHOW = "no_show", "No show"

    class Source(models.TextChoices):
        PUBLIC = "public", "Public booking page"
        DASHBOARD = "dashboard", "Dashboard"
        RECURRING = "recurring", "Recurring series"

    class PaymentStatus(models.TextChoices):
        NOT_REQUIRED = "not_required", "Not required"
        PENDING = "pending", "Pending"
        SUCCEEDED = "succeeded", "Succeeded"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"

    # Statuses whose padded interval counts against capacity
    OCCUPYING_STATUSES = (Status.PENDING, Status.CONFIRMED, Status.COMPLETED)

    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="appointments"
    )
    staff = models.ForeignKey(
        Staff,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )
    service = models.ForeignKey(
        Service, on_delete=models.PROTECT, related_name="appointments"
    )
    series = models.ForeignKey(
        RecurringAppointmentSeries,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="appointments",
    )
    customer_name = models.CharField(max_length=120)
    customer_phone = models.CharField(max_length=20, validators=[validate_phone_number])
    customer_email = models.EmailField(blank=True, default="")
    customer_locale = models.CharField(max_length=10, default="es-PR")

    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    # Occupied interval including the service buffers, fixed at booking time
    blocked_from = models.DateTimeField()
    blocked_until = models.DateTimeField()

    status = models.CharField(
        max_length=12, choices=Status.choices, default=Status.CONFIRMED
    )
    source = models.CharField(
        max_length=12, choices=Source.choices, default=Source.PUBLIC
    )
    notes = models.TextField(blank=True, default="")

    deposit_cents = models.PositiveIntegerField(default=0)
    payment_status = models.CharField(
        max_length=12,
        choices=PaymentStatus.choices,
        default=PaymentStatus.NOT_REQUIRED,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    canceled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("starts_at", "id")
        indexes = [
            models.Index(
                fields=["business", "staff", "blocked_from"],
                name="core_appt_staff_block_idx",
            ),
            models.Index(
                fields=["business", "starts_at"], name="core_appt_starts_idx"
            ),
            models.Index(fields=["business", "status"], name="core_appt_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(starts_at__lt=models.F("ends_at")),
                name="appointment_start_before_end",
            ),
            models.CheckConstraint(
                condition=Q(blocked_from__lte=models.F("starts_at"))
                & Q(blocked_until__gte=models.F("ends_at")),
                name="appointment_block_covers_visit",
            ),
        ]

    def __str__(self):
        return f"{self.customer_name} - {self.service.name} @ {self.starts_at.isoformat()}"

    @property
    def is_occupying(self) -> bool:
        return self.status in self.OCCUPYING_STATUSES

    def local_starts_at(self) -> datetime:
        return self.starts_at.astimezone(self.business.tzinfo)


class SkippedOccurrence(models.Model):
    """A recurring occurrence the expander could not book."""

    class Reason(models.TextChoices):
        UNAVAILABLE = "unavailable", "Slot unavailable"
        PAST = "past", "In the past"

    series = models.ForeignKey(
        RecurringAppointmentSeries,
        on_delete=models.CASCADE,
        related_name="skipped_occurrences",
    )
    date = models.DateField()
    starts_at = models.DateTimeField()
    reason = models.CharField(
        max_length=12, choices=Reason.choices, default=Reason.UNAVAILABLE
    )
    detail = models.CharField(max_length=255, blank=True, default="")
    resolved = models.BooleanField(default=cast(Any, False))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("date", "id")
        constraints = [
            models.UniqueConstraint(
                fields=["series", "date"], name="skipped_unique_series_date"
            ),
        ]

    def __str__(self):
        return f"Skipped<{self.series_id}> {self.date} ({self.reason})"
