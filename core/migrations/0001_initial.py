import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import bookit_backend.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("users", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Staff",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("display_name", models.CharField(max_length=120)),
                (
                    "phone",
                    models.CharField(
                        blank=True,
                        default="",
                        max_length=20,
                        validators=[bookit_backend.validators.PhoneNumberValidator()],
                    ),
                ),
                (
                    "role",
                    models.CharField(
                        choices=[("member", "Member"), ("admin", "Admin")],
                        default="member",
                        max_length=10,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="staff",
                        to="users.business",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="staff_profiles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "staff",
                "ordering": ("display_name", "id"),
                "indexes": [
                    models.Index(fields=["business", "is_active"], name="core_staff_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Service",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "duration_min",
                    models.PositiveIntegerField(
                        validators=[bookit_backend.validators.DurationValidator()]
                    ),
                ),
                (
                    "price_cents",
                    models.PositiveIntegerField(
                        default=0, validators=[bookit_backend.validators.MoneyCentsValidator()]
                    ),
                ),
                (
                    "deposit_cents",
                    models.PositiveIntegerField(
                        default=0, validators=[bookit_backend.validators.MoneyCentsValidator()]
                    ),
                ),
                (
                    "buffer_before_min",
                    models.PositiveIntegerField(
                        default=0, validators=[bookit_backend.validators.BufferValidator()]
                    ),
                ),
                (
                    "buffer_after_min",
                    models.PositiveIntegerField(
                        default=0, validators=[bookit_backend.validators.BufferValidator()]
                    ),
                ),
                (
                    "max_per_slot",
                    models.PositiveIntegerField(
                        default=1, help_text="Concurrent bookings allowed for the same interval"
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="services",
                        to="users.business",
                    ),
                ),
                (
                    "staff",
                    models.ManyToManyField(blank=True, related_name="services", to="core.staff"),
                ),
            ],
            options={
                "ordering": ("name", "id"),
                "indexes": [
                    models.Index(fields=["business", "is_active"], name="core_service_active_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(duration_min__gt=0), name="service_duration_positive"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(max_per_slot__gte=1), name="service_max_per_slot_min"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(deposit_cents__lte=models.F("price_cents")),
                        name="service_deposit_lte_price",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AvailabilityRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "weekday",
                    models.PositiveSmallIntegerField(
                        validators=[bookit_backend.validators.WeekdayValidator()]
                    ),
                ),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="availability_rules",
                        to="users.business",
                    ),
                ),
                (
                    "staff",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="availability_rules",
                        to="core.staff",
                    ),
                ),
            ],
            options={
                "ordering": ("weekday", "start_time", "id"),
                "indexes": [
                    models.Index(
                        fields=["business", "staff", "weekday"], name="core_rule_lookup_idx"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(start_time__lt=models.F("end_time")),
                        name="rule_start_before_end",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("weekday__gte", 0), ("weekday__lte", 6)),
                        name="rule_weekday_range",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AvailabilityException",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("is_closed", models.BooleanField(default=True)),
                ("start_time", models.TimeField(blank=True, null=True)),
                ("end_time", models.TimeField(blank=True, null=True)),
                (
                    "reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("vacation", "Vacation"),
                            ("sick", "Sick"),
                            ("holiday", "Holiday"),
                            ("maintenance", "Maintenance"),
                            ("other", "Other"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="availability_exceptions",
                        to="users.business",
                    ),
                ),
                (
                    "staff",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="availability_exceptions",
                        to="core.staff",
                    ),
                ),
            ],
            options={
                "ordering": ("date", "id"),
                "indexes": [
                    models.Index(fields=["business", "date"], name="core_exc_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(staff__isnull=False),
                        fields=("business", "staff", "date"),
                        name="exception_unique_staff_date",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(staff__isnull=True),
                        fields=("business", "date"),
                        name="exception_unique_business_date",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("end_time__isnull", True),
                                ("is_closed", True),
                                ("start_time__isnull", True),
                            ),
                            models.Q(
                                ("end_time__isnull", False),
                                ("is_closed", False),
                                ("start_time__isnull", False),
                                ("start_time__lt", models.F("end_time")),
                            ),
                            _connector="OR",
                        ),
                        name="exception_hours_consistent",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RecurringAppointmentSeries",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(max_length=120)),
                (
                    "customer_phone",
                    models.CharField(
                        max_length=20,
                        validators=[bookit_backend.validators.PhoneNumberValidator()],
                    ),
                ),
                ("customer_email", models.EmailField(blank=True, default="", max_length=254)),
                (
                    "frequency",
                    models.CharField(
                        choices=[
                            ("weekly", "Weekly"),
                            ("bi-weekly", "Every two weeks"),
                            ("monthly", "Monthly"),
                        ],
                        max_length=10,
                    ),
                ),
                ("start_date", models.DateField(help_text="Anchor date; occurrences follow it")),
                ("end_date", models.DateField(blank=True, null=True)),
                ("time_of_day", models.TimeField()),
                ("notes", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("last_generated_date", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="recurring_series",
                        to="users.business",
                    ),
                ),
                (
                    "service",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="recurring_series",
                        to="core.service",
                    ),
                ),
                (
                    "staff",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="recurring_series",
                        to="core.staff",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "recurring appointment series",
                "ordering": ("-created_at", "-id"),
                "indexes": [
                    models.Index(fields=["business", "is_active"], name="core_series_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Appointment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_name", models.CharField(max_length=120)),
                (
                    "customer_phone",
                    models.CharField(
                        max_length=20,
                        validators=[bookit_backend.validators.PhoneNumberValidator()],
                    ),
                ),
                ("customer_email", models.EmailField(blank=True, default="", max_length=254)),
                ("customer_locale", models.CharField(default="es-PR", max_length=10)),
                ("starts_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField()),
                ("blocked_from", models.DateTimeField()),
                ("blocked_until", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("canceled", "Canceled"),
                            ("completed", "Completed"),
                            ("no_show", "No show"),
                        ],
                        default="confirmed",
                        max_length=12,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("public", "Public booking page"),
                            ("dashboard", "Dashboard"),
                            ("recurring", "Recurring series"),
                        ],
                        default="public",
                        max_length=12,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("deposit_cents", models.PositiveIntegerField(default=0)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("not_required", "Not required"),
                            ("pending", "Pending"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        default="not_required",
                        max_length=12,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("canceled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "business",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="appointments",
                        to="users.business",
                    ),
                ),
                (
                    "series",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="appointments",
                        to="core.recurringappointmentseries",
                    ),
                ),
                (
                    "service",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="appointments",
                        to="core.service",
                    ),
                ),
                (
                    "staff",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="appointments",
                        to="core.staff",
                    ),
                ),
            ],
            options={
                "ordering": ("starts_at", "id"),
                "indexes": [
                    models.Index(
                        fields=["business", "staff", "blocked_from"],
                        name="core_appt_staff_block_idx",
                    ),
                    models.Index(fields=["business", "starts_at"], name="core_appt_starts_idx"),
                    models.Index(fields=["business", "status"], name="core_appt_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(starts_at__lt=models.F("ends_at")),
                        name="appointment_start_before_end",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("blocked_from__lte", models.F("starts_at")),
                            ("blocked_until__gte", models.F("ends_at")),
                        ),
                        name="appointment_block_covers_visit",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SkippedOccurrence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("starts_at", models.DateTimeField()),
                (
                    "reason",
                    models.CharField(
                        choices=[("unavailable", "Slot unavailable"), ("past", "In the past")],
                        default="unavailable",
                        max_length=12,
                    ),
                ),
                ("detail", models.CharField(blank=True, default="", max_length=255)),
                ("resolved", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "series",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="skipped_occurrences",
                        to="core.recurringappointmentseries",
                    ),
                ),
            ],
            options={
                "ordering": ("date", "id"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("series", "date"), name="skipped_unique_series_date"
                    ),
                ],
            },
        ),
    ]
