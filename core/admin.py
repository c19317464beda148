from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from core.models import (
    Appointment,
    AvailabilityException,
    AvailabilityRule,
    RecurringAppointmentSeries,
    Service,
    SkippedOccurrence,
    Staff,
)
from core.scheduling import cancel_appointment, deactivate_series


def business_link(obj):
    """Business name linking to its admin page."""
    if obj.business_id:
        url = reverse("admin:users_business_change", args=[obj.business_id])
        return format_html('<a href="{}">{}</a>', url, obj.business.name)
    return "-"


business_link.short_description = "Business"
business_link.admin_order_field = "business__name"


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ("display_name", business_link, "role", "phone", "is_active")
    list_filter = ("business", "role", "is_active")
    search_fields = ("display_name", "phone", "business__name")


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        business_link,
        "duration_min",
        "price_cents",
        "deposit_cents",
        "max_per_slot",
        "is_active",
    )
    list_filter = ("business", "is_active")
    search_fields = ("name", "business__name")
    filter_horizontal = ("staff",)

    fieldsets = (
        ("Service", {"fields": ("business", "name", "description", "is_active")}),
        ("Pricing", {"fields": ("price_cents", "deposit_cents")}),
        (
            "Scheduling",
            {
                "fields": (
                    "duration_min",
                    "buffer_before_min",
                    "buffer_after_min",
                    "max_per_slot",
                    "staff",
                )
            },
        ),
    )


@admin.register(AvailabilityRule)
class AvailabilityRuleAdmin(admin.ModelAdmin):
    list_display = ("weekday", "start_time", "end_time", "staff", business_link, "is_active")
    list_filter = ("business", "weekday", "is_active")


@admin.register(AvailabilityException)
class AvailabilityExceptionAdmin(admin.ModelAdmin):
    list_display = ("date", "is_closed", "start_time", "end_time", "staff", business_link, "reason")
    list_filter = ("business", "is_closed", "reason")
    date_hierarchy = "date"


class SkippedOccurrenceInline(admin.TabularInline):
    model = SkippedOccurrence
    extra = 0
    fields = ("date", "starts_at", "reason", "detail", "resolved")
    readonly_fields = ("date", "starts_at", "reason", "detail")


@admin.register(RecurringAppointmentSeries)
class RecurringAppointmentSeriesAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "customer_name",
        business_link,
        "service",
        "staff",
        "frequency",
        "time_of_day",
        "last_generated_date",
        "is_active",
    )
    list_filter = ("business", "frequency", "is_active")
    search_fields = ("customer_name", "customer_phone")
    readonly_fields = ("last_generated_date", "created_at", "updated_at")
    inlines = [SkippedOccurrenceInline]
    actions = ["deactivate_selected"]

    def deactivate_selected(self, request, queryset):
        canceled = 0
        for series in queryset.filter(is_active=True):
            canceled += deactivate_series(series)
        self.message_user(
            request, f"Series deactivated; {canceled} future appointment(s) canceled."
        )

    deactivate_selected.short_description = "Deactivate and cancel future occurrences"


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "customer_name",
        business_link,
        "service",
        "staff",
        "starts_at",
        "status",
        "source",
        "payment_status",
    )
    list_filter = ("business", "status", "source", "payment_status")
    search_fields = ("customer_name", "customer_phone", "customer_email")
    date_hierarchy = "starts_at"
    readonly_fields = (
        "blocked_from",
        "blocked_until",
        "series",
        "created_at",
        "updated_at",
        "canceled_at",
    )
    actions = ["cancel_selected"]

    def cancel_selected(self, request, queryset):
        canceled = 0
        for appointment in queryset.filter(
            status__in=(Appointment.Status.PENDING, Appointment.Status.CONFIRMED)
        ):
            cancel_appointment(appointment, origin="admin")
            canceled += 1
        self.message_user(request, f"{canceled} appointment(s) canceled.")

    cancel_selected.short_description = "Cancel selected appointments"
