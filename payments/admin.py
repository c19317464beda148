from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Deposits and charges, filterable by business."""

    list_display = (
        "id",
        "business_name",
        "appointment_link",
        "provider",
        "kind",
        "amount_cents",
        "status",
        "created_at",
    )
    list_filter = ("provider", "status", "kind", "business")
    search_fields = ("external_id", "business__name", "appointment__customer_name")
    readonly_fields = ("created_at",)
    date_hierarchy = "created_at"

    fieldsets = (
        ("Payment", {"fields": ("business", "appointment", "provider", "kind")}),
        ("Amount", {"fields": ("amount_cents", "currency", "status")}),
        (
            "Provider data",
            {"fields": ("external_id", "meta", "created_at"), "classes": ("collapse",)},
        ),
    )

    def business_name(self, obj):
        return obj.business.name

    business_name.short_description = "Business"
    business_name.admin_order_field = "business__name"

    def appointment_link(self, obj):
        if not obj.appointment_id:
            return "-"
        url = reverse("admin:core_appointment_change", args=[obj.appointment_id])
        return format_html('<a href="{}">#{}</a>', url, obj.appointment_id)

    appointment_link.short_description = "Appointment"
