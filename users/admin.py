from typing import Any

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from django.urls import reverse
from django.utils.html import format_html

from .models import Business, CustomUser


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = [
        "name",
        "slug",
        "timezone",
        "stripe_enabled",
        "ath_movil_enabled",
        "is_active",
        "users_count",
        "created_at",
    ]
    list_filter = ["is_active", "stripe_enabled", "ath_movil_enabled", "messaging_mode"]
    search_fields = ["name", "slug"]
    prepopulated_fields = {"slug": ("name",)}
    readonly_fields = ["created_at", "updated_at", "users_count"]

    fieldsets = (
        ("Business", {"fields": ("name", "slug", "location", "is_active")}),
        ("Locale", {"fields": ("timezone", "currency", "messaging_mode")}),
        (
            "Deposits",
            {
                "fields": (
                    "stripe_enabled",
                    "ath_movil_enabled",
                    "ath_movil_public_token",
                )
            },
        ),
        (
            "Metadata",
            {
                "fields": ("created_at", "updated_at", "users_count"),
                "classes": ("collapse",),
            },
        ),
    )

    actions = ["activate_businesses", "deactivate_businesses"]

    def users_count(self, obj):
        count = obj.users.count()
        if count > 0:
            url = (
                reverse("admin:users_customuser_changelist")
                + f"?business__id__exact={obj.id}"
            )
            return format_html('<a href="{}">{} users</a>', url, count)
        return f"{count} users"

    users_count.short_description = "Users"

    def activate_businesses(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} business(es) activated.")

    activate_businesses.short_description = "Activate selected businesses"

    def deactivate_businesses(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} business(es) deactivated.")

    deactivate_businesses.short_description = "Deactivate selected businesses"


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    model = CustomUser
    list_display = [
        "username",
        "email",
        "business_name",
        "is_staff",
        "is_active",
        "date_joined",
    ]
    list_filter = ["business", "is_staff", "is_active", "date_joined"]
    search_fields = ["username", "email", "business__name"]

    base_fieldsets: list[Any] = list(UserAdmin.fieldsets or [])
    base_fieldsets.append(("Business", {"fields": ("business", "phone_number")}))
    fieldsets = base_fieldsets

    def business_name(self, obj):
        if obj.business:
            url = reverse("admin:users_business_change", args=[obj.business.pk])
            return format_html('<a href="{}">{}</a>', url, obj.business.name)
        return "-"

    business_name.short_description = "Business"
    business_name.admin_order_field = "business__name"
