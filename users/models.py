from __future__ import annotations

from typing import Any, cast
from zoneinfo import ZoneInfo

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

from bookit_backend.validators import validate_phone_number, validate_timezone


def _default_timezone() -> str:
    return settings.DEFAULT_BUSINESS_TIMEZONE


class Business(models.Model):
    """
    Tenant root. Every service, staff member, availability entry and
    appointment belongs to exactly one business.
    """

    class MessagingMode(models.TextChoices):
        MANUAL = "manual", "Manual"
        WA_CLOUD = "wa_cloud", "WhatsApp Cloud"
        TWILIO = "twilio", "Twilio"

    name = models.CharField(max_length=255)
    slug = models.SlugField(unique=True, help_text="Public booking page identifier")
    location = models.CharField(max_length=255, blank=True, default="")

    timezone = models.CharField(
        max_length=64,
        default=_default_timezone,
        validators=[validate_timezone],
        help_text="IANA timezone; all wall-clock hours are interpreted here",
    )
    currency = models.CharField(max_length=3, default="USD")

    messaging_mode = models.CharField(
        max_length=20, choices=MessagingMode.choices, default=MessagingMode.MANUAL
    )

    # Deposits
    stripe_enabled = models.BooleanField(default=cast(Any, False))
    ath_movil_enabled = models.BooleanField(default=cast(Any, False))
    ath_movil_public_token = models.CharField(max_length=255, blank=True, default="")

    is_active = models.BooleanField(default=cast(Any, True))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "businesses"
        indexes = [
            models.Index(fields=["is_active"], name="users_business_active_idx"),
        ]

    def __str__(self):
        return self.name

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class CustomUser(AbstractUser):
    """Dashboard login for the owner or a staff member of one business."""

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name="users",
        null=True,
        blank=True,
    )
    phone_number = models.CharField(
        max_length=20, blank=True, null=True, validators=[validate_phone_number]
    )

    class Meta:
        indexes = [
            models.Index(
                fields=["business", "username"], name="users_user_business_idx"
            ),
        ]

    def __str__(self):
        if self.business:
            return f"{self.username} ({self.business.name})"
        return self.username
