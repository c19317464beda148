from django.db import models

from core.models import Appointment
from users.models import Business


class Payment(models.Model):
    """A deposit or charge recorded against an appointment."""

    class Provider(models.TextChoices):
        STRIPE = "stripe", "Stripe"
        ATH = "ath", "ATH Movil"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        SUCCEEDED = "succeeded", "Succeeded"
        FAILED = "failed", "Failed"
        REFUNDED = "refunded", "Refunded"

    class Kind(models.TextChoices):
        DEPOSIT = "deposit", "Deposit"
        SERVICE = "service", "Service"
        NO_SHOW_FEE = "no_show_fee", "No-show fee"

    business = models.ForeignKey(
        Business, on_delete=models.CASCADE, related_name="payments"
    )
    appointment = models.ForeignKey(
        Appointment,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
    )
    provider = models.CharField(max_length=10, choices=Provider.choices)
    external_id = models.CharField(max_length=255, blank=True, default="")
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(
        max_length=12, choices=Status.choices, default=Status.PENDING
    )
    kind = models.CharField(max_length=12, choices=Kind.choices, default=Kind.DEPOSIT)
    meta = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(
                fields=["business", "status"], name="payments_business_status_idx"
            ),
            models.Index(
                fields=["provider", "external_id"], name="payments_provider_ext_idx"
            ),
        ]

    def __str__(self):
        return f"{self.provider} {self.kind} {self.amount_cents} ({self.status})"
