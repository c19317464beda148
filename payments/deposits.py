"""
Deposit flow started right after a public booking.

Stripe Checkout is used when the business has it enabled and the platform
has an API key. Otherwise, or when Stripe fails, the customer gets ATH Movil
instructions to pay from the booking page.
"""

import logging
from typing import Any, Optional

import stripe

from core import observability

from . import stripe_utils
from .models import Payment

logger = logging.getLogger(__name__)


def ath_movil_instructions(appointment) -> Optional[dict[str, Any]]:
    business = appointment.business
    if not business.ath_movil_enabled:
        return None
    return {
        "amount_cents": appointment.deposit_cents,
        "public_token": business.ath_movil_public_token,
    }


def _count(business, provider: str, status: str) -> None:
    observability.DEPOSIT_CHECKOUTS_TOTAL.labels(
        business_id=str(business.id), provider=provider, status=status
    ).inc()


def start_deposit(appointment) -> dict[str, Any]:
    """
    Returns `{"requires_payment", "payment_url", "ath_movil"}` for the
    booking response. Nothing is charged here.
    """
    if appointment.deposit_cents <= 0:
        return {"requires_payment": False, "payment_url": None, "ath_movil": None}

    business = appointment.business
    result: dict[str, Any] = {
        "requires_payment": True,
        "payment_url": None,
        "ath_movil": None,
    }

    if business.stripe_enabled and stripe_utils.stripe_configured():
        try:
            session = stripe_utils.create_deposit_checkout(appointment)
        except stripe.StripeError as exc:
            _count(business, Payment.Provider.STRIPE, "error")
            logger.warning(
                "deposit_checkout_failed",
                extra={
                    "business_id": business.slug,
                    "appointment_id": appointment.id,
                    "error": str(exc),
                },
                exc_info=True,
            )
        else:
            Payment.objects.create(
                business=business,
                appointment=appointment,
                provider=Payment.Provider.STRIPE,
                external_id=getattr(session, "id", "") or "",
                amount_cents=appointment.deposit_cents,
                currency=business.currency,
                kind=Payment.Kind.DEPOSIT,
                meta={"checkout_url": session.url},
            )
            _count(business, Payment.Provider.STRIPE, "created")
            logger.info(
                "deposit_checkout_created",
                extra={
                    "business_id": business.slug,
                    "appointment_id": appointment.id,
                    "amount_cents": appointment.deposit_cents,
                },
            )
            result["payment_url"] = session.url
            return result

    result["ath_movil"] = ath_movil_instructions(appointment)
    _count(
        business,
        Payment.Provider.ATH,
        "instructions" if result["ath_movil"] else "unavailable",
    )
    return result
