from typing import Optional

from django.conf import settings


def _read_setting(key: str) -> Optional[str]:
    value = getattr(settings, key, "")
    return value or None


def stripe_configured() -> bool:
    return _read_setting("STRIPE_API_KEY") is not None


def get_stripe():
    import stripe

    api_key = getattr(settings, "STRIPE_API_KEY", None)
    api_version = getattr(settings, "STRIPE_API_VERSION", None)
    if api_key:
        stripe.api_key = api_key
    if api_version:
        stripe.api_version = api_version
    return stripe


def _redirect_url(setting_name: str, business, appointment) -> str:
    template = getattr(settings, setting_name, "")
    path = template.format(slug=business.slug, appointment_id=appointment.id)
    if path.startswith("http"):
        return path
    base = getattr(settings, "FRONTEND_BASE_URL", "http://localhost:3000")
    return f"{base.rstrip('/')}{path}"


def create_deposit_checkout(appointment):
    """
    Create a one-off Checkout Session for the appointment's deposit and
    return it. Stripe errors propagate to the caller.
    """
    s = get_stripe()
    business = appointment.business
    service = appointment.service
    currency = (
        getattr(settings, "STRIPE_CURRENCY", "") or business.currency or "usd"
    ).lower()

    params = {
        "mode": "payment",
        "line_items": [
            {
                "price_data": {
                    "currency": currency,
                    "unit_amount": appointment.deposit_cents,
                    "product_data": {"name": f"Deposit: {service.name}"},
                },
                "quantity": 1,
            }
        ],
        "success_url": _redirect_url(
            "STRIPE_DEPOSIT_SUCCESS_URL", business, appointment
        ),
        "cancel_url": _redirect_url("STRIPE_DEPOSIT_CANCEL_URL", business, appointment),
        "metadata": {
            "appointment_id": str(appointment.id),
            "business_id": str(business.id),
            "kind": "deposit",
        },
    }
    if appointment.customer_email:
        params["customer_email"] = appointment.customer_email

    return s.checkout.Session.create(**params)
