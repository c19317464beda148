from datetime import time
from types import SimpleNamespace

import pytest
import stripe
from prometheus_client import REGISTRY

from core.models import AvailabilityRule, Service
from core.scheduling import CustomerInfo, book_slot
from payments.deposits import ath_movil_instructions, start_deposit
from payments.models import Payment
from payments.stripe_utils import create_deposit_checkout

from core.tests.helpers import local, next_weekday


# ---------- stripe mocks ----------
class _StripeCheckoutSession:
    last_kwargs = None

    @staticmethod
    def create(**kwargs):
        _StripeCheckoutSession.last_kwargs = kwargs
        return SimpleNamespace(id="cs_test_123", url="https://stripe.test/checkout/cs_test_123")


class _FailingCheckoutSession:
    @staticmethod
    def create(**kwargs):
        raise stripe.APIConnectionError("stripe is down")


def _fake_stripe(session_cls):
    return SimpleNamespace(checkout=SimpleNamespace(Session=session_cls))


@pytest.fixture
def stripe_settings(settings):
    settings.STRIPE_API_KEY = "sk_test_123"
    settings.STRIPE_CURRENCY = "usd"
    settings.FRONTEND_BASE_URL = "https://book.example.com"
    settings.STRIPE_DEPOSIT_SUCCESS_URL = "/book/{slug}/confirm?id={appointment_id}"
    settings.STRIPE_DEPOSIT_CANCEL_URL = "https://pay.example.com/{slug}/cancel"
    return settings


@pytest.fixture
def deposit_appointment(business_fixture):
    for weekday in range(1, 6):
        AvailabilityRule.objects.create(
            business=business_fixture, weekday=weekday, start_time=time(9), end_time=time(17)
        )
    service = Service.objects.create(
        business=business_fixture,
        name="Haircut",
        duration_min=45,
        price_cents=3500,
        deposit_cents=1000,
    )
    return book_slot(
        business_fixture,
        service,
        None,
        local(next_weekday(0), 10),
        CustomerInfo(name="Ana Rivera", phone="+17875550101", email="ana@example.com"),
    )


def _checkouts(business, provider, status):
    value = REGISTRY.get_sample_value(
        "bookit_deposit_checkouts_total",
        {"business_id": str(business.id), "provider": provider, "status": status},
    )
    return value or 0


@pytest.mark.django_db
def test_stripe_checkout_created(monkeypatch, stripe_settings, business_fixture, deposit_appointment):
    business_fixture.stripe_enabled = True
    business_fixture.save()
    monkeypatch.setattr(
        "payments.stripe_utils.get_stripe", lambda: _fake_stripe(_StripeCheckoutSession)
    )
    before = _checkouts(business_fixture, "stripe", "created")

    result = start_deposit(deposit_appointment)

    assert result == {
        "requires_payment": True,
        "payment_url": "https://stripe.test/checkout/cs_test_123",
        "ath_movil": None,
    }
    payment = Payment.objects.get(appointment=deposit_appointment)
    assert payment.provider == Payment.Provider.STRIPE
    assert payment.kind == Payment.Kind.DEPOSIT
    assert payment.external_id == "cs_test_123"
    assert payment.amount_cents == 1000
    assert payment.status == Payment.Status.PENDING
    assert _checkouts(business_fixture, "stripe", "created") == before + 1


@pytest.mark.django_db
def test_checkout_session_parameters(monkeypatch, stripe_settings, deposit_appointment):
    monkeypatch.setattr(
        "payments.stripe_utils.get_stripe", lambda: _fake_stripe(_StripeCheckoutSession)
    )

    create_deposit_checkout(deposit_appointment)

    kwargs = _StripeCheckoutSession.last_kwargs
    assert kwargs["mode"] == "payment"
    price_data = kwargs["line_items"][0]["price_data"]
    assert price_data["currency"] == "usd"
    assert price_data["unit_amount"] == 1000
    assert price_data["product_data"]["name"] == "Deposit: Haircut"
    assert kwargs["success_url"] == (
        f"https://book.example.com/book/barberia-boricua/confirm?id={deposit_appointment.id}"
    )
    assert kwargs["cancel_url"] == "https://pay.example.com/barberia-boricua/cancel"
    assert kwargs["metadata"]["appointment_id"] == str(deposit_appointment.id)
    assert kwargs["metadata"]["kind"] == "deposit"
    assert kwargs["customer_email"] == "ana@example.com"


@pytest.mark.django_db
def test_stripe_failure_falls_back_to_ath_movil(
    monkeypatch, stripe_settings, business_fixture, deposit_appointment
):
    business_fixture.stripe_enabled = True
    business_fixture.ath_movil_enabled = True
    business_fixture.ath_movil_public_token = "ath-token"
    business_fixture.save()
    monkeypatch.setattr(
        "payments.stripe_utils.get_stripe", lambda: _fake_stripe(_FailingCheckoutSession)
    )

    result = start_deposit(deposit_appointment)

    assert result["payment_url"] is None
    assert result["ath_movil"] == {"amount_cents": 1000, "public_token": "ath-token"}
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_stripe_disabled_uses_ath_movil(
    monkeypatch, stripe_settings, business_fixture, deposit_appointment
):
    business_fixture.ath_movil_enabled = True
    business_fixture.save()

    def _unexpected():
        raise AssertionError("Stripe should not be called")

    monkeypatch.setattr("payments.stripe_utils.get_stripe", _unexpected)

    result = start_deposit(deposit_appointment)

    assert result["requires_payment"] is True
    assert result["ath_movil"]["amount_cents"] == 1000


@pytest.mark.django_db
def test_missing_api_key_skips_stripe(settings, business_fixture, deposit_appointment):
    settings.STRIPE_API_KEY = ""
    business_fixture.stripe_enabled = True
    business_fixture.save()

    result = start_deposit(deposit_appointment)

    assert result == {"requires_payment": True, "payment_url": None, "ath_movil": None}


@pytest.mark.django_db
def test_no_deposit_requires_nothing(business_fixture, deposit_appointment):
    deposit_appointment.deposit_cents = 0

    assert start_deposit(deposit_appointment) == {
        "requires_payment": False,
        "payment_url": None,
        "ath_movil": None,
    }


@pytest.mark.django_db
def test_ath_movil_instructions_disabled(business_fixture, deposit_appointment):
    assert ath_movil_instructions(deposit_appointment) is None


class _BrokenCheckoutSession:
    @staticmethod
    def create(**kwargs):
        raise KeyError("line_items")


@pytest.mark.django_db
def test_non_stripe_error_is_not_swallowed(
    monkeypatch, stripe_settings, business_fixture, deposit_appointment
):
    business_fixture.stripe_enabled = True
    business_fixture.ath_movil_enabled = True
    business_fixture.save()
    monkeypatch.setattr(
        "payments.stripe_utils.get_stripe", lambda: _fake_stripe(_BrokenCheckoutSession)
    )

    with pytest.raises(KeyError):
        start_deposit(deposit_appointment)

    assert not Payment.objects.exists()
