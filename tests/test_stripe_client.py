"""Tests for the Stripe Checkout client."""
import json
from decimal import Decimal

import pytest
from pytest_httpserver import HTTPServer
from werkzeug import Response

from travel_checkout.domain.entities.reservation import Customer, PaymentSessionRequest
from travel_checkout.domain.exceptions import ExternalServiceError
from travel_checkout.infrastructure.clients.stripe_client import (
    CHECKOUT_SESSIONS_ENDPOINT,
    StripeCheckoutClient,
    to_minor_units,
)


@pytest.fixture
def client(httpserver: HTTPServer):
    return StripeCheckoutClient(
        secret_key="sk_test_123",
        base_url=httpserver.url_for("/"),
        success_url="https://shop.example.com/payment-success",
        cancel_url="https://shop.example.com/booking",
        timeout=5,
    )


def payment_request(**overrides):
    values = {
        "reservation_id": "eJzTd9f3NjIJ",
        "amount": Decimal("250.10"),
        "currency": "EUR",
        "customer": Customer(user_id="u-1", email="lucia@example.com", name="Lucia Garcia"),
        "metadata": {"reservationId": "eJzTd9f3NjIJ", "userId": "u-1", "customerName": ""},
    }
    values.update(overrides)
    return PaymentSessionRequest(**values)


@pytest.mark.parametrize("amount,cents", [
    (Decimal("250.10"), 25010),
    (Decimal("0.005"), 1),
    (Decimal("19.994"), 1999),
    (Decimal("100"), 10000),
])
def test_to_minor_units_rounds_half_up(amount, cents):
    assert to_minor_units(amount) == cents


def test_build_form_flattens_line_item_and_metadata(client):
    form = client.build_form(payment_request())

    assert form["mode"] == "payment"
    assert form["line_items[0][price_data][currency]"] == "eur"
    assert form["line_items[0][price_data][unit_amount]"] == 25010
    assert form["line_items[0][price_data][product_data][name]"] == "Flight Booking"
    assert form["client_reference_id"] == "eJzTd9f3NjIJ"
    assert form["customer_email"] == "lucia@example.com"
    assert form["metadata[userId]"] == "u-1"
    assert "metadata[customerName]" not in form


def test_create_checkout_session_returns_redirect(client, httpserver):
    received = []

    def handler(request):
        received.append((request.headers.get("Authorization"), dict(request.form)))
        return Response(
            json.dumps({"id": "cs_test_a1", "url": "https://checkout.stripe.com/c/pay/cs_test_a1"}),
            content_type="application/json",
        )

    httpserver.expect_request(CHECKOUT_SESSIONS_ENDPOINT, method="POST").respond_with_handler(handler)

    session = client.create_checkout_session(payment_request())

    assert session.session_id == "cs_test_a1"
    assert session.redirect_url == "https://checkout.stripe.com/c/pay/cs_test_a1"
    authorization, form = received[0]
    assert authorization == "Bearer sk_test_123"
    assert form["line_items[0][price_data][unit_amount]"] == "25010"
    assert form["success_url"] == "https://shop.example.com/payment-success"


def test_error_body_message_is_surfaced(client, httpserver):
    httpserver.expect_request(CHECKOUT_SESSIONS_ENDPOINT, method="POST").respond_with_json(
        {"error": {"type": "invalid_request_error", "message": "Invalid currency: xyz"}}, status=400
    )

    with pytest.raises(ExternalServiceError) as exc_info:
        client.create_checkout_session(payment_request(currency="XYZ"))

    assert exc_info.value.detail == "Invalid currency: xyz"
    assert exc_info.value.status_code == 400


def test_response_without_url_raises(client, httpserver):
    httpserver.expect_request(CHECKOUT_SESSIONS_ENDPOINT, method="POST").respond_with_json({"id": "cs_test_a1"})

    with pytest.raises(ExternalServiceError):
        client.create_checkout_session(payment_request())
