"""Stripe Checkout client for hosted payment sessions."""
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from travel_checkout.config.settings import Config
from travel_checkout.domain.entities.reservation import PaymentSession, PaymentSessionRequest
from travel_checkout.domain.exceptions import ExternalServiceError
from travel_checkout.domain.interfaces.payment_gateway import IPaymentGateway


logger = logging.getLogger(__name__)

CHECKOUT_SESSIONS_ENDPOINT = "/v1/checkout/sessions"


def to_minor_units(amount: Decimal) -> int:
    """Convert a decimal amount to cents, rounding half up."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeCheckoutClient(IPaymentGateway):
    """Creates Stripe Checkout sessions over the form-encoded REST API."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        self.secret_key = secret_key or Config.STRIPE_SECRET_KEY
        self.base_url = base_url or Config.STRIPE_API_BASE_URL
        self.success_url = success_url or Config.PAYMENT_SUCCESS_URL
        self.cancel_url = cancel_url or Config.PAYMENT_CANCEL_URL
        self.timeout = timeout or Config.STRIPE_TIMEOUT
        self._logger = logging.getLogger(__name__)

        self.session = requests.Session()
        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def build_form(self, request: PaymentSessionRequest) -> Dict[str, Any]:
        """Flatten a payment request into Stripe's bracketed form fields."""
        form: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types[0]": "card",
            "line_items[0][price_data][currency]": request.currency.lower(),
            "line_items[0][price_data][unit_amount]": to_minor_units(request.amount),
            "line_items[0][price_data][product_data][name]": request.item_title,
            "line_items[0][quantity]": 1,
            "client_reference_id": request.reservation_id,
            "success_url": self.success_url,
            "cancel_url": self.cancel_url,
        }
        if request.customer.email:
            form["customer_email"] = request.customer.email
        for key, value in request.metadata.items():
            if value:
                form[f"metadata[{key}]"] = value
        return form

    def create_checkout_session(self, request: PaymentSessionRequest) -> PaymentSession:
        url = f"{self.base_url.rstrip('/')}{CHECKOUT_SESSIONS_ENDPOINT}"
        self._logger.info(
            f"Creating checkout session for reservation {request.reservation_id} "
            f"({request.amount} {request.currency.upper()})"
        )
        try:
            response = self.session.post(
                url,
                data=self.build_form(request),
                headers={
                    "Authorization": f"Bearer {self.secret_key}",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            self._logger.error(f"Stripe request failed: POST {url} - {e}")
            raise

        try:
            body = response.json()
        except ValueError as json_error:
            self._logger.error(f"Non-JSON response from Stripe (status {response.status_code})")
            raise ExternalServiceError(
                "Expected JSON response from Stripe",
                response.text[:200],
                response.status_code,
            ) from json_error

        if response.status_code >= 400:
            error = body.get("error") or {}
            detail = error.get("message") or f"HTTP {response.status_code}"
            self._logger.error(f"Stripe error {response.status_code} ({error.get('type')}): {detail}")
            raise ExternalServiceError("Payment gateway rejected the request", detail, response.status_code)

        if not body.get("id") or not body.get("url"):
            raise ExternalServiceError("Stripe response contained no session url")

        self._logger.info(f"Checkout session {body['id']} created for reservation {request.reservation_id}")
        return PaymentSession(session_id=body["id"], redirect_url=body["url"])
