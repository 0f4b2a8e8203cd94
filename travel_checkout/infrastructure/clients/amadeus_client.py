"""Amadeus Self-Service API client for pricing and flight orders."""
import json
import logging
import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from travel_checkout.config.settings import Config
from travel_checkout.domain.entities.availability import AvailabilityProbeResult
from travel_checkout.domain.entities.reservation import ReservationResult
from travel_checkout.domain.exceptions import ExternalServiceError
from travel_checkout.domain.interfaces.reservation_client import IReservationClient


logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "/v1/security/oauth2/token"
PRICING_ENDPOINT = "/v1/shopping/flight-offers/pricing"
ORDERS_ENDPOINT = "/v1/booking/flight-orders"

# Refresh the access token this many seconds before Amadeus expires it.
TOKEN_EXPIRY_MARGIN = 30


class AmadeusClient(IReservationClient):
    """
    Client for the Amadeus flight pricing and booking endpoints.

    Handles OAuth2 client-credentials authentication, token caching and
    translation of Amadeus ``errors``/``warnings`` bodies.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        """
        Initialize the Amadeus client.

        Args:
            base_url: Base URL of the Amadeus API (defaults to Config value)
            client_id: OAuth2 client id (defaults to Config value)
            client_secret: OAuth2 client secret (defaults to Config value)
            timeout: Request timeout in seconds (defaults to Config value)
        """
        self.base_url = base_url or Config.AMADEUS_API_BASE_URL
        self.client_id = client_id or Config.AMADEUS_CLIENT_ID
        self.client_secret = client_secret or Config.AMADEUS_CLIENT_SECRET
        self.timeout = timeout or Config.AMADEUS_TIMEOUT
        self._logger = logging.getLogger(__name__)

        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

        # POST is not retried by urllib3 by default, so an order is never sent twice.
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

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _get_token(self) -> str:
        """Return a valid access token, fetching a new one when expired."""
        with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            self._logger.info("Authenticating with Amadeus API...")
            try:
                response = self.session.post(
                    self._url(TOKEN_ENDPOINT),
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                    headers={"Accept": "application/json"},
                    timeout=self.timeout,
                )
            except requests.exceptions.RequestException as e:
                self._logger.error(f"Amadeus authentication request failed: {e}")
                raise

            body = self._parse_body(response, "POST", TOKEN_ENDPOINT)
            if response.status_code >= 400 or "access_token" not in body:
                detail = body.get("error_description") or body.get("error") or response.text[:200]
                self._logger.error(f"Amadeus authentication failed ({response.status_code}): {detail}")
                raise ExternalServiceError("Amadeus authentication failed", detail, response.status_code)

            self._access_token = body["access_token"]
            expires_in = int(body.get("expires_in", 0))
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
            self._logger.info("Authentication successful")
            return self._access_token

    def _invalidate_token(self) -> None:
        with self._token_lock:
            self._access_token = None
            self._token_expires_at = 0.0

    def _make_request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Dict[str, Any]] = None,
        timeout: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Make an authenticated request to the Amadeus API.

        A 401 response invalidates the cached token and is retried once.

        Returns:
            Response JSON as dictionary (empty for 204 responses)

        Raises:
            requests.RequestException: If the request fails in transport
            ExternalServiceError: If Amadeus answers with an error body
        """
        url = self._url(endpoint)
        for attempt in range(2):
            headers = {
                "Accept": "application/json",
                "Authorization": f"Bearer {self._get_token()}",
            }
            if json_data is not None:
                headers["Content-Type"] = "application/vnd.amadeus+json"

            self._logger.debug(f"Request: {method} {url}")
            if json_data is not None:
                self._logger.debug(f"JSON Payload: {json.dumps(json_data, default=str)[:2000]}")
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    headers=headers,
                    json=json_data,
                    timeout=timeout if timeout is not None else self.timeout,
                )
            except requests.exceptions.RequestException as e:
                self._logger.error(f"API request failed: {method} {url} - {e}")
                raise
            self._logger.debug(f"Status Code: {response.status_code}")

            if response.status_code == 401 and attempt == 0:
                self._logger.warning("Amadeus access token rejected; re-authenticating")
                self._invalidate_token()
                continue
            break

        if response.status_code == 204 or not response.text:
            if response.status_code >= 400:
                raise ExternalServiceError(
                    f"Amadeus returned HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            return {}

        body = self._parse_body(response, method, endpoint)
        if response.status_code >= 400:
            error = self._first_entry(body.get("errors"))
            title = error.get("title") or f"HTTP {response.status_code}"
            detail = error.get("detail") or title
            self._logger.error(
                f"Amadeus error {response.status_code} on {method} {url}: "
                f"code={error.get('code')} title={title} detail={detail}"
            )
            raise ExternalServiceError(f"Amadeus API Error: {title}", detail, response.status_code)
        return body

    def _parse_body(self, response: requests.Response, method: str, endpoint: str) -> Dict[str, Any]:
        if not response.text:
            return {}
        try:
            body = response.json()
        except ValueError as json_error:
            self._logger.error(f"Non-JSON response from {method} {endpoint} (status {response.status_code})")
            self._logger.error(f"Response text (first 500 chars): {response.text[:500]}")
            raise ExternalServiceError(
                "Expected JSON response from Amadeus",
                response.text[:200],
                response.status_code,
            ) from json_error
        if not isinstance(body, dict):
            raise ExternalServiceError("Unexpected Amadeus response shape", str(body)[:200], response.status_code)
        return body

    @staticmethod
    def _first_entry(entries: Any) -> Dict[str, Any]:
        if isinstance(entries, list) and entries and isinstance(entries[0], dict):
            return entries[0]
        return {}

    def _price(self, offer: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            "data": {
                "type": "flight-offers-pricing",
                "flightOffers": [offer],
            }
        }
        return self._make_request("POST", PRICING_ENDPOINT, json_data=payload)

    def check_availability(
        self,
        offer: Dict[str, Any],
        traveler: Dict[str, Any]
    ) -> AvailabilityProbeResult:
        """
        Price the offer without booking it.

        Pricing warnings mean the offer can no longer be sold as displayed;
        the first warning's detail is surfaced verbatim.
        """
        self._logger.info(f"Checking availability of offer {offer.get('id')} (traveler {traveler.get('id')})")
        body = self._price(offer)

        warning = self._first_entry(body.get("warnings"))
        if warning:
            detail = warning.get("detail") or warning.get("title")
            self._logger.warning(f"Pricing warning for offer {offer.get('id')}: {detail}")
            return AvailabilityProbeResult(available=False, detail=detail)

        priced_offers = (body.get("data") or {}).get("flightOffers") or []
        if not priced_offers:
            raise ExternalServiceError("Pricing response contained no flight offers")
        price = priced_offers[0].get("price") or {}
        return AvailabilityProbeResult(
            available=True,
            priced_total=_to_decimal(price.get("grandTotal") or price.get("total")),
        )

    def create_reservation(
        self,
        offer: Dict[str, Any],
        travelers: List[Dict[str, Any]],
        agency: Dict[str, Any]
    ) -> ReservationResult:
        """Re-price the offer, then create the flight order."""
        pricing = self._price(offer)
        warning = self._first_entry(pricing.get("warnings"))
        if warning:
            detail = warning.get("detail") or warning.get("title")
            self._logger.warning(f"Offer {offer.get('id')} failed verification before booking: {detail}")
            raise ExternalServiceError("Flight verification failed", detail)

        payload = {
            "data": {
                "type": "flight-order",
                "flightOffers": [offer],
                "travelers": travelers,
                **agency,
            }
        }
        self._logger.info(f"Creating flight order for offer {offer.get('id')} with {len(travelers)} traveler(s)")
        body = self._make_request("POST", ORDERS_ENDPOINT, json_data=payload)

        data = body.get("data") or {}
        order_id = data.get("id")
        if not order_id:
            raise ExternalServiceError("Flight order response contained no order id")
        confirmed = (data.get("flightOffers") or [offer])[0]
        price = confirmed.get("price") or {}
        grand_total = _to_decimal(price.get("grandTotal") or price.get("total"))
        if grand_total is None:
            grand_total = _to_decimal((offer.get("price") or {}).get("grandTotal"))
        if grand_total is None:
            raise ExternalServiceError("Flight order response contained no price")
        self._logger.info(f"Flight order {order_id} created")
        return ReservationResult(
            reservation_id=order_id,
            confirmed_offer=confirmed,
            grand_total=grand_total,
            currency=price.get("currency") or (offer.get("price") or {}).get("currency") or "",
        )

    def cancel_reservation(self, reservation_id: str) -> None:
        self._logger.info(f"Cancelling flight order {reservation_id}...")
        self._make_request("DELETE", f"{ORDERS_ENDPOINT}/{reservation_id}")
        self._logger.info(f"Flight order {reservation_id} cancelled")


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None
