"""Tests for the checkout HTTP API."""
from datetime import date, timedelta

import pytest
import requests

from travel_checkout import create_app
from travel_checkout.config.settings import TestingConfig
from travel_checkout.domain.exceptions import ExternalServiceError
from travel_checkout.infrastructure.service_container import ServiceContainer
from tests.conftest import ADULT_DOB, offer_payload


# The API runs on the real clock.
INFANT_DOB = (date.today() - timedelta(days=200)).isoformat()


ADULT = {
    "firstName": "Lucia",
    "lastName": "Garcia",
    "email": "lucia@example.com",
    "phoneNumber": "+34 612 345 678",
    "dateOfBirth": ADULT_DOB,
    "gender": "female",
    "passportNumber": "XDA123456",
}

CUSTOMER = {"customer": {"user_id": "u-1", "email": "lucia@example.com", "name": "Lucia Garcia"}}


@pytest.fixture
def app():
    ServiceContainer.reset()
    app = create_app(TestingConfig)
    yield app
    ServiceContainer.reset()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def container(app):
    return app.config["service_container"]


@pytest.fixture
def session_id(client):
    response = client.post("/api/checkout/sessions")
    assert response.status_code == 201
    return response.get_json()["session_id"]


def url(session_id, suffix=""):
    return f"/api/checkout/sessions/{session_id}{suffix}"


def ready(client, session_id, traveler_types=("ADULT",)):
    client.put(url(session_id, "/flight"), json={"offer": offer_payload(traveler_types)})
    for traveler_type in traveler_types:
        if traveler_type == "HELD_INFANT":
            client.post(url(session_id, "/passengers"), json=dict(ADULT, firstName="Leo", dateOfBirth=INFANT_DOB))
        else:
            client.post(url(session_id, "/passengers"), json=ADULT)
    response = client.post(url(session_id, "/availability"))
    assert response.get_json()["availability"]["state"] == "available"


def test_health_endpoints(client):
    assert client.get("/health").get_json()["status"] == "healthy"
    assert client.get("/health/live").status_code == 200
    ready_response = client.get("/health/ready")
    assert ready_response.status_code == 200
    assert ready_response.get_json()["checks"]["redis"] is None


def test_root(client):
    assert client.get("/").get_json()["service"] == "travel-checkout"


def test_full_checkout_flow(client, container, session_id):
    response = client.put(url(session_id, "/flight"), json={"offer": offer_payload(("ADULT", "HELD_INFANT"))})
    assert response.status_code == 200
    assert response.get_json()["flight"]["required_passengers"] == 2

    response = client.post(url(session_id, "/passengers"), json=ADULT)
    assert response.status_code == 201
    assert response.get_json()["progress"] == 50

    response = client.post(url(session_id, "/passengers"), json=dict(ADULT, firstName="Leo", dateOfBirth=INFANT_DOB))
    assert response.get_json()["passenger"]["traveler_type"] == "HELD_INFANT"

    response = client.post(url(session_id, "/availability"))
    assert response.status_code == 200
    assert response.get_json()["fresh"] is True

    response = client.post(url(session_id, "/commit"), json={"customer": {"user_id": "u-1", "email": "lucia@example.com"}})
    assert response.status_code == 200
    commit = response.get_json()["commit"]
    assert commit["redirect_url"].startswith("http://localhost:3000/mock-checkout/")

    travelers = container.get_reservation_client().reservation_calls[0]["travelers"]
    assert travelers[1]["associatedAdultId"] == "1"

    response = client.get(url(session_id))
    assert response.status_code == 404
    assert response.get_json()["error"]["code"] == "session_not_found"


def test_get_session_describes_state_and_drains_notices(client, session_id):
    client.put(url(session_id, "/flight"), json=offer_payload())

    body = client.get(url(session_id)).get_json()

    assert body["session"]["flight"]["offer_id"] == "1"
    assert body["session"]["flight_hold"]["remaining_seconds"] > 0
    assert body["session"]["availability"]["state"] == "idle"
    assert body["session"]["notices"] == []


def test_unknown_session_is_404(client):
    response = client.post(url("does-not-exist", "/availability"))

    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_invalid_offer_is_422(client, session_id):
    response = client.put(url(session_id, "/flight"), json={"offer": {"id": "1", "travelerPricings": []}})

    assert response.status_code == 422
    assert response.get_json()["error"]["code"] == "validation_error"


def test_passenger_without_flight_is_422(client, session_id):
    response = client.post(url(session_id, "/passengers"), json=ADULT)

    assert response.status_code == 422
    assert response.get_json()["error"]["code"] == "no_flight_selected"


def test_age_mismatch_is_422_with_reason(client, session_id):
    client.put(url(session_id, "/flight"), json={"offer": offer_payload(("CHILD",))})

    response = client.post(url(session_id, "/passengers"), json=ADULT)

    assert response.status_code == 422
    error = response.get_json()["error"]
    assert error["code"] == "age_mismatch"
    assert error["next_step"] == "correct_input"


def test_non_text_passenger_field_is_422(client, session_id):
    client.put(url(session_id, "/flight"), json=offer_payload())

    response = client.post(url(session_id, "/passengers"), json=dict(ADULT, firstName=12345))

    assert response.status_code == 422
    assert response.get_json()["error"]["code"] == "validation_error"
    assert client.get(url(session_id)).get_json()["session"]["passengers"] == []


def test_validate_endpoint_is_advisory(client, session_id):
    client.put(url(session_id, "/flight"), json={"offer": offer_payload(("CHILD",))})

    body = client.post(url(session_id, "/passengers/validate"), json=ADULT).get_json()

    assert body["valid"] is False
    assert body["error"]["code"] == "age_mismatch"
    assert client.get(url(session_id)).get_json()["session"]["passengers"] == []


def test_update_and_remove_passenger(client, session_id):
    client.put(url(session_id, "/flight"), json={"offer": offer_payload(("ADULT", "ADULT"))})
    passenger_id = client.post(url(session_id, "/passengers"), json=ADULT).get_json()["passenger"]["passenger_id"]

    response = client.put(url(session_id, f"/passengers/{passenger_id}"), json=dict(ADULT, firstName="Marta"))
    assert response.get_json()["passenger"]["first_name"] == "Marta"

    response = client.delete(url(session_id, f"/passengers/{passenger_id}"))
    assert response.get_json()["progress"] == 0

    response = client.delete(url(session_id, "/passengers/missing"))
    assert response.status_code == 422


def test_clear_passengers(client, session_id):
    client.put(url(session_id, "/flight"), json=offer_payload())
    client.post(url(session_id, "/passengers"), json=ADULT)

    assert client.delete(url(session_id, "/passengers")).status_code == 200
    assert client.get(url(session_id)).get_json()["session"]["passengers"] == []


def test_commit_with_incomplete_roster_is_422(client, container, session_id):
    client.put(url(session_id, "/flight"), json={"offer": offer_payload(("ADULT", "ADULT"))})
    client.post(url(session_id, "/passengers"), json=ADULT)

    response = client.post(url(session_id, "/commit"), json={})

    assert response.status_code == 422
    assert response.get_json()["error"]["code"] == "roster_incomplete"
    assert container.get_reservation_client().reservation_calls == []


def test_commit_without_availability_is_409(client, session_id):
    client.put(url(session_id, "/flight"), json=offer_payload())
    client.post(url(session_id, "/passengers"), json=ADULT)

    response = client.post(url(session_id, "/commit"), json={})

    assert response.status_code == 409
    assert response.get_json()["error"]["code"] == "availability_not_confirmed"


def test_unavailable_offer_is_reported_and_blocks_commit(client, container, session_id):
    container.get_reservation_client().unavailable_offers["1"] = "No fare applicable"
    client.put(url(session_id, "/flight"), json=offer_payload())
    client.post(url(session_id, "/passengers"), json=ADULT)

    body = client.post(url(session_id, "/availability")).get_json()
    assert body["availability"]["state"] == "unavailable"
    assert body["availability"]["message"] == "No fare applicable"

    response = client.post(url(session_id, "/commit"), json={})
    assert response.status_code == 409
    assert response.get_json()["error"]["code"] == "offer_unavailable"


def test_reservation_failure_is_502_and_keeps_passengers(client, container, session_id):
    ready(client, session_id)
    container.get_reservation_client().fail_reservation = ExternalServiceError("Amadeus API Error", "SEGMENT SELL FAILURE")

    response = client.post(url(session_id, "/commit"), json=CUSTOMER)

    assert response.status_code == 502
    assert response.get_json()["error"]["code"] == "reservation_failed"
    assert len(client.get(url(session_id)).get_json()["session"]["passengers"]) == 1


def test_payment_failure_then_retry_and_release(client, container, session_id):
    ready(client, session_id)
    gateway = container.get_payment_gateway()
    gateway.fail_with = requests.ConnectionError("gateway down")

    response = client.post(url(session_id, "/commit"), json=CUSTOMER)
    assert response.status_code == 502
    error = response.get_json()["error"]
    assert error["code"] == "payment_session_failed"
    assert error["severity"] == "critical"
    reservation_id = error["details"]["reservation_id"]

    state = client.get(url(session_id)).get_json()["session"]
    assert state["reservation"]["reservation_id"] == reservation_id

    response = client.delete(url(session_id, "/passengers"))
    assert response.status_code == 422
    assert response.get_json()["error"]["code"] == "reservation_held"

    response = client.delete(url(session_id, "/reservation"))
    assert response.get_json()["released_reservation_id"] == reservation_id
    assert reservation_id in container.get_reservation_client().cancelled


def test_commit_without_customer_email_is_422(client, container, session_id):
    ready(client, session_id)

    response = client.post(url(session_id, "/commit"), json={"customer": {"user_id": "u-1"}})

    assert response.status_code == 422
    assert response.get_json()["error"]["details"]["fields"] == ["customer_email"]
    assert container.get_reservation_client().reservation_calls == []


def test_close_session_tears_it_down(client, session_id):
    assert client.delete(url(session_id)).status_code == 200

    assert client.get(url(session_id)).status_code == 404


def test_unknown_route_uses_json_error(client):
    response = client.get("/api/checkout/nowhere")

    assert response.status_code == 404
    assert response.get_json()["error"]["code"] == "not_found"
