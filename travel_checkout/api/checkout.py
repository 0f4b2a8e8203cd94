"""Checkout session endpoints."""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from flask import Blueprint, current_app, jsonify, request

from travel_checkout.application.booking_session import BookingSession
from travel_checkout.domain.entities.flight_offer import FlightOffer
from travel_checkout.domain.entities.passenger import PassengerData
from travel_checkout.domain.entities.reservation import Customer
from travel_checkout.domain.exceptions import (
    CheckoutError,
    PaymentSessionFailed,
    ReservationFailed,
    ValidationError,
)
from travel_checkout.infrastructure.session_registry import SessionRegistry
from travel_checkout.middleware.monitoring import track_availability, track_commit, track_operation
from travel_checkout.middleware.rate_limiter import SESSION_ACTION_LIMIT, get_session_key, limiter


checkout_blueprint = Blueprint("checkout", __name__, url_prefix="/api/checkout")
_logger = logging.getLogger(__name__)


def _registry() -> SessionRegistry:
    return current_app.config["service_container"].get_session_registry()


def _body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


@contextmanager
def _session(session_id: str) -> Iterator[BookingSession]:
    """Lock, tick and hand out a session; its snapshot is written afterwards."""
    registry = _registry()
    with registry.checkout(session_id) as session:
        try:
            yield session
        finally:
            registry.persist(session)


def _passenger_data() -> PassengerData:
    try:
        return PassengerData.from_dict(_body())
    except (TypeError, ValueError) as e:
        raise ValidationError(str(e)) from e


def _busy_response(session_id: str):
    _logger.info(f"Session {session_id} is busy; ignoring duplicate request")
    return jsonify({"success": True, "in_flight": True}), 202


@checkout_blueprint.route("/sessions", methods=["POST"])
def create_session():
    session = _registry().create()
    return jsonify({"success": True, "session_id": session.session_id}), 201


@checkout_blueprint.route("/sessions/<session_id>", methods=["GET"])
def get_session(session_id: str):
    with _session(session_id) as session:
        state = session.describe()
        state["notices"] = [notice.to_dict() for notice in session.drain_notices()]
    return jsonify({"success": True, "session": state}), 200


@checkout_blueprint.route("/sessions/<session_id>", methods=["DELETE"])
def close_session(session_id: str):
    _registry().close(session_id)
    return jsonify({"success": True}), 200


@checkout_blueprint.route("/sessions/<session_id>/flight", methods=["PUT"])
def select_flight(session_id: str):
    body = _body()
    offer_data = body.get("offer", body)
    try:
        offer = FlightOffer.from_dict(offer_data)
    except ValueError as e:
        raise ValidationError(f"Invalid flight offer: {e}") from e

    with _session(session_id) as session:
        session.select_flight(offer)
        return jsonify({
            "success": True,
            "flight": offer.summary(),
            "notices": [notice.to_dict() for notice in session.drain_notices()],
        }), 200


@checkout_blueprint.route("/sessions/<session_id>/passengers", methods=["POST"])
def add_passenger(session_id: str):
    data = _passenger_data()
    with _session(session_id) as session:
        passenger = session.add_passenger(data)
        return jsonify({
            "success": True,
            "passenger": passenger.to_dict(),
            "progress": session.roster.progress(session.flight.get()),
        }), 201


@checkout_blueprint.route("/sessions/<session_id>/passengers/validate", methods=["POST"])
def validate_passenger(session_id: str):
    data = _passenger_data()
    with _session(session_id) as session:
        error = session.validate_passenger(data, data.traveler_type)
    return jsonify({
        "success": True,
        "valid": error is None,
        "error": error.to_dict() if error else None,
    }), 200


@checkout_blueprint.route("/sessions/<session_id>/passengers/<passenger_id>", methods=["PUT"])
def update_passenger(session_id: str, passenger_id: str):
    data = _passenger_data()
    with _session(session_id) as session:
        passenger = session.update_passenger(passenger_id, data)
    return jsonify({"success": True, "passenger": passenger.to_dict()}), 200


@checkout_blueprint.route("/sessions/<session_id>/passengers/<passenger_id>", methods=["DELETE"])
def remove_passenger(session_id: str, passenger_id: str):
    with _session(session_id) as session:
        session.remove_passenger(passenger_id)
        return jsonify({
            "success": True,
            "progress": session.roster.progress(session.flight.get()),
        }), 200


@checkout_blueprint.route("/sessions/<session_id>/passengers", methods=["DELETE"])
def clear_passengers(session_id: str):
    with _session(session_id) as session:
        session.clear_passengers()
    return jsonify({"success": True}), 200


@checkout_blueprint.route("/sessions/<session_id>/availability", methods=["POST"])
@limiter.limit(SESSION_ACTION_LIMIT, key_func=get_session_key)
@track_operation("availability")
def check_availability(session_id: str):
    if _registry().is_busy(session_id):
        return _busy_response(session_id)

    with _session(session_id) as session:
        status = session.check_availability()
        track_availability(status.state.value)
        return jsonify({
            "success": True,
            "availability": status.to_dict(),
            "fresh": session.availability.is_fresh(),
        }), 200


@checkout_blueprint.route("/sessions/<session_id>/commit", methods=["POST"])
@limiter.limit(SESSION_ACTION_LIMIT, key_func=get_session_key)
@track_operation("commit")
def commit(session_id: str):
    if _registry().is_busy(session_id):
        return _busy_response(session_id)

    body = _body()
    customer = Customer.from_dict(body.get("customer") or body)
    with _session(session_id) as session:
        try:
            result = session.commit(customer)
        except ReservationFailed:
            track_commit("reservation_failed")
            raise
        except PaymentSessionFailed:
            track_commit("payment_failed")
            raise
        except CheckoutError:
            track_commit("rejected")
            raise

    if result is None:
        return _busy_response(session_id)
    track_commit("success")
    return jsonify({"success": True, "commit": result.to_dict()}), 200


@checkout_blueprint.route("/sessions/<session_id>/reservation", methods=["DELETE"])
@limiter.limit(SESSION_ACTION_LIMIT, key_func=get_session_key)
@track_operation("release")
def release_reservation(session_id: str):
    with _session(session_id) as session:
        released = session.release_reservation()
    return jsonify({"success": True, "released_reservation_id": released}), 200
