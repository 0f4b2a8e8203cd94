"""Tests for passenger validation and the roster."""
from datetime import date, timedelta

import pytest

from travel_checkout.application.services.passenger_roster import PassengerRoster, validate_age
from travel_checkout.domain.entities.flight_offer import TravelerType
from travel_checkout.domain.entities.passenger import PassengerData
from travel_checkout.domain.exceptions import (
    AgeMismatchError,
    AssociatedAdultError,
    MissingFieldsError,
    OrphanedInfantError,
    PassengerNotFoundError,
    PassengerRetentionExpired,
    RosterFullError,
    RosterIncompleteError,
)
from tests.conftest import ADULT_DOB, CHILD_DOB, INFANT_DOB, START, FakeClock, make_offer, passenger_data


TODAY = date(2024, 6, 1)


@pytest.mark.parametrize("dob,traveler_type", [
    ("1960-01-01", TravelerType.ADULT),
    ("2012-06-01", TravelerType.ADULT),      # 12 today
    ("2012-06-02", TravelerType.CHILD),      # 11
    ("2022-06-01", TravelerType.CHILD),      # 2 today
    ("2022-06-02", TravelerType.HELD_INFANT),
    ("2024-05-01", TravelerType.HELD_INFANT),
])
def test_validate_age_accepts_matching_type(dob, traveler_type):
    assert validate_age(dob, traveler_type, TODAY) is None


@pytest.mark.parametrize("dob,traveler_type", [
    ("2012-06-02", TravelerType.ADULT),
    ("2012-06-01", TravelerType.CHILD),
    ("2022-06-02", TravelerType.CHILD),
    ("2022-06-01", TravelerType.HELD_INFANT),
    ("1990-01-01", TravelerType.HELD_INFANT),
    ("2025-01-01", TravelerType.HELD_INFANT),
])
def test_validate_age_rejects_mismatch_with_reason(dob, traveler_type):
    error = validate_age(dob, traveler_type, TODAY)

    assert isinstance(error, AgeMismatchError)
    assert error.traveler_type == traveler_type.value
    assert error.reason


@pytest.mark.parametrize("dob", ["", None, "2012", "2012-0", "2012-06-0"])
def test_incomplete_date_is_advisory_valid(dob):
    assert validate_age(dob, TravelerType.ADULT, TODAY) is None


def test_impossible_date_is_reported():
    assert isinstance(validate_age("2012-02-30", TravelerType.ADULT, TODAY), MissingFieldsError)


@pytest.fixture
def roster():
    return PassengerRoster(clock=FakeClock())


def test_add_never_exceeds_required_count(roster):
    offer = make_offer("ADULT", "ADULT")
    roster.add(passenger_data(), offer)
    roster.add(passenger_data(first_name="Marta"), offer)

    with pytest.raises(RosterFullError):
        roster.add(passenger_data(first_name="Pablo"), offer)
    assert len(roster) == 2


def test_new_passenger_takes_first_unfilled_traveler_type(roster):
    offer = make_offer("ADULT", "CHILD")

    adult = roster.add(passenger_data(), offer)
    child = roster.add(passenger_data(date_of_birth=CHILD_DOB), offer)

    assert adult.traveler_type == TravelerType.ADULT
    assert child.traveler_type == TravelerType.CHILD
    assert roster.next_traveler_type(offer) is None


def test_explicit_type_needs_a_free_slot_of_that_type(roster):
    offer = make_offer("ADULT", "ADULT")

    with pytest.raises(RosterFullError):
        roster.add(passenger_data(TravelerType.CHILD, CHILD_DOB), offer)
    assert len(roster) == 0


def test_add_rejects_age_mismatch(roster):
    offer = make_offer("CHILD")

    with pytest.raises(AgeMismatchError):
        roster.add(passenger_data(date_of_birth=ADULT_DOB), offer)


def test_add_reports_missing_fields(roster):
    offer = make_offer()

    with pytest.raises(MissingFieldsError) as exc_info:
        roster.add(passenger_data(first_name="A", email="not-an-email", phone_number="12345", gender=""), offer)

    assert set(exc_info.value.fields) == {"first_name", "email", "phone_number", "gender"}


def test_infant_is_associated_with_preceding_adult(roster):
    offer = make_offer("ADULT", "HELD_INFANT")
    adult = roster.add(passenger_data(), offer)

    infant = roster.add(passenger_data(date_of_birth=INFANT_DOB, first_name="Leo"), offer)

    assert infant.traveler_type == TravelerType.HELD_INFANT
    assert infant.associated_adult_id == adult.passenger_id


def test_infant_without_adult_is_rejected(roster):
    offer = make_offer("HELD_INFANT", "ADULT")

    with pytest.raises(AssociatedAdultError):
        roster.add(passenger_data(TravelerType.HELD_INFANT, INFANT_DOB), offer)


def test_adult_can_hold_only_one_infant(roster):
    offer = make_offer("ADULT", "HELD_INFANT", "HELD_INFANT")
    adult = roster.add(passenger_data(), offer)
    roster.add(passenger_data(TravelerType.HELD_INFANT, INFANT_DOB), offer)

    with pytest.raises(AssociatedAdultError):
        roster.add(
            passenger_data(TravelerType.HELD_INFANT, INFANT_DOB, associated_adult_id=adult.passenger_id),
            offer,
        )


def test_non_infant_cannot_reference_an_adult(roster):
    offer = make_offer("ADULT", "ADULT")
    adult = roster.add(passenger_data(), offer)

    with pytest.raises(AssociatedAdultError):
        roster.add(passenger_data(associated_adult_id=adult.passenger_id), offer)


def test_removing_referenced_adult_surfaces_error_and_clears_reference(roster):
    offer = make_offer("ADULT", "HELD_INFANT")
    adult = roster.add(passenger_data(), offer)
    infant = roster.add(passenger_data(date_of_birth=INFANT_DOB), offer)

    with pytest.raises(OrphanedInfantError) as exc_info:
        roster.remove(adult.passenger_id)

    assert exc_info.value.infant_ids == [infant.passenger_id]
    assert [p.passenger_id for p in roster] == [infant.passenger_id]
    assert roster.get(infant.passenger_id).associated_adult_id is None


def test_update_keeps_identity_and_position(roster):
    offer = make_offer("ADULT", "ADULT")
    first = roster.add(passenger_data(), offer)
    roster.add(passenger_data(first_name="Marta"), offer)

    updated = roster.update(first.passenger_id, passenger_data(first_name="Lucía"), offer)

    assert updated.passenger_id == first.passenger_id
    assert roster.passengers[0].first_name == "Lucía"


def test_update_of_unknown_passenger_fails(roster):
    with pytest.raises(PassengerNotFoundError):
        roster.update("missing", passenger_data(), make_offer())


def test_adult_holding_infant_cannot_change_type(roster):
    offer = make_offer("ADULT", "HELD_INFANT", "CHILD")
    adult = roster.add(passenger_data(), offer)
    roster.add(passenger_data(date_of_birth=INFANT_DOB), offer)

    with pytest.raises(AssociatedAdultError):
        roster.update(adult.passenger_id, passenger_data(TravelerType.CHILD, CHILD_DOB), offer)


def test_every_mutation_restarts_retention_timer():
    clock = FakeClock()
    roster = PassengerRoster(clock=clock)
    offer = make_offer("ADULT", "ADULT")
    first = roster.add(passenger_data(), offer)

    clock.advance(minutes=19)
    roster.update(first.passenger_id, passenger_data(first_name="Marta"), offer)
    clock.advance(minutes=19)

    assert roster.clear_if_expired() is None
    assert roster.time_remaining() == timedelta(minutes=1)

    clock.advance(minutes=1)
    expired = roster.clear_if_expired()

    assert isinstance(expired, PassengerRetentionExpired)
    assert len(roster) == 0
    assert roster.time_remaining() is None


def test_timer_stops_when_roster_becomes_empty():
    clock = FakeClock()
    roster = PassengerRoster(clock=clock)
    passenger = roster.add(passenger_data(), make_offer())

    roster.remove(passenger.passenger_id)

    assert roster.touched_at is None
    clock.advance(hours=1)
    assert roster.clear_if_expired() is None


def test_assert_complete_requires_exact_count(roster):
    offer = make_offer("ADULT", "ADULT")
    roster.add(passenger_data(), offer)

    with pytest.raises(RosterIncompleteError) as exc_info:
        roster.assert_complete(offer)
    assert exc_info.value.details == {"current": 1, "required": 2}


def test_progress_percentage(roster):
    offer = make_offer("ADULT", "ADULT", "CHILD", "CHILD")
    assert roster.progress(offer) == 0
    roster.add(passenger_data(), offer)

    assert roster.progress(offer) == 25
    assert roster.progress(None) == 0


def test_validate_uses_explicit_or_entered_type(roster):
    data = passenger_data(date_of_birth=CHILD_DOB)

    assert roster.validate(data, TravelerType.CHILD, TODAY) is None
    assert isinstance(roster.validate(data, TravelerType.ADULT, TODAY), AgeMismatchError)
    assert roster.validate(passenger_data(date_of_birth="2015-0"), TravelerType.ADULT, TODAY) is None


def test_restore_keeps_original_timer_start():
    clock = FakeClock()
    source = PassengerRoster(clock=FakeClock(START - timedelta(minutes=15)))
    passenger = source.add(passenger_data(), make_offer())

    roster = PassengerRoster(clock=clock)
    roster.restore([passenger], source.touched_at)

    assert roster.time_remaining() == timedelta(minutes=5)


def test_form_data_accepts_camel_case_and_drops_nulls():
    data = PassengerData.from_dict({
        "firstName": "Lucia",
        "lastName": None,
        "gender": "female",
        "travelerType": "adult",
        "seat": "12A",
    })

    assert data.first_name == "Lucia"
    assert data.last_name == ""
    assert data.gender == "FEMALE"
    assert data.traveler_type == TravelerType.ADULT


def test_form_data_rejects_non_text_fields():
    with pytest.raises(TypeError) as exc_info:
        PassengerData.from_dict({"firstName": 12345, "passportNumber": ["XDA123456"], "lastName": "Garcia"})

    assert "first_name" in str(exc_info.value)
    assert "passport_number" in str(exc_info.value)
