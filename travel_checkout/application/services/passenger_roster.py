"""Passenger roster of a booking attempt.

Enforces per-traveler-type age rules, required fields, the offer's
type-count constraints and infant-adult associations, and owns the
passenger-retention timer.
"""
import logging
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Iterator, List, Optional

from travel_checkout.domain.entities.flight_offer import FlightOffer, TravelerType
from travel_checkout.domain.entities.passenger import GENDERS, Passenger, PassengerData
from travel_checkout.domain.exceptions import (
    AgeMismatchError,
    AssociatedAdultError,
    MissingFieldsError,
    OrphanedInfantError,
    PassengerNotFoundError,
    PassengerRetentionExpired,
    RosterFullError,
    RosterIncompleteError,
    ValidationError,
)
from travel_checkout.utils.clock import Clock, utcnow
from travel_checkout.utils.validators import (
    PhoneNumberValidator,
    calculate_age,
    is_complete_date,
    is_valid_email,
    parse_date,
)


logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(minutes=20)

ADULT_MIN_AGE = 12
CHILD_MIN_AGE = 2


def validate_age(
    date_of_birth: Optional[str],
    traveler_type: TravelerType,
    today: date
) -> Optional[ValidationError]:
    """
    Check that a date of birth matches the traveler type.

    An incomplete date is treated as valid so the check can run while the
    user is still typing.

    Args:
        date_of_birth: ``YYYY-MM-DD`` string, possibly partial
        traveler_type: Traveler type the passenger is entered as
        today: Reference date for the age calculation

    Returns:
        None if valid (or not yet complete), otherwise the error
    """
    if not is_complete_date(date_of_birth):
        return None

    birth_date = parse_date(date_of_birth)
    if birth_date is None:
        return MissingFieldsError(["date_of_birth"], "Date of birth is not a valid date")

    age = calculate_age(birth_date, today)
    if birth_date > today:
        return AgeMismatchError(traveler_type.value, age, "Date of birth cannot be in the future")

    if traveler_type == TravelerType.HELD_INFANT and age >= CHILD_MIN_AGE:
        return AgeMismatchError(traveler_type.value, age, "Infants must be under 2 years old")
    if traveler_type == TravelerType.CHILD and not CHILD_MIN_AGE <= age < ADULT_MIN_AGE:
        return AgeMismatchError(traveler_type.value, age, "Children must be between 2 and 11 years old")
    if traveler_type == TravelerType.ADULT and age < ADULT_MIN_AGE:
        return AgeMismatchError(traveler_type.value, age, "Adults must be at least 12 years old")
    return None


def missing_fields(data: PassengerData) -> List[str]:
    """Names of required fields that are empty or malformed."""
    missing = []
    if len((data.first_name or "").strip()) < 2:
        missing.append("first_name")
    if len((data.last_name or "").strip()) < 2:
        missing.append("last_name")
    if not is_valid_email(data.email):
        missing.append("email")
    if not PhoneNumberValidator.validate_format(data.phone_number):
        missing.append("phone_number")
    if not is_complete_date(data.date_of_birth):
        missing.append("date_of_birth")
    if data.gender not in GENDERS:
        missing.append("gender")
    if not (data.passport_number or "").strip():
        missing.append("passport_number")
    return missing


class PassengerRoster:
    """
    Ordered passengers of one checkout session.

    Every mutation (re)starts the retention timer; the timer is not running
    while the roster is empty.
    """

    def __init__(
        self,
        retention: timedelta = DEFAULT_RETENTION,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None
    ):
        self.retention = retention
        self._clock = clock or utcnow
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex[:12])
        self._passengers: List[Passenger] = []
        self._touched_at: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self._passengers)

    def __iter__(self) -> Iterator[Passenger]:
        return iter(list(self._passengers))

    @property
    def passengers(self) -> List[Passenger]:
        return list(self._passengers)

    @property
    def touched_at(self) -> Optional[datetime]:
        return self._touched_at

    def get(self, passenger_id: str) -> Passenger:
        for passenger in self._passengers:
            if passenger.passenger_id == passenger_id:
                return passenger
        raise PassengerNotFoundError(passenger_id)

    def validate(
        self,
        data: PassengerData,
        traveler_type: Optional[TravelerType] = None,
        today: Optional[date] = None
    ) -> Optional[ValidationError]:
        """Advisory age check used while the form is being filled in."""
        traveler_type = traveler_type or data.traveler_type or TravelerType.ADULT
        return validate_age(data.date_of_birth, traveler_type, today or self._clock().date())

    def next_traveler_type(self, offer: FlightOffer) -> Optional[TravelerType]:
        """First traveler-type slot of the offer that has no passenger yet."""
        taken = Counter(p.traveler_type for p in self._passengers)
        for traveler_type in offer.required_traveler_types:
            if taken[traveler_type] > 0:
                taken[traveler_type] -= 1
            else:
                return traveler_type
        return None

    def progress(self, offer: Optional[FlightOffer]) -> int:
        """Percentage of required passengers already entered."""
        if offer is None or offer.required_passenger_count == 0:
            return 0
        return min(100, int(len(self._passengers) * 100 / offer.required_passenger_count))

    def add(self, data: PassengerData, offer: FlightOffer, now: Optional[datetime] = None) -> Passenger:
        """
        Append a passenger with a generated identity.

        Args:
            data: Submitted form fields
            offer: Offer whose traveler pricings bound the roster
            now: Time of the mutation

        Returns:
            The stored passenger

        Raises:
            RosterFullError: If the offer (or the requested type) has no free seat
            MissingFieldsError: If required fields are missing or malformed
            AgeMismatchError: If the date of birth does not match the type
            AssociatedAdultError: If an infant has no valid adult to travel with
        """
        now = now or self._clock()
        required = offer.required_passenger_count
        if len(self._passengers) >= required:
            raise RosterFullError(required)

        traveler_type = self._resolve_traveler_type(data.traveler_type, offer)
        self._check_submission(data, traveler_type, now.date())

        associated_adult_id = self._resolve_association(
            traveler_type, data.associated_adult_id, position=len(self._passengers)
        )
        passenger = Passenger(
            passenger_id=self._id_factory(),
            traveler_type=traveler_type,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            email=data.email.strip(),
            phone_number=data.phone_number.strip(),
            date_of_birth=data.date_of_birth,
            gender=data.gender,
            passport_number=data.passport_number.strip(),
            associated_adult_id=associated_adult_id,
        )
        self._passengers.append(passenger)
        self._touch(now)
        logger.info(
            f"Passenger {passenger.passenger_id} added as {traveler_type.value} "
            f"({len(self._passengers)}/{required})"
        )
        return passenger

    def update(
        self,
        passenger_id: str,
        data: PassengerData,
        offer: FlightOffer,
        now: Optional[datetime] = None
    ) -> Passenger:
        """
        Replace a passenger's fields in place, keeping its identity and position.

        Raises:
            PassengerNotFoundError: If the passenger does not exist
            RosterFullError: If a type change would exceed the offer's seats of that type
            MissingFieldsError, AgeMismatchError, AssociatedAdultError: On invalid data
        """
        now = now or self._clock()
        current = self.get(passenger_id)
        position = self._passengers.index(current)

        traveler_type = data.traveler_type or current.traveler_type
        if traveler_type != current.traveler_type:
            self._resolve_traveler_type(traveler_type, offer, exclude_id=passenger_id)
            if current.traveler_type == TravelerType.ADULT and self._infants_of(passenger_id):
                raise AssociatedAdultError(
                    "This adult is travelling with an infant and must stay an adult",
                    {"passenger_id": passenger_id},
                )
        self._check_submission(data, traveler_type, now.date())

        requested_adult = data.associated_adult_id
        if requested_adult is None and traveler_type == TravelerType.HELD_INFANT:
            requested_adult = current.associated_adult_id
        associated_adult_id = self._resolve_association(
            traveler_type, requested_adult, position=position, exclude_id=passenger_id
        )
        updated = current.with_changes(
            traveler_type=traveler_type,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            email=data.email.strip(),
            phone_number=data.phone_number.strip(),
            date_of_birth=data.date_of_birth,
            gender=data.gender,
            passport_number=data.passport_number.strip(),
            associated_adult_id=associated_adult_id,
        )
        self._passengers[position] = updated
        self._touch(now)
        logger.info(f"Passenger {passenger_id} updated")
        return updated

    def remove(self, passenger_id: str, now: Optional[datetime] = None) -> Passenger:
        """
        Delete one passenger.

        Infants that referenced the removed passenger lose their association.

        Returns:
            The removed passenger

        Raises:
            PassengerNotFoundError: If the passenger does not exist
            OrphanedInfantError: After removal, if infants referenced it
        """
        passenger = self.get(passenger_id)
        self._passengers.remove(passenger)

        orphans = self._infants_of(passenger_id)
        for infant in orphans:
            index = self._passengers.index(infant)
            self._passengers[index] = infant.with_changes(associated_adult_id=None)

        if self._passengers:
            self._touch(now or self._clock())
        else:
            self._touched_at = None
        logger.info(f"Passenger {passenger_id} removed ({len(self._passengers)} left)")

        if orphans:
            raise OrphanedInfantError(passenger_id, [infant.passenger_id for infant in orphans])
        return passenger

    def clear(self) -> None:
        """Remove every passenger and stop the retention timer."""
        if self._passengers:
            logger.info(f"Passenger roster cleared ({len(self._passengers)} passenger(s))")
        self._passengers = []
        self._touched_at = None

    def time_remaining(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        if self._touched_at is None:
            return None
        now = now or self._clock()
        return max(self._touched_at + self.retention - now, timedelta(0))

    def clear_if_expired(self, now: Optional[datetime] = None) -> Optional[PassengerRetentionExpired]:
        """Clear the whole roster once the retention timer has run out."""
        remaining = self.time_remaining(now)
        if remaining is None or remaining > timedelta(0):
            return None
        logger.warning(f"Passenger data expired; clearing {len(self._passengers)} passenger(s)")
        self.clear()
        return PassengerRetentionExpired()

    def assert_complete(self, offer: FlightOffer) -> None:
        """
        Commit precondition: the roster fills the offer exactly.

        Raises:
            RosterIncompleteError: If passenger count or type mix differs from the offer
            AssociatedAdultError: If an infant has no adult to travel with
        """
        required = offer.required_passenger_count
        if len(self._passengers) != required:
            raise RosterIncompleteError(len(self._passengers), required)
        if Counter(p.traveler_type for p in self._passengers) != Counter(offer.required_traveler_types):
            raise RosterIncompleteError(
                len(self._passengers),
                required,
                "Passenger types do not match the selected offer",
            )
        positions = {p.passenger_id: i for i, p in enumerate(self._passengers)}
        for index, passenger in enumerate(self._passengers):
            if passenger.traveler_type != TravelerType.HELD_INFANT:
                continue
            adult_position = positions.get(passenger.associated_adult_id)
            if adult_position is None or adult_position >= index:
                raise AssociatedAdultError(
                    f"Infant {passenger.full_name} must be assigned to an adult",
                    {"passenger_id": passenger.passenger_id},
                )

    def restore(self, passengers: List[Passenger], touched_at: Optional[datetime]) -> None:
        """Reinstate cached passengers with their original timer start."""
        self._passengers = list(passengers)
        self._touched_at = touched_at if passengers else None

    def _touch(self, now: datetime) -> None:
        self._touched_at = now

    def _infants_of(self, adult_id: str) -> List[Passenger]:
        return [
            p for p in self._passengers
            if p.traveler_type == TravelerType.HELD_INFANT and p.associated_adult_id == adult_id
        ]

    def _check_submission(self, data: PassengerData, traveler_type: TravelerType, today: date) -> None:
        missing = missing_fields(data)
        if missing:
            raise MissingFieldsError(missing)
        error = validate_age(data.date_of_birth, traveler_type, today)
        if error is not None:
            raise error

    def _resolve_traveler_type(
        self,
        requested: Optional[TravelerType],
        offer: FlightOffer,
        exclude_id: Optional[str] = None
    ) -> TravelerType:
        if requested is None:
            next_type = self.next_traveler_type(offer)
            if next_type is None:
                raise RosterFullError(offer.required_passenger_count)
            return next_type

        required = Counter(offer.required_traveler_types)
        taken = Counter(
            p.traveler_type for p in self._passengers if p.passenger_id != exclude_id
        )
        if taken[requested] >= required[requested]:
            raise RosterFullError(offer.required_passenger_count, requested.value)
        return requested

    def _resolve_association(
        self,
        traveler_type: TravelerType,
        requested_adult_id: Optional[str],
        position: int,
        exclude_id: Optional[str] = None
    ) -> Optional[str]:
        if traveler_type != TravelerType.HELD_INFANT:
            if requested_adult_id:
                raise AssociatedAdultError("Only infants can be associated with an adult")
            return None

        preceding = self._passengers[:position]
        if requested_adult_id is None:
            adults = [p for p in preceding if p.traveler_type == TravelerType.ADULT]
            if not adults:
                raise AssociatedAdultError("An infant must travel with an adult; add the adult first")
            free = [
                a for a in adults
                if not [i for i in self._infants_of(a.passenger_id) if i.passenger_id != exclude_id]
            ]
            requested_adult_id = (free or adults)[-1].passenger_id

        adult = next((p for p in preceding if p.passenger_id == requested_adult_id), None)
        if adult is None or adult.traveler_type != TravelerType.ADULT:
            raise AssociatedAdultError(
                "The associated adult must be an adult passenger entered before the infant",
                {"associated_adult_id": requested_adult_id},
            )
        holders = [i for i in self._infants_of(requested_adult_id) if i.passenger_id != exclude_id]
        if holders:
            raise AssociatedAdultError(
                "Each adult can travel with only one infant",
                {"associated_adult_id": requested_adult_id},
            )
        return requested_adult_id
