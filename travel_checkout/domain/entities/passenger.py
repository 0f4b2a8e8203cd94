"""Passenger domain entities."""
from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, Optional

from travel_checkout.domain.entities.flight_offer import TravelerType


GENDERS = ("MALE", "FEMALE")


@dataclass
class PassengerData:
    """Passenger form fields as entered by the user."""
    
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_number: str = ""
    date_of_birth: str = ""
    gender: str = ""
    passport_number: str = ""
    traveler_type: Optional[TravelerType] = None
    associated_adult_id: Optional[str] = None
    
    _FIELD_ALIASES = {
        "firstName": "first_name",
        "lastName": "last_name",
        "phoneNumber": "phone_number",
        "dateOfBirth": "date_of_birth",
        "passportNumber": "passport_number",
        "travelerType": "traveler_type",
        "associatedAdultId": "associated_adult_id",
    }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PassengerData":
        """
        Accept both snake_case and the camelCase used by the web client.

        Raises:
            TypeError: If a field holds anything other than a string
            ValueError: If the traveler type is not supported
        """
        values: Dict[str, Any] = {}
        wrong_type = []
        for key, value in (data or {}).items():
            name = cls._FIELD_ALIASES.get(key, key)
            if name not in cls.__dataclass_fields__ or name.startswith("_"):
                continue
            if value is None:
                continue
            if not isinstance(value, str):
                wrong_type.append(name)
                continue
            values[name] = value
        if wrong_type:
            raise TypeError(f"Passenger fields must be text: {', '.join(wrong_type)}")
        if values.get("traveler_type"):
            values["traveler_type"] = TravelerType.parse(values["traveler_type"])
        else:
            values.pop("traveler_type", None)
        if isinstance(values.get("gender"), str):
            values["gender"] = values["gender"].upper()
        return cls(**values)


@dataclass
class Passenger:
    """Domain entity representing one passenger of the roster."""
    
    passenger_id: str
    traveler_type: TravelerType
    first_name: str
    last_name: str
    email: str
    phone_number: str
    date_of_birth: str
    gender: str
    passport_number: str
    associated_adult_id: Optional[str] = None
    
    def __post_init__(self):
        """Validate passenger entity."""
        if not self.passenger_id:
            raise ValueError("passenger_id is required")
        if self.associated_adult_id and self.traveler_type != TravelerType.HELD_INFANT:
            raise ValueError("associated_adult_id is only valid for HELD_INFANT passengers")
    
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
    
    def with_changes(self, **changes: Any) -> "Passenger":
        return replace(self, **changes)
    
    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["traveler_type"] = self.traveler_type.value
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Passenger":
        values = dict(data)
        values["traveler_type"] = TravelerType.parse(values["traveler_type"])
        return cls(**values)
