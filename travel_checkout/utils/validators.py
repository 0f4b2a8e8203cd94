"""Passenger input validation and normalization utilities."""
import re
from datetime import date
from typing import Optional, Tuple


DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PhoneNumberValidator:
    """Utility class for phone number validation and normalization."""
    
    MIN_LENGTH = 10
    
    @staticmethod
    def normalize(phone_number: str) -> Tuple[str, str]:
        """
        Normalize phone number.
        
        Args:
            phone_number: Phone number in any format
            
        Returns:
            Tuple of (cleaned_digits, display_format)
            - cleaned_digits: Just the digits, as sent to the reservation system
            - display_format: Format with + prefix
        """
        cleaned = re.sub(r"[\s\-().]", "", phone_number or "")
        
        has_plus = cleaned.startswith("+")
        digits = cleaned[1:] if has_plus else cleaned
        
        if not digits.isdigit():
            raise ValueError(f"Invalid phone number format: {phone_number}")
        
        return digits, f"+{digits}"
    
    @classmethod
    def validate_format(cls, phone_number: str) -> bool:
        """
        Validate phone number format and minimum length.
        
        Args:
            phone_number: Phone number to validate
            
        Returns:
            True if valid, False otherwise
        """
        if not phone_number or len(phone_number.strip()) < cls.MIN_LENGTH:
            return False
        try:
            cls.normalize(phone_number)
            return True
        except (ValueError, AttributeError):
            return False


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email.strip()) is not None


def is_complete_date(value: Optional[str]) -> bool:
    """True once the user has typed a full ``YYYY-MM-DD`` date."""
    return bool(value) and DATE_PATTERN.match(value) is not None


def parse_date(value: str) -> Optional[date]:
    """Parse a complete ``YYYY-MM-DD`` string; None if it is not a real date."""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def calculate_age(birth_date: date, today: date) -> int:
    """Calendar age in whole years on ``today``."""
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age
