import re
from dataclasses import dataclass
from typing import Optional

from core.errors import ReservationValidationError
from settings import MAX_SEATS_PER_TICKET
from models.Ticket import MAX_SEATS

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+()]+$")
MIN_NAME_LENGTH = 2


@dataclass(frozen=True)
class HolderInfo:
    name: str
    email: str
    phone: Optional[str] = None


def normalize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_holder_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ReservationValidationError("Name is required", field="holder_name")
    if len(name) < MIN_NAME_LENGTH:
        raise ReservationValidationError(
            f"Name must be at least {MIN_NAME_LENGTH} characters", field="holder_name"
        )
    return name


def validate_holder_email(email: Optional[str]) -> str:
    email = (email or "").strip().lower()
    if not email:
        raise ReservationValidationError("Email is required", field="holder_email")
    if not EMAIL_PATTERN.match(email):
        raise ReservationValidationError("Invalid email address", field="holder_email")
    return email


def validate_holder_phone(phone: Optional[str]) -> Optional[str]:
    phone = normalize_optional(phone)
    if phone is not None and not PHONE_PATTERN.match(phone):
        raise ReservationValidationError("Invalid phone number", field="holder_phone")
    return phone


def validate_number_of_seats(number_of_seats) -> int:
    limit = min(MAX_SEATS_PER_TICKET, MAX_SEATS)
    # bool is an int subclass, reject it explicitly
    if isinstance(number_of_seats, bool) or not isinstance(number_of_seats, int):
        raise ReservationValidationError(
            "Number of seats must be an integer", field="number_of_seats"
        )
    if number_of_seats < 1 or number_of_seats > limit:
        raise ReservationValidationError(
            f"Number of seats must be between 1 and {limit}",
            field="number_of_seats",
        )
    return number_of_seats


def validate_holder(
    name: Optional[str], email: Optional[str], phone: Optional[str] = None
) -> HolderInfo:
    """
    Validate and normalize ticket holder details

    Raises:
        ReservationValidationError: If validation fails
    """
    return HolderInfo(
        name=validate_holder_name(name),
        email=validate_holder_email(email),
        phone=validate_holder_phone(phone),
    )
