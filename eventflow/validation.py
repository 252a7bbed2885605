import re
from datetime import datetime
from typing import Optional

from .enums.sexo import Sexo

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_PASSWORD_LENGTH = 6

# bcrypt only hashes the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_REGEX.match(email))


def is_password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def is_weak_password(password: str) -> bool:
    return len(password) < MIN_PASSWORD_LENGTH


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """
    Parse the ISO-8601 strings produced by JavaScript's Date.toISOString().

    Returns:
        datetime | None: The parsed value, or None if the string is not ISO-8601.
    """
    candidate = value.strip()
    # fromisoformat only accepts the "Z" suffix from Python 3.11 on
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None


def guest_fields_error(fields: dict) -> Optional[str]:
    """
    Check the guest fields that are present in `fields`.

    Returns:
        str | None: A message describing the first problem found, or None if the fields are valid.
    """
    if any(is_blank(value) for value in fields.values()):
        return "Please complete all fields."

    edad = fields.get("edad")
    if edad is not None and not re.fullmatch(r"[0-9]+", edad.strip()):
        return "Age must be a whole number."

    sexo = fields.get("sexo")
    if sexo is not None and sexo.strip() not in {choice.value for choice in Sexo}:
        return f"Sex must be one of: {', '.join(choice.value for choice in Sexo)}."

    return None
