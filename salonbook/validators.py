"""Shared validation utilities"""
from __future__ import annotations

import math
import re
from datetime import date, time

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
PHONE_RE = re.compile(r"^\+?[0-9][0-9\s().-]{5,18}[0-9]$")


def clean(value: object) -> str | None:
    """Strip a string field, turning blanks into None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def pick(payload: dict, *keys: str) -> object:
    """Return the first present key, accepting camelCase aliases from the front ends."""
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def validate_email(email: str | None) -> str | None:
    """
    Validate email format.

    Returns the lower-cased address, or None when blank.

    Raises:
        ValueError: If email format is invalid
    """
    email = clean(email)
    if email is None:
        return None
    if not EMAIL_RE.match(email):
        raise ValueError("Invalid email format")
    return email.lower()


def validate_phone(phone: str | None) -> str | None:
    phone = clean(phone)
    if phone is None:
        return None
    if not PHONE_RE.match(phone):
        raise ValueError("Invalid phone number")
    return phone


def parse_date(value: object) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError("Date must use the YYYY-MM-DD format") from None


def parse_time(value: object) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a naive time."""
    if isinstance(value, time):
        return value
    try:
        parsed = time.fromisoformat(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError("Time must use the HH:MM format") from None
    return parsed.replace(microsecond=0, tzinfo=None)


def parse_price(value: object) -> float:
    if isinstance(value, bool):
        raise ValueError("Price must be a number >= 0")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError("Price must be a number >= 0") from None
    if not math.isfinite(price) or price < 0:
        raise ValueError("Price must be a number >= 0")
    return round(price, 2)


def parse_positive_int(value: object, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a positive integer")
    try:
        number = int(value)
        exact = number == float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"{field} must be a positive integer") from None
    if number <= 0 or not exact:
        raise ValueError(f"{field} must be a positive integer")
    return number


def parse_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
