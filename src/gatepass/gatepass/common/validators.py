from __future__ import annotations

import re
from typing import Optional

from ..core.constants import PHONE_MAX_DIGITS, PHONE_MIN_DIGITS
from ..core.exceptions import ValidationError

_NON_DIGITS = re.compile(r"\D")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required", fields={field_name: "required"})
    return str(value).strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    """Trim a free-text value; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def phone_digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def is_valid_phone(value: str) -> bool:
    return PHONE_MIN_DIGITS <= len(phone_digits(value)) <= PHONE_MAX_DIGITS


def parse_positive_int(value, field_name: str) -> int:
    # JSON clients may send 7.0 for 7.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number", fields={field_name: "invalid"})
    if number <= 0:
        raise ValidationError(f"{field_name} must be positive", fields={field_name: "invalid"})
    return number
