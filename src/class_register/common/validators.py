from __future__ import annotations

import re
from typing import Any, Optional

from ..core.exceptions import ValidationError
from .datetime_utils import parse_iso_date

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if len(value) > max_len:
        raise ValidationError(f"{field_name} must be at most {max_len} characters")
    return value


def require_int_in_range(value: Any, field_name: str, low: int, high: int) -> int:
    # bool is an int subclass; a stray True must not pass as 1.
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if number != value and not isinstance(value, str):
        raise ValidationError(f"{field_name} must be an integer")
    if number < low or number > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return number


def require_iso_date(value: Optional[str], field_name: str = "date") -> str:
    text = require_non_empty(value, field_name)
    if not DATE_PATTERN.match(text):
        raise ValidationError(f"{field_name} must use the YYYY-MM-DD format")
    try:
        parse_iso_date(text)
    except ValueError:
        raise ValidationError(f"{field_name} is not a valid calendar date: {text}")
    return text
