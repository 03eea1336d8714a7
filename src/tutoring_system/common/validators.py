from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from ..core.exceptions import ValidationError
from .money import to_money

E = TypeVar("E", bound=Enum)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def optional_email(value: Any, field_name: str) -> Optional[str]:
    email = optional_text(value)
    if email and not _EMAIL_RE.match(email):
        raise ValidationError(f"{field_name} is not a valid email")
    return email


def require_amount(value: Any, field_name: str, *, allow_zero: bool = True) -> Decimal:
    amount = to_money(value)
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    if not allow_zero and amount == 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return amount


def require_int(value: Any, field_name: str, *, minimum: Optional[int] = None) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a whole number")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field_name} must be at least {minimum}")
    return number


def parse_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
