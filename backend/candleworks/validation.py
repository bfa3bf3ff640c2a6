from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

from candleworks.errors import ValidationError
from candleworks.time_utils import parse_iso_datetime


# Maximum money value: 9,999,999.99
# Keeps Numeric columns in range and rejects nonsensical prices
MAX_MONEY = Decimal("9999999.99")

E = TypeVar("E", bound=enum.Enum)


def require_fields(payload: dict, *names: str) -> None:
    missing = [n for n in names if payload.get(n) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required field(s): {', '.join(missing)}",
            details={"missing": missing},
        )


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion.

    Rejects bools, floats, decimal strings and scientific notation so that
    a quantity of "2.5" or 1e3 never silently becomes an integer.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped or "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}", details={"field": field, "value": result})
    return result


def to_decimal(value: Any, field: str) -> Decimal:
    """Convert numbers and numeric strings to Decimal (floats via str, so 0.1 stays 0.1)."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def parse_money(value: Any, field: str, *, allow_zero: bool = True) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0 or (not allow_zero and amount == 0):
        raise ValidationError(
            f"{field} must be {'>= 0' if allow_zero else '> 0'}",
            details={"field": field, "value": str(amount)},
        )
    if amount > MAX_MONEY:
        raise ValidationError(f"{field} exceeds maximum allowed value")
    return amount


def parse_enum(enum_cls: type[E], value: Any, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(
            f"{field} must be one of {', '.join(allowed)}",
            details={"field": field, "value": value, "allowed": allowed},
        )


def parse_optional_enum(enum_cls: type[E], value: Any, field: str) -> E | None:
    if value in (None, ""):
        return None
    return parse_enum(enum_cls, value, field)


def parse_datetime(value: Any, field: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")
