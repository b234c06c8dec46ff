from __future__ import annotations

from decimal import Decimal, InvalidOperation

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return value.strip()


def require_id(value, field_name: str) -> int:
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} is not a valid id")
    if ident <= 0:
        raise ValidationError(f"{field_name} is not a valid id")
    return ident


def require_month_year(month, year) -> tuple[int, int]:
    try:
        month, year = int(month), int(year)
    except (TypeError, ValueError):
        raise ValidationError("Month and year must be integers")
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if not 1900 <= year <= 9999:
        raise ValidationError("Year is out of range")
    return month, year


def parse_threshold(value) -> Decimal:
    """Percentage threshold in [0, 100]; floats go through str() to keep 75.0 == 75.00."""
    try:
        threshold = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid threshold: {value!r}")
    if not threshold.is_finite() or not Decimal(0) <= threshold <= Decimal(100):
        raise ValidationError("Threshold must be between 0 and 100")
    return threshold
