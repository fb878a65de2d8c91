from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_date(value, field_name: str):
    if value is None:
        raise ValidationError(f"{field_name} is required")
    return value


def require_positive(value, field_name: str) -> float:
    v = _as_number(value, field_name)
    if v <= 0:
        raise ValidationError(f"{field_name} must be greater than 0")
    return v


def require_non_negative(value, field_name: str) -> float:
    v = _as_number(value, field_name)
    if v < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return v


def require_percentage(value, field_name: str = "Deduction percentage") -> float:
    v = _as_number(value, field_name)
    if v < 0 or v > 100:
        raise ValidationError(f"{field_name} must be between 0 and 100")
    return v


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


def _as_number(value, field_name: str) -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
