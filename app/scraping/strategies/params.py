"""
Coercion helpers for form-style strategy parameters.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from app.scraping.errors import ValidationError


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_int(
    raw_params: Mapping[str, Any],
    name: str,
    *,
    default: int,
    minimum: int = 1,
    maximum: int | None = None,
) -> int:
    value = raw_params.get(name)
    if _is_blank(value):
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer, got {value!r}.")
    try:
        parsed = int(str(value).strip()) if not isinstance(value, int) else value
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer, got {value!r}.") from exc
    if parsed < minimum:
        raise ValidationError(f"{name} must be >= {minimum}, got {parsed}.")
    if maximum is not None and parsed > maximum:
        raise ValidationError(f"{name} must be <= {maximum}, got {parsed}.")
    return parsed


def coerce_date(raw_params: Mapping[str, Any], name: str, *, default: date) -> date:
    value = raw_params.get(name)
    if _is_blank(value):
        return default
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}.") from exc


def coerce_choice(
    raw_params: Mapping[str, Any],
    name: str,
    *,
    allowed: Iterable[str],
    default: str,
) -> str:
    value = raw_params.get(name)
    if _is_blank(value):
        return default
    allowed_by_key = {option.lower(): option for option in allowed}
    resolved = allowed_by_key.get(str(value).strip().lower())
    if resolved is None:
        raise ValidationError(f"{name} must be one of {sorted(allowed_by_key.values())}, got {value!r}.")
    return resolved


def coerce_choices(
    raw_params: Mapping[str, Any],
    name: str,
    *,
    allowed: Iterable[str],
    default: Iterable[str],
) -> tuple[str, ...]:
    value = raw_params.get(name)
    if _is_blank(value):
        return tuple(default)
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    elif isinstance(value, Iterable):
        items = [str(item).strip() for item in value]
    else:
        raise ValidationError(f"{name} must be a list or comma-separated string, got {value!r}.")

    allowed_set = set(allowed)
    selected: list[str] = []
    for item in items:
        if not item:
            continue
        normalized = item.lower()
        if normalized not in allowed_set:
            raise ValidationError(f"{name} entries must be in {sorted(allowed_set)}, got {item!r}.")
        if normalized not in selected:
            selected.append(normalized)
    if not selected:
        return tuple(default)
    return tuple(selected)
