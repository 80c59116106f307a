"""
person_registry.validation

Field-level validation used by the repositories.

Responsibilities:
- Normalize and check text, date and identifier inputs.
- Raise `errors.ValidationError` with a message naming the offending field.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from typing import Any

from person_registry.errors import ValidationError


def required_text(field: str, value: Any, *, max_length: int) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")
    return _bounded_text(field, value, max_length=max_length)


def optional_text(field: str, value: Any, *, max_length: int) -> str | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{field} must not be blank")
    return _bounded_text(field, value, max_length=max_length)


def _bounded_text(field: str, value: Any, *, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def past_date(field: str, value: Any) -> date:
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, datetime):
        value = value.date()
    elif isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"{field} is not a valid ISO date") from e
    elif not isinstance(value, date):
        raise ValidationError(f"{field} must be a date")
    if value > datetime.now(tz=UTC).date():
        raise ValidationError(f"{field} must not be in the future")
    return value


def external_id(field: str, value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise ValidationError(f"{field} is not a valid identifier") from e


def known_fields(changes: Mapping[str, Any], allowed: Iterable[str]) -> None:
    unknown = sorted(set(changes) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")
