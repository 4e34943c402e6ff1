"""Normalisation of individual student fields shared by the form handlers and the importer."""

from typing import Any, Optional

from pydantic import EmailStr, TypeAdapter, ValidationError

from app.core.enums import Gender

_email_adapter = TypeAdapter(EmailStr)


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_gender(value: Any) -> Optional[str]:
    """Blank defaults to Male; anything other than male/female (any case) is rejected."""
    raw = as_text(value)
    if not raw:
        return Gender.MALE.value
    lowered = raw.lower()
    for g in Gender:
        if g.value.lower() == lowered:
            return g.value
    return None


def normalize_email(value: Any) -> str:
    return as_text(value).lower()


def is_valid_email(email: str) -> bool:
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        return False
    return True
