"""Parsing helpers for loosely-typed query/form values."""

import re
from datetime import date, datetime, time, timezone
from typing import Iterable, List, Optional, Union
from uuid import UUID

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DIGITS_RE = re.compile(r"^\d+$")

# Keep studentId within a signed 64-bit column
MAX_STUDENT_ID = 2**63 - 1

RawParam = Union[None, str, Iterable[str]]


def parse_array_param(value: RawParam) -> List[str]:
    """Accept repeated and/or comma-joined values: ?ids=a&ids=b,c -> [a, b, c]."""
    if value is None:
        return []
    parts = [value] if isinstance(value, str) else list(value)
    out: List[str] = []
    for part in parts:
        if part is None:
            continue
        out.extend(p.strip() for p in str(part).split(","))
    return [p for p in out if p]


def parse_int_param(value, fallback: int) -> int:
    if value is None or value == "":
        return fallback
    try:
        return int(str(value).strip())
    except ValueError:
        return fallback


def parse_bool_param(value, fallback: bool = False) -> bool:
    if value is None or value == "":
        return fallback
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in ("true", "1", "yes", "y"):
        return True
    if v in ("false", "0", "no", "n"):
        return False
    return fallback


def to_uuid(value) -> Optional[UUID]:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except (ValueError, AttributeError):
        return None


def parse_uuid_list(values: Iterable[str]) -> List[UUID]:
    """Malformed ids are dropped."""
    out = []
    for v in values:
        u = to_uuid(v)
        if u is not None:
            out.append(u)
    return out


def parse_int_list(
    values: Iterable[str], minimum: Optional[int] = None, maximum: Optional[int] = None
) -> List[int]:
    """Parse integers, dropping malformed entries and any outside [minimum, maximum]."""
    out = []
    for v in values:
        try:
            n = int(str(v).strip())
        except ValueError:
            continue
        if minimum is not None and n < minimum:
            continue
        if maximum is not None and n > maximum:
            continue
        out.append(n)
    return out


def parse_student_id(value) -> Optional[int]:
    """Digits-only positive integer, else None. 12.0, -3, 1e3 and '' are all rejected."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 1 <= value <= MAX_STUDENT_ID else None
    if isinstance(value, float):
        return None
    raw = str(value).strip()
    if not _DIGITS_RE.match(raw):
        return None
    parsed = int(raw)
    if parsed < 1 or parsed > MAX_STUDENT_ID:
        return None
    return parsed


def parse_date_boundary(value, end_of_day: bool = False) -> Optional[datetime]:
    """YYYY-MM-DD or ISO datetime -> start (or end) of that UTC day. Unparsable -> None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        day = value.astimezone(timezone.utc).date() if value.tzinfo else value.date()
    elif isinstance(value, date):
        day = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        try:
            if _DATE_ONLY_RE.match(raw):
                day = date.fromisoformat(raw)
            else:
                parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
                day = parsed.astimezone(timezone.utc).date() if parsed.tzinfo else parsed.date()
        except ValueError:
            return None
    return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
