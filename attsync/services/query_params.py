"""Lenient query-string readers.

Dashboards and schedulers send whatever they like; bad numbers fall back to
defaults instead of failing the request. Only unreadable dates are rejected,
since silently dropping a range filter would widen the result.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any

from attsync.errors import InvalidQueryParamError


def parse_bounded_int(raw: Any, *, default: int, maximum: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    if value < 1:
        return default
    return min(value, maximum)


def parse_skip(raw: Any) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return 0
    return max(value, 0)


def parse_flag(raw: Any, *, default: bool) -> bool:
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true"}


def parse_created_bound(raw: str | None, *, name: str, end_of_day: bool = False) -> datetime | None:
    """Read an ISO date or datetime as a UTC ``created_at`` bound.

    Naive values are UTC. A bare date means the start of that day, or its
    last microsecond when ``end_of_day`` is set, so ``to=2024-01-05`` keeps
    the whole of the 5th.
    """
    if raw is None or not raw.strip():
        return None
    normalized = raw.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    try:
        day = date.fromisoformat(normalized)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError as exc:
            raise InvalidQueryParamError(code="INVALID_DATE", name=name, value=raw) from exc
    else:
        parsed = datetime.combine(day, time.max if end_of_day else time.min)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
