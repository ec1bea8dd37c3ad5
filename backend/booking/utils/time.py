from datetime import date, datetime, timedelta, timezone
from typing import Any, List, Optional

WEEKDAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def weekday_key(day: date) -> str:
    """Lowercase three-letter weekday key (ISO order, Monday first)."""
    return WEEKDAY_KEYS[day.weekday()]


def week_dates(week_start: date) -> List[date]:
    # week_start is day 0 as given, no Monday normalization
    return [week_start + timedelta(days=offset) for offset in range(7)]


def parse_iso_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp from the order backend into naive UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
