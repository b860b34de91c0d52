from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    # naive UTC, the way every DateTime column stores it
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(s: Optional[str]) -> Optional[datetime]:
    """Parses the date formats the dashboards send, None when unparseable."""
    if not s:
        return None
    s = s.strip()
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y"):
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            pass
    try:
        parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def end_of_day(d: Union[date, datetime]) -> datetime:
    return datetime(d.year, d.month, d.day, 23, 59, 59)


def as_date(value: Union[date, datetime, None]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value
