from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.exceptions import ValidationError

Clock = Callable[[], datetime]

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time, timezone aware.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now().astimezone()


def parse_hhmm(value: str) -> time:
    """Parse a 24h ``HH:MM`` field into a time."""
    match = _HHMM.match((value or "").strip())
    if not match:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value: datetime) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def at_time_today(hhmm: str, now: datetime) -> datetime:
    """Today's date (taken from ``now``) at ``hhmm`` with seconds zeroed."""
    t = parse_hhmm(hhmm)
    return now.replace(hour=t.hour, minute=t.minute, second=0, microsecond=0)


def to_iso(value: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a ``Z`` suffix."""
    utc = value.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a backend timestamp; naive values are taken as local time.

    Returns None for empty or unparseable input.
    """
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def resolve_timezone(name: Optional[str] = None, offset_minutes=None) -> Optional[tzinfo]:
    """Viewer timezone from an IANA name or a UTC offset in minutes (east positive).

    Returns None when neither is given.
    """
    if name:
        try:
            return ZoneInfo(str(name))
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError(f"Unknown time zone '{name}'") from None
    if offset_minutes is None or offset_minutes == "":
        return None
    try:
        minutes = int(offset_minutes)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid UTC offset '{offset_minutes}', expected minutes") from None
    if not -14 * 60 <= minutes <= 14 * 60:
        raise ValidationError(f"UTC offset {minutes} is out of range")
    return timezone(timedelta(minutes=minutes))


def shift_hhmm(hhmm: str, now: datetime, tz: tzinfo) -> str:
    """Re-express today's ``hhmm`` (in ``now``'s zone) as wall time in ``tz``."""
    return format_hhmm(at_time_today(hhmm, now).astimezone(tz))
