from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from dateutil import parser
from tzlocal import get_localzone_name

from sibol_maintenance.core.config import get_settings


def parse_timestamp(value: str | datetime | None, timezone: str | None = None) -> datetime | None:
    """Parse a backend timestamp into an aware datetime.

    Accepts ISO-8601 strings and MySQL datetimes ("2026-01-05 21:31:16").
    Values without an offset are taken to be in the server timezone.
    Returns None when the value is missing or cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = parser.isoparse(text)
        except (ValueError, OverflowError):
            return None

    if parsed.tzinfo is None:
        zone = timezone or get_settings().server_timezone
        parsed = parsed.replace(tzinfo=ZoneInfo(zone))
    return parsed


def get_local_timezone() -> str:
    try:
        return get_localzone_name()
    except Exception:
        return "UTC"


def _display_zone() -> ZoneInfo:
    configured = get_settings().display_timezone
    return ZoneInfo(configured or get_local_timezone())


def format_time_only(value: str | datetime | None) -> str:
    moment = parse_timestamp(value)
    if moment is None:
        return ""
    return moment.astimezone(_display_zone()).strftime("%I:%M %p")


def format_full_stamp(value: str | datetime | None) -> str:
    moment = parse_timestamp(value)
    if moment is None:
        return ""
    return moment.astimezone(_display_zone()).strftime("%b %d, %Y, %I:%M %p")


def format_date(value: str | datetime | None) -> str:
    moment = parse_timestamp(value)
    if moment is None:
        return ""
    return moment.astimezone(_display_zone()).strftime("%b %d, %Y")


def today_iso() -> str:
    return date.today().isoformat()
