"""Date helpers shared by the services.

Dates are persisted as ``YYYY-MM-DD`` strings and timestamps as ISO-8601 UTC
strings, so string comparison in storage queries orders them correctly.
"""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def today() -> date:
    return date.today()


def date_stamp(on: date | None = None) -> str:
    """Compact YYYYMMDD stamp used in generated codes."""
    return (on or today()).strftime("%Y%m%d")


def parse_date(value) -> date | None:
    """Coerce a stored date/timestamp string (or date) into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value)
    if "T" in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text[:10])


def parse_datetime(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
