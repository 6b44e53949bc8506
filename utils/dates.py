"""
Date helpers shared by the models.

Instants are stored as ISO-8601 strings. Everything is compared as naive
local time: aware values (e.g. a trailing ``Z`` written by another client)
are converted to the local zone first so naive and aware records can be
mixed in one log.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

def now() -> datetime:
    return datetime.now()

def parse_date(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt

def to_iso(dt: Optional[datetime] = None) -> str:
    return parse_date(dt or now()).isoformat()

def start_of_day(dt: datetime) -> datetime:
    return datetime.combine(parse_date(dt).date(), time.min)

def days_before(dt: datetime, days: int) -> datetime:
    return dt - timedelta(days=days)

def as_day(value: Union[str, date, datetime]) -> date:
    if isinstance(value, datetime):
        return parse_date(value).date()
    if isinstance(value, date):
        return value
    return parse_date(value).date()
