# clock.py
# Время в базе хранится как naive UTC

import calendar
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value):
    """Aware datetime -> naive UTC; naive values are assumed to already be UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def local_midnight(now, tz_name=None):
    """Start of the local calendar day containing `now` (naive UTC), as naive UTC."""
    aware = now.replace(tzinfo=timezone.utc)
    if not tz_name:
        local = aware.astimezone()
    elif tz_name.upper() == 'UTC':
        local = aware
    else:
        local = aware.astimezone(ZoneInfo(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return to_utc_naive(midnight)


def subtract_months(value, months):
    # 31 марта минус месяц -> 28/29 февраля
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def subtract_days(value, days):
    return value - timedelta(days=days)


def isoformat(value):
    return value.isoformat() + 'Z' if value else None
