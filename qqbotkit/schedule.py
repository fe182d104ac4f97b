"""Computing when a date-based timer should next wake, and whether it fires."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Optional

from .timerspec import Timer

log = logging.getLogger(__name__)


def _go_weekday(moment: datetime) -> int:
    """Day of the week with Sunday as 0."""
    return (moment.weekday() + 1) % 7


def _normalize(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    microsecond: int,
    tz: Optional[tzinfo],
) -> datetime:
    """Build a datetime, carrying out-of-range fields into larger units."""
    y, m0 = divmod(year * 12 + (month - 1), 12)
    base = datetime(y, m0 + 1, 1, tzinfo=tz)
    return base + timedelta(
        days=day - 1, hours=hour, minutes=minute, seconds=second, microseconds=microsecond
    )


def _add_date(moment: datetime, years: int = 0, months: int = 0, days: int = 0) -> datetime:
    return _normalize(
        moment.year + years,
        moment.month + months,
        moment.day + days,
        moment.hour,
        moment.minute,
        moment.second,
        moment.microsecond,
        moment.tzinfo,
    )


def first_weekday(date: datetime, weekday: int) -> datetime:
    """First day in the month of ``date`` falling on ``weekday`` (0 is Sunday)."""
    if not 0 <= weekday <= 6:
        raise ValueError(f"weekday out of range: {weekday}")
    day = _add_date(date, days=1 - date.day)
    while _go_weekday(day) != weekday:
        day += timedelta(days=1)
    return day


def next_wake_time(timer: Timer, now: Optional[datetime] = None) -> datetime:
    """The moment at which a sleeping date-based timer should next check itself."""
    if now is None:
        now = datetime.now()
    date = now
    m, d, h, mn, w = timer.month(), timer.day(), timer.hour(), timer.minute(), timer.week()

    unit = timedelta(0)
    if mn >= 0:
        if h < 0:
            unit = timedelta(hours=1)
        elif d < 0 or w < 0:
            unit = timedelta(days=1)
        elif d == 0 and w >= 0:
            delta = timedelta(days=w - _go_weekday(date))
            if delta < timedelta(0):
                delta = timedelta(days=7)
            unit += delta
    else:
        unit = timedelta(minutes=1)

    stable = 0
    if mn < 0:
        mn = date.minute
    if h < 0:
        h = date.hour
    else:
        stable |= 0x8
    if d < 0:
        d = date.day
    elif d > 0:
        stable |= 0x4
    else:
        d = date.day
        if w >= 0:
            stable |= 0x2
    if m < 0:
        m = date.month
    else:
        stable |= 0x1

    if stable == 0b0101:
        if timer.day() != now.day or timer.month() != now.month:
            h = 0
    elif stable == 0b1001:
        if timer.month() != now.month:
            d = 0
    elif stable == 0b0001:
        if timer.month() != now.month:
            d = 0
            h = 0
    log.debug("[timer] stable: %d m: %d d: %d h: %d mn: %d w: %d", stable, m, d, h, mn, w)

    date = _normalize(date.year, m, d, h, mn, date.second, date.microsecond, date.tzinfo)
    if unit > timedelta(0):
        date += unit

    if date <= now:
        if timer.month() < 0:
            if timer.day() > 0 or (timer.day() == 0 and timer.week() >= 0):
                date = _add_date(date, months=1)
            elif timer.day() < 0 or timer.week() < 0:
                if timer.hour() > 0:
                    date = _add_date(date, days=1)
                elif timer.minute() > 0:
                    date += timedelta(hours=1)
        else:
            date = _add_date(date, years=1)

    if stable & 0x8 and date.hour != h:
        if not stable & 0x4:
            date = _add_date(date, days=1) - timedelta(hours=1)
        elif not stable & 0x2:
            date = _add_date(date, days=7) - timedelta(hours=1)
        else:
            date = _add_date(date, years=1) - timedelta(hours=1)

    if stable & 0x4 and date.day != d:
        date = _add_date(date, years=1, days=-1)

    if stable & 0x2 and _go_weekday(date) != w:
        date = first_weekday(_add_date(date, years=1), w)

    if date <= now:
        date = now + timedelta(minutes=1)
    log.debug("[timer] next wake: %s", date)
    return date


def should_fire(timer: Timer, now: datetime) -> bool:
    """Whether an enabled date-based timer matches ``now`` and should send its alert."""
    if not timer.enabled():
        return False
    if not (timer.month() < 0 or timer.month() == now.month):
        return False
    if timer.day() < 0 or timer.day() == now.day:
        pass
    elif timer.day() == 0:
        if not (timer.week() < 0 or timer.week() == _go_weekday(now)):
            return False
    else:
        return False
    hour_ok = timer.hour() < 0 or timer.hour() == now.hour
    minute_ok = timer.minute() < 0 or timer.minute() == now.minute
    return hour_ok and minute_ok