"""Slacker's reminder: days left to the weekend and to the public holidays."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

log = logging.getLogger(__name__)

HOLIDAYS = ("元旦", "春节", "清明节", "劳动节", "端午节", "中秋节", "国庆节")
GREETING = (
    "上午好，摸鱼人！\n工作再累，一定不要忘记摸鱼哦！有事没事起身去茶水间，去厕所，"
    "去廊道走走别老在工位上坐着，钱是老板的,但命是自己的。\n"
)
CLOSING = "上班是帮老板赚钱，摸鱼是赚老板的钱！最后，祝愿天下所有摸鱼人，都能愉快的渡过每一天…"

Fetch = Callable[[str], str]


@dataclass(frozen=True)
class Holiday:
    """A holiday starting at local midnight of ``date`` and lasting ``duration``."""

    name: str
    date: datetime
    duration: timedelta

    @classmethod
    def from_record(cls, name: str, record: str) -> "Holiday":
        """Parse a ``days_year_month_day`` record; raises ValueError if malformed."""
        parts = record.strip().split("_")
        if len(parts) != 4:
            raise ValueError(f"malformed holiday record: {record!r}")
        days, year, month, day = (int(p) for p in parts)
        log.debug("[moyu]获取节日: %s %d %d %d %d", name, days, year, month, day)
        return cls(name, datetime(year, month, day), timedelta(days=days))

    def describe(self, now: Optional[datetime] = None) -> str:
        """How far away the holiday is, whether it is on, or that it is over."""
        if now is None:
            now = datetime.now()
        left = self.date - now
        if left >= timedelta(0):
            days = left.total_seconds() / 86400
            return f"距离{self.name}还有: {days:.2f}天！"
        if left + self.duration >= timedelta(0):
            return f"好好享受 {self.name} 假期吧!"
        return f"今年 {self.name} 假期已过"


def holiday_record(duration: int, year: int, month: int, day: int) -> str:
    """The stored form of a holiday: ``days_year_month_day``."""
    return f"{duration}_{year}_{month}_{day}"


def weekend_message(now: Optional[datetime] = None) -> str:
    """Days left to the weekend, or a wish to enjoy it."""
    if now is None:
        now = datetime.now()
    weekday = (now.weekday() + 1) % 7  # Sunday is 0
    if weekday in (0, 6):
        return "好好享受周末吧！"
    return f"距离周末还有:{5 - weekday}天！"


def _holiday(name: str, fetch: Fetch) -> Holiday:
    try:
        return Holiday.from_record(name, fetch("holiday/" + name))
    except (OSError, KeyError, ValueError) as err:
        return Holiday(name + str(err), datetime.min, timedelta(0))


def fish_reminder(now: Optional[datetime], fetch: Fetch) -> str:
    """The morning reminder text.

    ``fetch`` maps a key such as ``holiday/元旦`` to its stored record; a holiday
    that cannot be fetched or parsed is reported as past, with the error in its name.
    """
    if now is None:
        now = datetime.now()
    parts = [now.strftime("%Y-%m-%d"), GREETING, weekend_message(now), "\n"]
    for name in HOLIDAYS:
        parts.append(_holiday(name, fetch).describe(now))
        parts.append("\n")
    parts.append(CLOSING)
    return "".join(parts)