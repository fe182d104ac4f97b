"""Timer specifications: packed date fields, identifiers and parsing of Chinese dates."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

log = logging.getLogger(__name__)

ENABLED_BIT = 0x800000
_PACK_MASK = 0xFFFFFF

# name -> (shift, width)
_FIELDS = {
    "month": (19, 4),
    "day": (14, 5),
    "week": (11, 3),
    "hour": (6, 5),
    "minute": (0, 6),
}

_DIGITS = "零一二三四五六七八九十"


class TimerSpecError(ValueError):
    """Raised when a timer description holds an illegal value."""


@dataclass
class Timer:
    """A group reminder; date fields are packed into one integer.

    A field whose bits are all set reads as -1 and means "every".
    """

    id: int = 0
    packed: int = 0
    self_id: int = 0
    group_id: int = 0
    alert: str = ""
    cron: str = ""
    url: str = ""

    def _get(self, name: str) -> int:
        shift, width = _FIELDS[name]
        mask = (1 << width) - 1
        value = (self.packed >> shift) & mask
        return -1 if value == mask else value

    def _set(self, name: str, value: int) -> None:
        shift, width = _FIELDS[name]
        field = ((1 << width) - 1) << shift
        self.packed = ((value << shift) & field) | (self.packed & ~field & _PACK_MASK)

    def _set_enabled(self, enabled: bool) -> None:
        if enabled:
            self.packed |= ENABLED_BIT
        else:
            self.packed &= 0x7FFFFF

    def enabled(self) -> bool:
        return self.packed & ENABLED_BIT != 0

    def month(self) -> int:
        return self._get("month")

    def day(self) -> int:
        return self._get("day")

    def week(self) -> int:
        """Day of the week, 0 being Sunday, or -1 for every week."""
        return self._get("week")

    def hour(self) -> int:
        return self._get("hour")

    def minute(self) -> int:
        return self._get("minute")

    def info(self) -> str:
        """Normalised description used to derive the identifier."""
        if self.cron:
            return f"[{self.group_id}]{self.cron}"
        return (
            f"[{self.group_id}]{self.month()}月{self.day()}日"
            f"{self.week()}周{self.hour()}:{self.minute()}"
        )

    def timer_id(self) -> int:
        digest = hashlib.md5(self.info().encode("utf-8")).digest()
        return int.from_bytes(digest[:4], "little")


def chinese_char_to_int(char: str) -> int:
    """Map one character to 0..10; 日 and 天 (Sunday) map to 7, unknown to 0."""
    if char in ("日", "天"):
        return 7
    index = _DIGITS.find(char)
    return index if index >= 0 else 0


def chinese_num_to_int(text: str) -> int:
    """Convert a number of at most two places; 每 is -1, 每二 is -2 and so on."""
    if not text:
        raise TimerSpecError("empty number")
    first = text[0]
    if first.isdecimal():
        return int(text) if text.isascii() and text.isdigit() else 0
    if first == "每":
        return -chinese_char_to_int(text[1]) if len(text) == 2 else -1
    if len(text) == 1:
        return chinese_char_to_int(first)
    ten = chinese_char_to_int(first)
    if ten != 10:
        ten *= 10
    unit = chinese_char_to_int(text[1])
    if unit == 10:
        unit = 0
    return ten + unit


def _drop_middle_ten(text: str) -> str:
    return text[0] + text[2] if len(text) == 3 else text


def filled_timer(
    date_strs: Sequence[Optional[str]],
    bot_id: int,
    group_id: int,
    match_date_only: bool,
) -> Timer:
    """Build a timer from matched month, day/week, hour, minute, url and alert.

    ``date_strs[0]`` is the whole match and is ignored. When
    ``match_date_only`` is false the url and alert are read as well and the
    timer is enabled.
    """
    month_str, day_week, hour_str, minute_str = (s or "" for s in date_strs[1:5])
    timer = Timer()

    month = chinese_num_to_int(month_str)
    if (month != -1 and month <= 0) or month > 12:
        raise TimerSpecError("月份非法！")
    timer._set("month", month)

    if not day_week:
        raise TimerSpecError("日期非法！")
    if len(day_week) == 4:
        day = chinese_num_to_int(day_week[0] + day_week[2])
        if (day != -1 and day <= 0) or day > 31:
            raise TimerSpecError("日期非法1！")
        timer._set("day", day)
    elif day_week[-1] == "日":
        day = chinese_num_to_int(day_week[:-1])
        if (day != -1 and day <= 0) or day > 31:
            raise TimerSpecError("日期非法2！")
        timer._set("day", day)
    elif day_week[0] == "每":
        timer._set("week", -1)
    else:
        week = chinese_num_to_int(day_week[1:])
        if week == 7:
            week = 0
        if week < 0 or week > 6:
            raise TimerSpecError("星期非法！")
        timer._set("week", week)

    hour = chinese_num_to_int(_drop_middle_ten(hour_str))
    if hour < -1 or hour > 23:
        raise TimerSpecError("小时非法！")
    timer._set("hour", hour)

    minute = chinese_num_to_int(_drop_middle_ten(minute_str))
    if minute < -1 or minute > 59:
        raise TimerSpecError("分钟非法！")
    timer._set("minute", minute)

    if not match_date_only:
        url = date_strs[5] or ""
        if url:
            timer.url = url[1:]  # drop the leading 用
            log.debug("[群管]%s", timer.url)
            if not timer.url.startswith("http"):
                raise TimerSpecError("url非法！")
        timer.alert = date_strs[6] or ""
        timer._set_enabled(True)

    timer.self_id = bot_id
    timer.group_id = group_id
    return timer


def filled_cron_timer(cron: str, alert: str, url: str, bot_id: int, group_id: int) -> Timer:
    """Build a timer driven by a cron expression."""
    return Timer(self_id=bot_id, group_id=group_id, alert=alert, cron=cron, url=url)